"""wabridge: session supervisor and delivery relay for a browser-driven messaging client."""

__version__ = "0.1.0"
