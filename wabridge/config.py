"""Environment-driven configuration for the supervisor and its HTTP app."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from wabridge.webhook.events import DEFAULT_CALL_NOTICE


def _float(name: str, default: float) -> float:
    return float(os.environ.get(name, str(default)))


@dataclass(frozen=True)
class SupervisorConfig:
    access_token: str = ""
    message_webhook_url: str | None = None
    down_webhook_url: str | None = None
    bridge_url: str = "http://127.0.0.1:3001"
    bridge_token: str | None = None
    client_id: str = "cliente-2"
    auth_dir: str = ".wwebjs_auth"
    health_interval: float = 30.0
    zombie_interval: float = 300.0
    zombie_idle_threshold: float = 900.0
    zombie_restart_delay: float = 5.0
    send_timeout: float = 30.0
    image_pause: float = 1.0
    webhook_timeout: float = 10.0
    audit_log_path: str | None = None
    call_notice: str = DEFAULT_CALL_NOTICE
    log_level: str = "INFO"

    @property
    def lock_path(self) -> Path:
        return Path(self.auth_dir) / f"session-{self.client_id}" / "SingletonLock"

    @classmethod
    def from_env(cls) -> SupervisorConfig:
        env = os.environ
        return cls(
            access_token=env.get("TOKENACCESS", ""),
            message_webhook_url=env.get("ONMESSAGE") or None,
            down_webhook_url=env.get("ONDOWN") or None,
            bridge_url=env.get("BRIDGE_URL", cls.bridge_url),
            bridge_token=env.get("BRIDGE_TOKEN") or None,
            client_id=env.get("SESSION_CLIENT_ID", cls.client_id),
            auth_dir=env.get("SESSION_AUTH_DIR", cls.auth_dir),
            health_interval=_float("HEALTH_CHECK_INTERVAL_SECONDS", cls.health_interval),
            zombie_interval=_float("ZOMBIE_CHECK_INTERVAL_SECONDS", cls.zombie_interval),
            zombie_idle_threshold=_float(
                "ZOMBIE_IDLE_THRESHOLD_SECONDS", cls.zombie_idle_threshold,
            ),
            zombie_restart_delay=_float(
                "ZOMBIE_RESTART_DELAY_SECONDS", cls.zombie_restart_delay,
            ),
            send_timeout=_float("SEND_TIMEOUT_SECONDS", cls.send_timeout),
            image_pause=_float("IMAGE_PAUSE_SECONDS", cls.image_pause),
            webhook_timeout=_float("WEBHOOK_TIMEOUT_SECONDS", cls.webhook_timeout),
            audit_log_path=env.get("AUDIT_LOG_PATH") or None,
            call_notice=env.get("CALL_DECLINE_NOTICE", cls.call_notice),
            log_level=env.get("LOG_LEVEL", cls.log_level).upper(),
        )
