"""Click CLI to run and operate the wabridge supervisor."""

from __future__ import annotations

import asyncio
import json
import logging
import os

import click
import httpx

from wabridge.config import SupervisorConfig
from wabridge.session.janitor import ProcessJanitor


@click.group()
@click.option("--url", default="http://127.0.0.1:8080", help="Base URL of a running wabridge app.")
@click.pass_context
def cli(ctx: click.Context, url: str) -> None:
    """wabridge session supervisor CLI."""
    ctx.ensure_object(dict)
    ctx.obj["url"] = url.rstrip("/")


@cli.command()
@click.option("--host", default="0.0.0.0", help="Bind address.")
@click.option("--port", default=8080, type=int, help="Bind port.")
def serve(host: str, port: int) -> None:
    """Run the HTTP app with configuration from the environment."""
    import uvicorn

    config = SupervisorConfig.from_env()
    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    uvicorn.run(
        "wabridge.proxy.app:create_app_from_env",
        host=host,
        port=port,
        factory=True,
    )


@cli.command()
@click.pass_context
def probe(ctx: click.Context) -> None:
    """Ask the running app whether the session is ready (exit 1 if not)."""
    try:
        resp = httpx.get(f"{ctx.obj['url']}/test", timeout=30.0)
    except httpx.HTTPError as exc:
        raise click.ClickException(f"Probe failed: {exc}") from exc
    click.echo(resp.text)
    if resp.status_code != 200:
        ctx.exit(1)


@cli.command()
@click.argument("phone_number")
@click.option("--message", "-m", default=None, help="Text, or caption for media.")
@click.option("--image-url", default=None, help="Single image URL.")
@click.option("--image-urls", multiple=True, help="Image URL; repeat for a batch.")
@click.option("--pdf-url", default=None, help="PDF URL.")
@click.option("--token", envvar="TOKENACCESS", required=True, help="Bearer token.")
@click.pass_context
def send(
    ctx: click.Context,
    phone_number: str,
    message: str | None,
    image_url: str | None,
    image_urls: tuple[str, ...],
    pdf_url: str | None,
    token: str,
) -> None:
    """Send a message through the running app."""
    body: dict[str, object] = {"phoneNumber": phone_number}
    if message:
        body["message"] = message
    if image_url:
        body["imageUrl"] = image_url
    if image_urls:
        body["imageUrls"] = list(image_urls)
    if pdf_url:
        body["pdfUrl"] = pdf_url

    try:
        resp = httpx.post(
            f"{ctx.obj['url']}/send",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
            timeout=120.0,
        )
    except httpx.HTTPError as exc:
        raise click.ClickException(f"Send failed: {exc}") from exc
    click.echo(resp.text)
    if resp.status_code != 200:
        ctx.exit(1)


@cli.command("clear-lock")
@click.option("--auth-dir", default=None, help="Session auth directory.")
@click.option("--client-id", default=None, help="Session client id.")
def clear_lock(auth_dir: str | None, client_id: str | None) -> None:
    """Kill lingering browser processes and remove the session lock."""
    config = SupervisorConfig.from_env()
    janitor = ProcessJanitor.for_session(
        auth_dir or config.auth_dir, client_id or config.client_id,
    )
    report = asyncio.run(janitor.clear_lock())
    click.echo(json.dumps({
        "lock_path": os.fspath(janitor.lock_path),
        "terminated": report.terminated,
        "lock_removed": report.lock_removed,
        "errors": report.errors,
    }, indent=2))
