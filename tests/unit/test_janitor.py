"""Tests for browser process and lock cleanup."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from wabridge.session.janitor import ProcessJanitor


def _fake_proc(code: int) -> AsyncMock:
    proc = AsyncMock()
    proc.wait.return_value = code
    return proc


def _lock(tmp_path: Path) -> Path:
    lock = tmp_path / "session-cliente-2" / "SingletonLock"
    lock.parent.mkdir(parents=True)
    lock.write_text("")
    return lock


def test_for_session_builds_lock_path() -> None:
    janitor = ProcessJanitor.for_session("/srv/auth", "cliente-2")
    assert janitor.lock_path == Path("/srv/auth/session-cliente-2/SingletonLock")


def test_remove_lock_deletes_file(tmp_path: Path) -> None:
    lock = _lock(tmp_path)
    report = ProcessJanitor(lock).remove_lock()
    assert report.lock_removed is True
    assert not lock.exists()


def test_missing_lock_is_not_an_error(tmp_path: Path) -> None:
    report = ProcessJanitor(tmp_path / "nope").remove_lock()
    assert report.ok
    assert report.lock_removed is False


@pytest.mark.asyncio
async def test_terminate_runs_pkill_per_pattern(tmp_path: Path) -> None:
    janitor = ProcessJanitor(tmp_path / "lock", process_patterns=("puppeteer", "chrome"))
    with patch(
        "wabridge.session.janitor.asyncio.create_subprocess_exec",
        new_callable=AsyncMock,
        return_value=_fake_proc(0),
    ) as mock_exec:
        report = await janitor.terminate_processes()

    argv = [c.args[:3] for c in mock_exec.call_args_list]
    assert argv == [("pkill", "-f", "puppeteer"), ("pkill", "-f", "chrome")]
    assert report.terminated == ["puppeteer", "chrome"]


@pytest.mark.asyncio
async def test_no_matching_process_is_not_an_error(tmp_path: Path) -> None:
    janitor = ProcessJanitor(tmp_path / "lock")
    with patch(
        "wabridge.session.janitor.asyncio.create_subprocess_exec",
        new_callable=AsyncMock,
        return_value=_fake_proc(1),
    ):
        report = await janitor.terminate_processes()
    assert report.ok
    assert report.terminated == []


@pytest.mark.asyncio
async def test_clear_lock_removes_lock_when_pkill_unavailable(tmp_path: Path) -> None:
    lock = _lock(tmp_path)
    janitor = ProcessJanitor(lock)
    with patch(
        "wabridge.session.janitor.asyncio.create_subprocess_exec",
        new_callable=AsyncMock,
        side_effect=FileNotFoundError("pkill"),
    ):
        report = await janitor.clear_lock()

    assert not lock.exists()
    assert report.lock_removed is True
    assert len(report.errors) == 2
