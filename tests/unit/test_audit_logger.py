"""Tests for the supervisor journal."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from wabridge.audit.logger import AuditLogger
from wabridge.models import AuditEvent, AuditEventType, Severity


def _make_event(**kwargs: object) -> AuditEvent:
    defaults: dict[str, object] = {
        "event_type": AuditEventType.SESSION_RECOVERY,
        "action": "mark_not_ready",
        "result": "success",
        "severity": Severity.WARNING,
    }
    defaults.update(kwargs)
    return AuditEvent(**defaults)  # type: ignore[arg-type]


def test_log_appends_json_line(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))
    logger.log(_make_event(details={"origin": "send"}))

    lines = log_file.read_text().strip().split("\n")
    assert len(lines) == 1
    parsed = json.loads(lines[0])
    assert parsed["event_type"] == "session_recovery"
    assert parsed["severity"] == "warning"
    assert parsed["details"] == {"origin": "send"}


def test_unset_fields_are_omitted(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    AuditLogger(log_path=str(log_file)).log(_make_event())
    parsed = json.loads(log_file.read_text())
    assert "source_ip" not in parsed
    assert "details" not in parsed


def test_log_multiple_events_append(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file))

    for i in range(3):
        logger.log(_make_event(action=f"action_{i}"))

    lines = log_file.read_text().strip().split("\n")
    assert len(lines) == 3
    for i, line in enumerate(lines):
        assert json.loads(line)["action"] == f"action_{i}"


def test_log_creates_file_if_missing(tmp_path: Path) -> None:
    log_file = tmp_path / "subdir" / "audit.jsonl"
    assert not log_file.exists()

    AuditLogger(log_path=str(log_file)).log(_make_event())

    assert log_file.exists()


def test_rotation_shifts_backups(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=2)

    for i in range(4):
        logger.log(_make_event(action=f"a{i}"))

    assert json.loads(log_file.read_text())["action"] == "a3"
    assert json.loads((tmp_path / "audit.jsonl.1").read_text())["action"] == "a2"
    assert json.loads((tmp_path / "audit.jsonl.2").read_text())["action"] == "a1"
    assert not (tmp_path / "audit.jsonl.3").exists()


def test_zero_backups_truncates(tmp_path: Path) -> None:
    log_file = tmp_path / "audit.jsonl"
    logger = AuditLogger(log_path=str(log_file), max_bytes=1, backup_count=0)
    logger.log(_make_event(action="old"))
    logger.log(_make_event(action="new"))

    assert json.loads(log_file.read_text())["action"] == "new"
    assert not (tmp_path / "audit.jsonl.1").exists()


def test_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("AUDIT_LOG_MAX_BYTES", "2048")
    monkeypatch.setenv("AUDIT_LOG_BACKUP_COUNT", "1")
    logger = AuditLogger.from_env(str(tmp_path / "a.jsonl"))
    assert logger._max_bytes == 2048
    assert logger._backup_count == 1
