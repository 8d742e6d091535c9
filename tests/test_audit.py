"""Unit tests for the user-event audit trail."""

import json

from entra_admin import audit


def test_log_event_creates_file(temp_audit_dir):
    """Logging creates the audit file with owner-only permissions."""
    _, audit_file = temp_audit_dir

    assert not audit_file.exists()

    audit.log_event("delete", "42", operator="alice@contoso.com", details={"user_id": "u1"})

    assert audit_file.exists()
    assert audit_file.stat().st_mode & 0o777 == 0o600


def test_log_event_creates_valid_json(temp_audit_dir):
    _, audit_file = temp_audit_dir

    audit.log_event("restore", "7", operator="alice@contoso.com", details={"mail": "bob@contoso.com"})

    event = json.loads(audit_file.read_text().splitlines()[0])
    assert event["event_type"] == "restore"
    assert event["target"] == "7"
    assert event["operator"] == "alice@contoso.com"
    assert event["success"] is True
    assert "timestamp" in event
    assert "signature" in event


def test_log_multiple_events(temp_audit_dir):
    _, audit_file = temp_audit_dir

    for event_type, target in [("login", "alice@contoso.com"), ("delete", "1"), ("restore", "1")]:
        audit.log_event(event_type, target)

    parsed = [json.loads(line) for line in audit_file.read_text().splitlines()]
    assert [e["event_type"] for e in parsed] == ["login", "delete", "restore"]
    assert all(e["operator"] == "cli" for e in parsed)


def test_verify_audit_log_with_valid_signatures(temp_audit_dir):
    for i in range(5):
        audit.log_event("delete", str(i))

    assert audit.verify_audit_log() == (5, 5)


def test_verify_audit_log_detects_tampering(temp_audit_dir):
    """Signature verification detects an edited target."""
    _, audit_file = temp_audit_dir
    audit.log_event("delete", "42", details={"mail": "alice@contoso.com"})

    event = json.loads(audit_file.read_text())
    event["target"] = "43"
    audit_file.write_text(json.dumps(event) + "\n")

    assert audit.verify_audit_log() == (1, 0)


def test_log_event_without_signing_key(temp_audit_dir, monkeypatch):
    monkeypatch.setenv("AUDIT_LOG_SIGNING_KEY", "")
    _, audit_file = temp_audit_dir

    audit.log_event("login", "alice@contoso.com", success=False)

    event = json.loads(audit_file.read_text())
    assert "signature" not in event
    assert event["success"] is False


def test_audit_directory_permissions(temp_audit_dir):
    audit_dir, _ = temp_audit_dir

    audit.log_event("login", "alice@contoso.com")

    assert audit_dir.stat().st_mode & 0o777 == 0o700


def test_safe_log_event_never_raises(monkeypatch, caplog):
    def broken(*args, **kwargs):
        raise OSError("read-only file system")

    monkeypatch.setattr(audit, "log_event", broken)

    assert audit.safe_log_event("delete", "42") is False
    assert any("Failed to log delete event for 42" in r.getMessage() for r in caplog.records)


def test_verify_empty_audit_log(temp_audit_dir):
    assert audit.verify_audit_log() == (0, 0)


def test_audit_directory_is_resolved_per_call(tmp_path, monkeypatch):
    moved = tmp_path / "moved"
    monkeypatch.setenv("AUDIT_LOG_DIR", str(moved))

    audit.log_event("delete", "9")

    assert audit.audit_log_file() == moved / "user-events.jsonl"
    assert audit.verify_audit_log() == (1, 1)
