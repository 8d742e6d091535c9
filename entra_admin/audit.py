"""Audit trail for operator logins and user deletions/restorations."""

from __future__ import annotations
import datetime
import hashlib
import hmac
import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

logger = logging.getLogger(__name__)

DEFAULT_AUDIT_LOG_DIR = ".runtime/audit"
AUDIT_LOG_FILENAME = "user-events.jsonl"
_SECRET_FILE = Path("/run/secrets/audit_log_signing_key")

EventType = Literal["login", "delete", "restore"]


def audit_log_dir() -> Path:
    """Resolve AUDIT_LOG_DIR at call time so a .env loaded after import applies."""
    return Path(os.environ.get("AUDIT_LOG_DIR") or DEFAULT_AUDIT_LOG_DIR)


def audit_log_file() -> Path:
    return audit_log_dir() / AUDIT_LOG_FILENAME


def _get_signing_key() -> bytes:
    """Read the signing key lazily so tests and secret mounts can change it."""
    if _SECRET_FILE.exists():
        try:
            return _SECRET_FILE.read_text(encoding="utf-8").strip().encode("utf-8")
        except OSError:
            pass
    return os.environ.get("AUDIT_LOG_SIGNING_KEY", "").strip().encode("utf-8")


def _ensure_audit_dir() -> Path:
    """Create audit directory with restricted permissions."""
    audit_dir = audit_log_dir()
    audit_dir.mkdir(parents=True, exist_ok=True)
    audit_dir.chmod(0o700)
    return audit_dir / AUDIT_LOG_FILENAME


def _sign_event(event: dict[str, Any]) -> str:
    """Generate HMAC-SHA256 signature for audit event."""
    signing_key = _get_signing_key()
    if not signing_key:
        return ""
    canonical = json.dumps(event, sort_keys=True, separators=(",", ":"))
    return hmac.new(signing_key, canonical.encode("utf-8"), hashlib.sha256).hexdigest()


def log_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "cli",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """Append one event to the JSONL audit trail.

    Args:
        event_type: login, delete or restore
        target: Email or webportal id the operation was about
        operator: Authenticated operator (or "cli" before login)
        details: Additional context (ids, failure reason)
        success: Whether the operation succeeded
    """
    audit_file = _ensure_audit_dir()

    event = {
        "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
        "event_type": event_type,
        "target": target,
        "operator": operator,
        "success": success,
        "details": details or {},
    }

    signature = _sign_event(event)
    if signature:
        event["signature"] = signature

    with audit_file.open("a", encoding="utf-8") as f:
        f.write(json.dumps(event, ensure_ascii=False) + "\n")

    audit_file.chmod(0o600)


def safe_log_event(
    event_type: EventType,
    target: str,
    *,
    operator: str = "cli",
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> bool:
    """Log an event without ever raising.

    Audit failures are reported through the logger so that a read-only
    working directory never breaks user operations.

    Returns:
        True if event was logged successfully, False if logging failed
    """
    try:
        log_event(event_type, target, operator=operator, details=details, success=success)
        return True
    except Exception as e:
        logger.warning("Failed to log %s event for %s: %s", event_type, target, e)
        return False


def verify_audit_log() -> tuple[int, int]:
    """Verify all signatures in the audit log.

    Returns:
        Tuple of (total_events, valid_signatures)
    """
    audit_file = audit_log_file()
    if not audit_file.exists():
        return 0, 0

    total = 0
    valid = 0

    with audit_file.open("r", encoding="utf-8") as f:
        for line in f:
            if not line.strip():
                continue
            total += 1
            try:
                event = json.loads(line)
                stored_sig = event.pop("signature", "")
                if not stored_sig:
                    continue
                computed_sig = _sign_event(event)
                if hmac.compare_digest(stored_sig, computed_sig):
                    valid += 1
            except (json.JSONDecodeError, KeyError):
                continue

    return total, valid
