"""Input validation helpers for operator prompts and command arguments."""
from __future__ import annotations
import re

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")
OTP_PATTERN = re.compile(r"[0-9]{6}")


def validate_email(email: str) -> str:
    """Validate an operator email address.

    Args:
        email: Raw input

    Returns:
        Stripped email address

    Raises:
        ValueError: If the input does not look like an email address
    """
    email = (email or "").strip()
    if not EMAIL_PATTERN.search(email):
        raise ValueError("Enter a valid email address")
    return email


def validate_otp(otp: str) -> str:
    """Validate a one-time password: exactly six ASCII digits, nothing else.

    Raises:
        ValueError: If the input is not six digits
    """
    otp = otp or ""
    if not OTP_PATTERN.fullmatch(otp):
        raise ValueError("Please enter a valid 6-digit OTP.")
    return otp


def parse_webportal_ids(raw: str) -> list[int]:
    """Parse a comma-separated list of webportal ids.

    Blank entries are ignored; order is preserved.

    Raises:
        ValueError: If an entry is not an integer or the list is empty
    """
    ids = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            ids.append(int(part))
        except ValueError:
            raise ValueError(f"Invalid Webportal ID: {part!r}")
    if not ids:
        raise ValueError("Enter at least one Webportal ID")
    return ids
