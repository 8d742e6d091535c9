"""Local session credential issued after a successful OTP challenge."""
from __future__ import annotations
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import jwt

logger = logging.getLogger(__name__)

SESSION_TTL_SECONDS = 2 * 60 * 60
SESSION_ALGORITHM = "HS256"


class SessionTokenIssuer:
    """Mint and verify the HS256 session token held for the current operator.

    The token is kept in memory only; a new login overwrites it.
    """

    def __init__(self, signing_key: Optional[str] = None, ttl_seconds: int = SESSION_TTL_SECONDS):
        """Initialize the issuer.

        Args:
            signing_key: HMAC key; a random per-process key is generated when empty
            ttl_seconds: Session validity window
        """
        if not signing_key:
            logger.debug("No SESSION_SIGNING_KEY configured, using an ephemeral key")
            signing_key = secrets.token_urlsafe(48)
        self._signing_key = signing_key
        self.ttl_seconds = ttl_seconds
        self._current_token: Optional[str] = None

    @classmethod
    def from_settings(cls, cfg) -> "SessionTokenIssuer":
        return cls(cfg.session_signing_key, ttl_seconds=cfg.session_ttl_seconds)

    def issue(self, user) -> str:
        """Sign a session token for a matched DirectoryUser and hold it."""
        now = datetime.now(timezone.utc)
        claims = {
            "username": user.mail or user.user_principal_name,
            "id": user.webportal_id or user.id,
            "creationType": user.creation_type,
            "iat": now,
            "exp": now + timedelta(seconds=self.ttl_seconds),
        }
        token = jwt.encode(claims, self._signing_key, algorithm=SESSION_ALGORITHM)
        self._current_token = token
        return token

    def get_current_session(self) -> Optional[dict[str, Any]]:
        """Return the verified claims of the held token, or None."""
        if not self._current_token:
            return None
        try:
            return jwt.decode(
                self._current_token,
                self._signing_key,
                algorithms=[SESSION_ALGORITHM],
                options={"require": ["exp"]},
            )
        except jwt.PyJWTError as e:
            logger.debug("Session token rejected: %s", e)
            return None

    def clear(self) -> None:
        self._current_token = None
