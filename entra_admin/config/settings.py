"""Settings loader with environment variable and Docker secrets integration."""
from __future__ import annotations
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DEFAULT_EXTENSION_ATTRIBUTE = "extension_8d70fb4f813c44f08d13356ad1d46c2b_User_id"


def _load_secret_from_file(secret_name: str, *env_vars: str) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name} (Docker secrets mount)
    2. Environment variables, first non-empty wins

    Args:
        secret_name: Name of the secret file in /run/secrets
        env_vars: Environment variable names to check as fallback

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            secret_value = secret_file.read_text().strip()
            if secret_value:
                logger.debug("Loaded %s from /run/secrets", secret_name)
                return secret_value
        except OSError as e:
            logger.warning("Failed to read /run/secrets/%s: %s", secret_name, e)

    for env_var in env_vars:
        secret_value = os.getenv(env_var)
        if secret_value:
            return secret_value

    return None


def _int_env(var_name: str, default: int) -> int:
    raw = os.environ.get(var_name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {var_name} must be an integer, got {raw!r}.")


@dataclass
class AppConfig:
    """Application configuration container."""
    # Directory app registration
    tenant_id: str = ""
    client_id: str = ""
    client_secret: str = ""

    # Microsoft Graph
    graph_root: str = "https://graph.microsoft.com/v1.0"
    graph_authority: str = "https://login.microsoftonline.com"
    graph_scope: str = "https://graph.microsoft.com/.default"
    extension_attribute: str = DEFAULT_EXTENSION_ATTRIBUTE
    page_size: int = 999
    request_timeout: int = 30

    # OTP mail
    smtp_host: str = "smtp.office365.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    smtp_from: str = ""

    # Local session credential
    session_signing_key: str = ""
    session_ttl_seconds: int = 7200

    log_level: str = "INFO"

    @property
    def missing_graph_settings(self) -> list[str]:
        """Names of the directory credentials that are not configured."""
        missing = []
        if not self.tenant_id:
            missing.append("TENANT_ID")
        if not self.client_id:
            missing.append("CLIENT_ID")
        if not self.client_secret:
            missing.append("CLIENT_SECRET")
        return missing


def load_settings(env_file: str | None = None) -> AppConfig:
    """Load application settings from .env, environment and /run/secrets."""
    load_dotenv(env_file or find_dotenv(usecwd=True), override=False)

    smtp_user = os.environ.get("SMTP_USER") or os.environ.get("NEXT_PUBLIC_EMAIL_ID", "")

    return AppConfig(
        tenant_id=os.environ.get("TENANT_ID", ""),
        client_id=os.environ.get("CLIENT_ID", ""),
        client_secret=_load_secret_from_file("client_secret", "CLIENT_SECRET") or "",
        graph_root=os.environ.get("GRAPH_ROOT", "https://graph.microsoft.com/v1.0"),
        graph_authority=os.environ.get("GRAPH_AUTHORITY", "https://login.microsoftonline.com"),
        graph_scope=os.environ.get("GRAPH_SCOPE", "https://graph.microsoft.com/.default"),
        extension_attribute=os.environ.get("GRAPH_EXTENSION_ATTRIBUTE", DEFAULT_EXTENSION_ATTRIBUTE),
        page_size=_int_env("GRAPH_PAGE_SIZE", 999),
        request_timeout=_int_env("GRAPH_REQUEST_TIMEOUT", 30),
        smtp_host=os.environ.get("SMTP_HOST", "smtp.office365.com"),
        smtp_port=_int_env("SMTP_PORT", 587),
        smtp_user=smtp_user,
        smtp_password=_load_secret_from_file("smtp_password", "SMTP_PASSWORD", "NEXT_PUBLIC_EMAIL_PASSWORD") or "",
        smtp_from=os.environ.get("SMTP_FROM") or smtp_user,
        session_signing_key=_load_secret_from_file("session_signing_key", "SESSION_SIGNING_KEY") or "",
        session_ttl_seconds=_int_env("SESSION_TTL_SECONDS", 7200),
        log_level=os.environ.get("LOG_LEVEL", "INFO"),
    )
