import pytest

from entra_admin import audit
from entra_admin.config import settings
from entra_admin.config.settings import AppConfig, load_settings

ENV_VARS = [
    "TENANT_ID", "CLIENT_ID", "CLIENT_SECRET", "GRAPH_ROOT", "GRAPH_AUTHORITY", "GRAPH_SCOPE",
    "GRAPH_EXTENSION_ATTRIBUTE", "GRAPH_PAGE_SIZE", "GRAPH_REQUEST_TIMEOUT", "SMTP_HOST", "SMTP_PORT",
    "SMTP_USER", "SMTP_PASSWORD", "SMTP_FROM", "NEXT_PUBLIC_EMAIL_ID", "NEXT_PUBLIC_EMAIL_PASSWORD",
    "SESSION_SIGNING_KEY", "SESSION_TTL_SECONDS", "LOG_LEVEL", "AUDIT_LOG_DIR",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)

    real_path = settings.Path
    secrets_dir = tmp_path / "secrets"
    secrets_dir.mkdir()

    def fake_path(target):
        if str(target) == "/run/secrets":
            return secrets_dir
        return real_path(target)

    monkeypatch.setattr(settings, "Path", fake_path)
    return secrets_dir


def test_defaults_without_environment():
    cfg = load_settings()

    assert cfg.graph_root == "https://graph.microsoft.com/v1.0"
    assert cfg.page_size == 999
    assert cfg.smtp_host == "smtp.office365.com"
    assert cfg.smtp_port == 587
    assert cfg.session_ttl_seconds == 7200
    assert cfg.missing_graph_settings == ["TENANT_ID", "CLIENT_ID", "CLIENT_SECRET"]


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("TENANT_ID", "tenant")
    monkeypatch.setenv("CLIENT_ID", "client")
    monkeypatch.setenv("CLIENT_SECRET", "secret")
    monkeypatch.setenv("GRAPH_PAGE_SIZE", "50")
    monkeypatch.setenv("SMTP_USER", "otp@contoso.com")

    cfg = load_settings()

    assert cfg.missing_graph_settings == []
    assert cfg.client_secret == "secret"
    assert cfg.page_size == 50
    assert cfg.smtp_from == "otp@contoso.com"


def test_legacy_mail_variables_are_accepted(monkeypatch):
    monkeypatch.setenv("NEXT_PUBLIC_EMAIL_ID", "legacy@contoso.com")
    monkeypatch.setenv("NEXT_PUBLIC_EMAIL_PASSWORD", "legacy-pass")

    cfg = load_settings()

    assert cfg.smtp_user == "legacy@contoso.com"
    assert cfg.smtp_password == "legacy-pass"


def test_run_secrets_take_priority(monkeypatch, clean_env):
    (clean_env / "client_secret").write_text("file-secret\n")
    (clean_env / "session_signing_key").write_text("file-signing-key")
    monkeypatch.setenv("CLIENT_SECRET", "env-secret")

    cfg = load_settings()

    assert cfg.client_secret == "file-secret"
    assert cfg.session_signing_key == "file-signing-key"


def test_dotenv_file_is_loaded(tmp_path):
    env_file = tmp_path / ".env"
    env_file.write_text("TENANT_ID=from-dotenv\nCLIENT_ID=cid\n")

    cfg = load_settings()

    assert cfg.tenant_id == "from-dotenv"
    assert cfg.client_id == "cid"


def test_environment_wins_over_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("TENANT_ID=from-dotenv\n")
    monkeypatch.setenv("TENANT_ID", "from-env")

    assert load_settings().tenant_id == "from-env"


def test_invalid_integer_is_rejected(monkeypatch):
    monkeypatch.setenv("SMTP_PORT", "not-a-port")

    with pytest.raises(RuntimeError, match="SMTP_PORT must be an integer"):
        load_settings()


def test_missing_graph_settings_lists_only_absent_values():
    cfg = AppConfig(tenant_id="tenant", client_id="", client_secret="secret")
    assert cfg.missing_graph_settings == ["CLIENT_ID"]


def test_audit_directory_from_dotenv_is_used(tmp_path):
    target = tmp_path / "from-dotenv"
    (tmp_path / ".env").write_text(f"AUDIT_LOG_DIR={target}\n")

    load_settings()
    audit.log_event("login", "alice@contoso.com")

    assert audit.audit_log_dir() == target
    assert (target / "user-events.jsonl").exists()
