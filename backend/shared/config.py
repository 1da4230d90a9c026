"""
Runtime configuration for the bulletin watcher.

All settings come from environment variables (optionally loaded from a .env
file) and are read once into a Settings object that is passed explicitly to
every operation.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field

DEFAULT_SOURCE_URL = (
    "https://mesonet.agron.iastate.edu/cgi-bin/afos/retrieve.py"
    "?pil=AFDBRO&fmt=text&limit=1"
)
DEFAULT_USER_AGENT = "bro-weather-bot (+https://github.com/bro-weather-bot)"
DEFAULT_SUBJECT = "New AFDBRO (Brownsville) bulletin"


class Settings(BaseModel):
    """Validated configuration for one process."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    # Upstream feed
    source_url: str = DEFAULT_SOURCE_URL
    user_agent: str = DEFAULT_USER_AGENT
    request_timeout: float = Field(30.0, gt=0)

    # Mail
    sender: str | None = None
    default_recipient: str | None = None
    email_subject: str = DEFAULT_SUBJECT
    public_base_url: str = "http://localhost:8787"

    smtp_host: str | None = None
    smtp_port: int | None = Field(None, gt=0, le=65535)
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_secure: bool = False
    smtp_starttls: bool = True

    resend_api_key: str | None = None

    # Storage
    supabase_url: str | None = None
    supabase_service_key: str | None = None
    kv_table: str = "bulletin_kv"
    kv_page_size: int = Field(1000, gt=0)

    @property
    def smtp_configured(self) -> bool:
        return bool(
            self.smtp_host
            and self.smtp_port
            and self.smtp_username
            and self.smtp_password
        )

    @property
    def use_implicit_tls(self) -> bool:
        """SMTP over TLS from the first byte (explicit flag or port 465)."""
        return self.smtp_secure or self.smtp_port == 465


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() == "true"


def _env_str(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value


def load_settings() -> Settings:
    """
    Build Settings from the environment.

    Returns:
        Settings instance

    Raises:
        pydantic.ValidationError: If a numeric variable is malformed
    """
    load_dotenv()

    values: dict[str, object] = {
        "source_url": _env_str("SOURCE_URL"),
        "user_agent": _env_str("USER_AGENT"),
        "request_timeout": _env_str("REQUEST_TIMEOUT"),
        "sender": _env_str("SENDER"),
        "default_recipient": _env_str("RECIPIENT"),
        "email_subject": _env_str("EMAIL_SUBJECT"),
        "public_base_url": _env_str("PUBLIC_BASE_URL"),
        "smtp_host": _env_str("SMTP_HOST"),
        "smtp_port": _env_str("SMTP_PORT"),
        "smtp_username": _env_str("SMTP_USERNAME"),
        "smtp_password": _env_str("SMTP_PASSWORD"),
        "smtp_secure": _env_flag("SMTP_SECURE", False),
        "smtp_starttls": _env_flag("SMTP_STARTTLS", True),
        "resend_api_key": _env_str("RESEND_API_KEY"),
        "supabase_url": _env_str("SUPABASE_URL"),
        "supabase_service_key": _env_str("SUPABASE_SERVICE_KEY"),
        "kv_table": _env_str("KV_TABLE"),
        "kv_page_size": _env_str("KV_PAGE_SIZE"),
    }

    # Unset variables fall back to the model defaults
    return Settings(**{k: v for k, v in values.items() if v is not None})
