# settings.py — environment-driven configuration
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the ShareBook service.

    Every field can be overridden with a ``SHAREBOOK_``-prefixed environment
    variable (e.g. ``SHAREBOOK_DATABASE_URL``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SHAREBOOK_",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "ShareBook"
    debug: bool = False
    log_level: str = "INFO"

    database_url: str = "sqlite+aiosqlite:///./sharebook.db"

    # Public address of the web client, used to build links in emails
    server_url: str = "http://localhost:4200"

    # SMTP; an empty host disables outgoing mail
    smtp_host: str = ""
    smtp_port: int = 465
    smtp_username: str = ""
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    sender_name: str = "Sharebook"


@lru_cache
def get_settings() -> Settings:
    return Settings()
