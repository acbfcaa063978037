"""Application settings using Pydantic."""
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///job_inbox.db",
        description="SQLAlchemy database URL",
    )

    # Gmail
    gmail_credentials_file: str = Field(
        default="credentials.json",
        description="Path to Gmail OAuth credentials file",
    )
    gmail_token_file: str = Field(
        default="token.json",
        description="Path to Gmail OAuth token file",
    )
    gmail_label: Optional[str] = Field(
        default=None,
        description="Restrict monitoring to a single Gmail label (e.g. 'Jobs')",
    )

    # Monitoring loop
    email_check_interval_minutes: int = Field(
        default=5,
        description="How often to check Gmail for new emails (minutes)",
    )
    mail_timeout_seconds: float = Field(
        default=60.0,
        description="Upper bound for a single mail source round trip (seconds)",
    )
    mail_max_results: int = Field(
        default=100,
        description="Page size of each mailbox search; a cycle pages until its window is drained",
    )
    initial_lookback_hours: int = Field(
        default=24,
        description="How far back the first cycle looks when no watermark exists",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )
    log_file: Optional[str] = Field(
        default="logs/job_inbox.log",
        description="Rotating log file path (empty to disable)",
    )

    # Paths
    config_dir: Path = Field(
        default=Path(__file__).parent,
        description="Configuration directory",
    )

    @property
    def rules_path(self) -> Path:
        """Path to the email classification rule table."""
        return self.config_dir / "email_rules.yaml"

    @property
    def project_root(self) -> Path:
        """Project root directory."""
        return self.config_dir.parent


# Global settings instance
settings = Settings()
