"""Application configuration via environment variables.

Provides type-safe settings loading using pydantic-settings.
Environment variables can be loaded from a .env file.
"""

from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Mail relay settings loaded from environment variables.

    All settings have sensible defaults for development.
    Production deployments MUST set PASSWORD_PEPPER and DATABASE_URL.

    Environment Variables:
        SMTP_HOST / SMTP_PORT: Inbound SMTP bind address
        SMTP_ALLOWED_DOMAINS: Comma-separated recipient domains accepted for relay
        SMTP_AUTH_OPTIONAL: Allow anonymous submission (default True)
        SMTP_IDLE_TIMEOUT: Seconds before an idle SMTP session is dropped
        DELIVERY_HOST / DELIVERY_PORT: Downstream SMTP used for outbound mail
        STORAGE_ROOT: Root directory of the record store
        DATABASE_URL: SQLAlchemy URL of the credential database
        PASSWORD_PEPPER: Secret hashing pepper
        LOG_LEVEL / LOG_JSON: Logging configuration
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Inbound SMTP
    SMTP_HOST: str = "0.0.0.0"
    SMTP_PORT: int = 2525
    SMTP_HOSTNAME: Optional[str] = None
    SMTP_ALLOWED_DOMAINS: str = "google.in,domain.com"
    SMTP_AUTH_OPTIONAL: bool = True
    SMTP_AUTH_REQUIRE_TLS: bool = False
    SMTP_IDLE_TIMEOUT: int = 300
    SMTP_MAX_MESSAGE_SIZE: int = 26_214_400  # 25 MB

    # Outbound delivery (defaults to the local inbound listener)
    DELIVERY_HOST: str = "127.0.0.1"
    DELIVERY_PORT: int = 2525
    DELIVERY_USE_TLS: bool = False
    DELIVERY_TIMEOUT: float = 60.0
    DELIVERY_USERNAME: Optional[str] = None
    DELIVERY_PASSWORD: Optional[str] = None

    # HTTP API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000
    CORS_ORIGINS: str = "*"
    API_REQUIRE_KEY: bool = False

    # Storage
    STORAGE_ROOT: Path = Path("emails")
    UPLOAD_DIR: Optional[Path] = None

    # Credentials
    DATABASE_URL: str = "sqlite:///./mailrelay.db"
    PASSWORD_PEPPER: str = "dev-pepper-key-CHANGE-IN-PRODUCTION"

    # Application
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    ENVIRONMENT: str = "development"

    @property
    def allowed_domains(self) -> List[str]:
        """Allow-listed recipient domains, lowercased."""
        return [
            domain.strip().lower()
            for domain in self.SMTP_ALLOWED_DOMAINS.split(",")
            if domain.strip()
        ]

    @property
    def upload_dir(self) -> Path:
        return self.UPLOAD_DIR or self.STORAGE_ROOT / "uploads"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance.

    Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
