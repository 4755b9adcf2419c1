"""
Configuration management for Compliance Queue.
"""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = Field(default="Compliance Queue")
    debug: bool = Field(default=False)
    environment: str = Field(default="development")

    # API
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    api_workers: int = Field(default=1)
    cors_allow_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins ('*' allows any).",
    )

    # Database
    database_url: str = Field(default="sqlite:///./compliance_queue.db")

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="json", description="'json' or 'console'")

    # Scrape service
    scrape_service_url: str = Field(
        default="https://agent.mangrovesai.com/scrape_compliance_artifact"
    )
    scrape_api_key: Optional[str] = Field(default=None)
    scrape_result_limit: int = Field(default=10, ge=1)
    scrape_save_to_kb: bool = Field(default=True)
    scrape_timeout_seconds: float = Field(default=120.0, gt=0)

    # Pipeline
    pipeline_max_workers: int = Field(default=1, ge=1)
    pipeline_run_deadline_seconds: float = Field(
        default=0,
        ge=0,
        description="Stop claiming new items after this many seconds. 0 disables the deadline.",
    )
    stale_claim_seconds: int = Field(default=3600, ge=1)
    reconcile_on_startup: bool = Field(default=True)

    @property
    def cors_origins(self) -> list[str]:
        """Parsed CORS origins."""
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
