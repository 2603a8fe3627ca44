"""Shared configuration management for the invoicing services.

Based on Pydantic Settings v2 best practices:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_PB_URL=http://pocketbase:8090
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="yield-invoicing",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # Record store (PocketBase)
    pb_url: str = Field(
        default="http://localhost:8090",
        description="PocketBase base URL",
    )
    pb_admin_email: str = Field(
        default="",
        description="Superuser identity (use env var APP_PB_ADMIN_EMAIL)",
    )
    pb_admin_password: str = Field(
        default="",
        description="Superuser password (use env var APP_PB_ADMIN_PASSWORD)",
    )
    pb_timeout_seconds: float = Field(
        default=30.0,
        description="Timeout for record store requests",
        gt=0,
    )

    # Harvest API source
    harvest_base_url: str = Field(
        default="https://api.harvestapp.com/v2",
        description="Harvest REST API v2 base URL",
    )
    harvest_account_id: str = Field(
        default="",
        description="Harvest account id (use env var APP_HARVEST_ACCOUNT_ID)",
    )
    harvest_access_token: str = Field(
        default="",
        description="Harvest personal access token (use env var APP_HARVEST_ACCESS_TOKEN)",
    )
    harvest_page_size: int = Field(
        default=100,
        description="Records per page when paging through the Harvest API",
        ge=1,
        le=2000,
    )
    harvest_user_agent: str = Field(
        default="Yield Invoicing Importer",
        description="User-Agent sent to Harvest (required by their API)",
    )

    # Import behaviour
    import_due_days: int = Field(
        default=30,
        description="Days added to the issue date to synthesize a due date",
        ge=0,
    )
    import_file_marker: str = Field(
        default="harvest",
        description="Case-insensitive token used to discover the CSV export in the working dir",
    )
    import_default_file: str = Field(
        default="invoices.csv",
        description="Fallback CSV filename when no explicit path or marked file is found",
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
