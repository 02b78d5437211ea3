"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Database
    database_url: str = "postgresql+asyncpg://itemgen:itemgen_dev_password@db:5432/itemgen"
    create_tables_on_startup: bool = False

    # Storage backend: "sql" or "memory"
    storage_backend: str = "sql"

    # Authentication
    api_key: str = "dev-api-key-change-in-production"

    # Item generation
    max_option_dimensions: int = 3
    regeneration_timeout_seconds: float = 30.0
    regeneration_concurrency: int = 16

    # Locations
    default_location_name: str = "Main Location"

    # Logging
    log_level: str = "INFO"

    class Config:
        """Pydantic configuration."""

        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
