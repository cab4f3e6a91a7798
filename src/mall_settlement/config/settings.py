"""Configuration management using Pydantic Settings.

Loads configuration from environment variables with .env file support.
"""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration."""

    # Database Configuration
    database_url: str = "postgresql+asyncpg://localhost:5432/mall_settlement"
    database_echo: bool = False
    auto_create_tables: bool = False

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    log_level: str = "INFO"
    environment: str = "development"

    # Business calendar (promotion validity, log timestamps)
    business_timezone: str = "Asia/Seoul"

    # Rows per bulk insert when refreshing settlement links
    link_insert_batch_size: int = 500

    # GlitchTip Error Monitoring
    glitchtip_dsn: Optional[str] = None

    class Config:
        """Pydantic config."""

        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Create a global settings instance
settings = Settings()
