"""Application configuration from environment variables."""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Engine settings loaded from environment variables and an optional .env file."""

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = Field(
        default="sqlite:///./equb.db",
        description="SQLAlchemy connection string for the group store",
    )
    database_echo: bool = Field(default=False, description="Log SQL queries")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: str = Field(default="logs/equb.log", description="Path of the log file")

    # Groups
    group_code_prefix: str = Field(
        default="E", description="Prefix of human-facing group codes"
    )


# Global settings instance
settings = Settings()
