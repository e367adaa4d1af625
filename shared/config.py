"""
Shared configuration management for 254Carbon Access Layer.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="ACCESS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )
    
    # Environment
    env: str = "local"
    log_level: str = "info"
    
    # External services
    redis_url: str = "redis://localhost:6379/0"
