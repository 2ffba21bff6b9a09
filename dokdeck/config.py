"""
Client configuration using Pydantic Settings.
Loads from environment variables and .env file.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client settings loaded from environment variables."""
    
    model_config = SettingsConfigDict(
        env_prefix="DOKDECK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
    
    app_name: str = "DokDeck"
    log_level: str = "INFO"
    
    # Durable storage
    storage_path: str = "data/dokdeck.db"
    
    # REST API
    request_timeout_seconds: float = 15.0
    api_path_prefix: str = "/api"
    probe_path: str = "project.all"
    profile_path: str = "auth/me"
    
    # Log streaming
    log_stream_path: str = "/docker-container-logs"
    log_buffer_limit: int = 1000
    default_log_tail: int = 100
    default_log_since: str = "all"
    default_log_run_type: str = "native"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
