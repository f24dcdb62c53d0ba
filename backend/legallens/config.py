"""
LegalLens Backend Configuration
Pydantic settings for environment variables.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database (key-value storage backend)
    database_url: str = "sqlite:///./legallens.db"

    # Security
    secret_key: str = "super-secret-key-change-in-production"
    jwt_algorithm: str = "HS256"
    jwt_expiry_days: int = 7

    # AI API
    anthropic_api_key: str = ""

    # Claude Models
    analysis_model: str = "claude-3-5-haiku-20241022"
    chat_model: str = "claude-sonnet-4-5-20250929"
    analysis_temperature: float = 0.2
    chat_temperature: float = 0.3
    analysis_max_tokens: int = 8192
    chat_max_tokens: int = 2000

    # Uploads
    max_upload_bytes: int = 20 * 1024 * 1024
    allowed_mime_types: list[str] = [
        "application/pdf",
        "image/jpeg",
        "image/png",
        "image/webp",
    ]

    # Limits
    recent_analyses_limit: int = 10
    upload_batches_per_user: int = 5
    chat_history_window: int = 10
    contract_context_chars: int = 20000
    max_compare: int = 3

    # Application
    debug: bool = False
    log_level: str = "INFO"
    allowed_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
