"""Typed settings configuration - single source of truth."""

from functools import lru_cache

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Document store credentials (service account JSON)
    firebase_service_account_key: SecretStr | None = None
    jobs_collection: str = "itineraries"
    firestore_base_url: str = "https://firestore.googleapis.com/v1"

    # Token exchange
    token_uri: str = "https://oauth2.googleapis.com/token"
    token_scope: str = "https://www.googleapis.com/auth/datastore"
    token_lifetime_seconds: int = 3600

    # Model
    openai_api_key: SecretStr | None = None
    openai_model: str = "gpt-4o"
    openai_temperature: float = 0.7
    openai_max_tokens: int = 3000

    # Transport timeout (seconds)
    http_timeout_seconds: float = 30.0

    # Retry / backoff
    retry_max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 30000
    retry_backoff_factor: float = 2.0

    # Submission limits
    min_destination_length: int = 2
    min_duration_days: int = 1
    max_duration_days: int = 30

    # Itinerary content
    min_description_length: int = 20

    # Wall-clock ceiling for one background generation (None = unbounded)
    generation_deadline_seconds: float | None = None

    # HTTP surface
    cors_origins: list[str] = ["*"]
    expose_error_details: bool = True

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
