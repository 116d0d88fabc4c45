"""
Application configuration loaded from environment variables.
"""
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # MongoDB
    mongo_uri: str = "mongodb://mongodb:27017"
    db_name: str = "storefront_db"

    # Redis
    redis_host: str = "redis"
    redis_port: int = 6379

    # Event forwarding
    events_stream_key: str = "storefront:events"
    events_stream_maxlen: int = 10000

    # Localization
    default_lang: str = "en"

    # Credentials
    password_length: int = 20
    bcrypt_rounds: int = 10

    # JWT Configuration
    jwt_secret_key: str = "CHANGE_ME_IN_PRODUCTION_USE_STRONG_SECRET"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 30

    # Logging
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
