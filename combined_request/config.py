"""Library configuration."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Form request settings loaded from environment variables."""

    # Error bag used when a request class does not name its own
    error_bag: str = "default"

    # Authorization denial in component mode
    authorization_error_key: str = "authorization"
    authorization_message: str = "This action is unauthorized."

    model_config = SettingsConfigDict(
        env_prefix="COMBINED_REQUEST_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
