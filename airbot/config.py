"""Bot configuration pulled from environment variables via pydantic."""
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.logging_utils import get_tagged_logger
logger = get_tagged_logger(__name__, tag="config")

AIRVISUAL_NEAREST_CITY_URL = "https://api.airvisual.com/v2/nearest_city"
TELEGRAM_API_URL = "https://api.telegram.org"


class StartupConfigurationError(RuntimeError):
    """A required setting is missing; the process must not start serving."""


class Settings(BaseSettings):
    """Environment-driven configuration for the air-quality bot."""
    model_config = SettingsConfigDict(
        env_prefix="AIRBOT_", env_file=".env", extra="ignore", populate_by_name=True
    )

    air_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("AIR_API_KEY", "AIRBOT_AIR_API_KEY"),
    )
    air_api_url: str = AIRVISUAL_NEAREST_CITY_URL
    request_timeout_seconds: float = 10.0
    telegram_bot_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TELEGRAM_BOT_TOKEN", "AIRBOT_TELEGRAM_BOT_TOKEN"),
    )
    telegram_api_url: str = TELEGRAM_API_URL
    telegram_webhook_secret: str | None = None
    transport: Literal["polling", "webhook"] = "polling"
    polling_timeout_seconds: int = 30
    polling_workers: int = 8
    log_level: str = "INFO"

    @field_validator("telegram_api_url", mode="after")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs to avoid double slashes."""
        return str(v).rstrip("/")

    def require_air_api_key(self) -> str:
        """Return the provider credential or fail startup."""
        if not self.air_api_key:
            raise StartupConfigurationError("AIR_API_KEY env var is not set")
        return self.air_api_key

    def require_telegram_bot_token(self) -> str:
        """Return the Telegram token or fail startup."""
        if not self.telegram_bot_token:
            raise StartupConfigurationError("TELEGRAM_BOT_TOKEN env var is not set")
        return self.telegram_bot_token


settings = Settings()


if __name__ == "__main__":
    logger.setLevel("DEBUG")
    logger.debug(f"Loaded settings: {settings.model_dump_json(indent=4, exclude={'air_api_key', 'telegram_bot_token'})}")
