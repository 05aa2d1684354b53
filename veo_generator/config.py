from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    api_key: str = Field(..., validation_alias="API_KEY")

    veo_model: str = Field("veo-2.0-generate-001", validation_alias="VEO_MODEL")
    number_of_videos: int = Field(1, validation_alias="VEO_NUMBER_OF_VIDEOS")

    poll_interval_seconds: float = Field(10.0, validation_alias="POLL_INTERVAL_SECONDS")
    status_message_interval_seconds: float = Field(10.0, validation_alias="STATUS_MESSAGE_INTERVAL_SECONDS")
    download_timeout_seconds: float = Field(120.0, validation_alias="DOWNLOAD_TIMEOUT_SECONDS")

    max_image_bytes: int = Field(10 * 1024 * 1024, validation_alias="MAX_IMAGE_BYTES")

    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    app_host: str = Field("127.0.0.1", validation_alias="APP_HOST")
    app_port: int = Field(8000, validation_alias="APP_PORT")

    @field_validator("api_key")
    @classmethod
    def require_api_key(cls, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("API_KEY must not be empty")
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return (value or "INFO").upper()


@lru_cache()
def get_settings() -> Settings:
    try:
        return Settings()
    except Exception as exc:
        raise RuntimeError("Failed to load application settings. Ensure API_KEY is set in the environment or .env.") from exc


settings = get_settings()
