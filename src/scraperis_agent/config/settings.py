from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from scraperis_agent.errors import MissingConfiguration, MissingCredential

load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    scraperis_api_key: str = Field(default="", alias="SCRAPERIS_API_KEY")
    scraperis_api_base: str = Field(
        default="https://scraper.is/api", alias="SCRAPERIS_API_BASE"
    )

    # Polling cadence; the unit is seconds here, the remote protocol has no opinion.
    poll_interval_seconds: float = Field(
        default=5.0, alias="SCRAPERIS_POLL_INTERVAL_SECONDS"
    )
    default_api_timeout_seconds: int = Field(
        default=20, alias="DEFAULT_API_TIMEOUT_SECONDS"
    )
    job_deadline_seconds: float | None = Field(
        default=None, alias="SCRAPERIS_JOB_DEADLINE_SECONDS"
    )

    # Screenshot storage signing
    storage_url: str = Field(default="", alias="SCRAPERIS_STORAGE_URL")
    storage_key: str = Field(default="", alias="SCRAPERIS_STORAGE_KEY")
    storage_bucket: str = Field(default="screenshots", alias="SCRAPERIS_STORAGE_BUCKET")
    signed_url_ttl_seconds: int = Field(
        default=3600, alias="SCRAPERIS_SIGNED_URL_TTL_SECONDS"
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    server_version: str = Field(default="0.1.0", alias="SERVER_VERSION")

    def validate_startup(self) -> None:
        """Fail fast on configuration the process cannot run without."""
        if not self.scraperis_api_key.strip():
            raise MissingCredential("SCRAPERIS_API_KEY is not set")
        if not self.scraperis_api_base.strip():
            raise MissingConfiguration("SCRAPERIS_API_BASE is empty")
        if self.poll_interval_seconds <= 0:
            raise MissingConfiguration(
                "SCRAPERIS_POLL_INTERVAL_SECONDS must be greater than zero"
            )
        if self.job_deadline_seconds is not None and self.job_deadline_seconds <= 0:
            raise MissingConfiguration(
                "SCRAPERIS_JOB_DEADLINE_SECONDS must be greater than zero when set"
            )


@lru_cache
def get_settings() -> Settings:
    return Settings()
