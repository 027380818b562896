from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PKG_DIR = Path(__file__).resolve().parent
ENV_PATH = PKG_DIR / ".env"


class Settings(BaseSettings):
    # App
    app_env: str = "dev"
    port: int = Field(3000, validation_alias="PORT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    # Cache
    cache_ttl_seconds: int = Field(
        6 * 60 * 60, validation_alias="CACHE_TTL_SECONDS"
    )
    cache_backend: str = Field("memory", validation_alias="CACHE_BACKEND")
    prewarm_on_startup: bool = Field(
        True, validation_alias="PREWARM_ON_STARTUP"
    )

    # Sources
    manual_events_path: Path = Field(
        PKG_DIR / "data" / "manual_events.json",
        validation_alias="MANUAL_EVENTS_PATH",
    )
    source_concurrency: int = Field(6, validation_alias="SOURCE_CONCURRENCY")
    detail_concurrency: int = Field(16, validation_alias="DETAIL_CONCURRENCY")

    # HTTP client
    http_timeout_seconds: float = Field(
        15.0, validation_alias="HTTP_TIMEOUT_SECONDS"
    )
    http_max_retries: int = Field(0, validation_alias="HTTP_MAX_RETRIES")
    http_user_agent: str = Field(
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36",
        validation_alias="HTTP_USER_AGENT",
    )
    crawler_user_agent: str = Field(
        "Mozilla/5.0 (compatible; Googlebot/2.1; +http://www.google.com/bot.html)",
        validation_alias="CRAWLER_USER_AGENT",
    )

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
