from datetime import timedelta

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    # Application settings
    app_name: str = "eventhub"
    app_version: str = "1.0.0"
    debug: bool = False
    environment: str = "development"
    host: str = "0.0.0.0"
    port: int = 8080

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./eventhub.db"

    # Identity settings
    admin_identity: str = ""
    anonymous_identity: str = "anonymous"
    signing_secret: str = ""

    # Browse ledger settings
    dedup_window_hours: float = 24
    max_clock_skew_seconds: int = 300
    default_page_size: int = 20
    max_page_size: int = 100

    # Logging settings
    log_level: str = "INFO"
    json_logs: bool = True
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def dedup_window(self) -> timedelta:
        return timedelta(hours=self.dedup_window_hours)

    @property
    def max_clock_skew(self) -> timedelta:
        return timedelta(seconds=self.max_clock_skew_seconds)


settings = Settings()
