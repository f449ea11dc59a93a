from typing import List, Optional, Union
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Application
    ENVIRONMENT: str = "development"
    NAME: str = "Prayer Notify"
    VERSION: str = "1.0.0"
    API_PREFIX: str = "/api/v1"
    """Pydantic v2 doesn't support parsing List[str] from a plain comma-separated string by default anymore."""
    ALLOWED_HOSTS: Union[str, List[str]] = "http://localhost:3000"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./prayer_notify.db"

    # Authentication
    JWT_SECRET_KEY: str = "<your-jwt-secret-key>"
    JWT_ALGORITHM: str = "HS256"

    # Redis & Celery
    REDIS_PASSWORD: str = ""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Prayer schedule
    SCHEDULE_TIMEZONE: str = "Europe/London"
    DAILY_SWEEP_HOUR: int = 0
    DAILY_SWEEP_MINUTE: int = 30
    DEFAULT_VENUE_NAME: str = "Your Mosque"

    # Google Cloud Tasks
    GCP_PROJECT_ID: str = "<your-gcp-project-id>"
    CLOUD_TASKS_LOCATION: str = "europe-west2"
    CLOUD_TASKS_QUEUE: str = "prayerNotifications"
    DISPATCH_URL: str = "http://localhost:8000/api/v1/notifications/dispatch"

    # Firebase Cloud Messaging
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None

    # Manual sweep trigger, open when unset
    MANUAL_TRIGGER_TOKEN: Optional[str] = None

    @field_validator("ALLOWED_HOSTS", mode="before")
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if not v:
            return []
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",")]
        return v

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
