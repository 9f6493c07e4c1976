from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str | None = None
    DATABASE_ECHO: bool = False

    USER_SERVICE_URL: str | None = None
    NOTIFICATION_SERVICE_URL: str | None = None
    UPSTREAM_TIMEOUT_SECONDS: float = 5.0
    NOTIFICATION_TIMEOUT_SECONDS: float = 5.0
    NOTIFICATION_MAX_WORKERS: int = 4
    NOTIFICATION_MAX_PENDING: int = 100

    BOOKING_TIMEZONE: str = "America/Guayaquil"


settings = Settings()
