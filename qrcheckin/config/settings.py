from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    debug: bool = True
    cors_origins: list[str] = ["*"]

    ENVIRONMENT: str = "Production"

    # Database
    database_url: str = "sqlite+aiosqlite:///./qrcheckin.db"
    log_db: bool = False

    # Email (SMTP)
    smtp_host: str = "localhost"
    smtp_port: int = 1025
    smtp_user: str = ""
    smtp_password: str = ""
    emails_from: str = "events@example.org"
    organization_name: str = "Community Events"

    # Email (Resend) - if set, use Resend API instead of SMTP
    resend_api_key: str = ""

    # Credentials
    credential_prefix: str = "JTM-EVENT"
    credential_box_size: int = 10
    credential_border: int = 4

    # Dispatch
    # Gap between two sends of a batch, imposed by the mail provider's rate limit
    dispatch_delay_seconds: float = 5.0

    # CLI
    active_event_file: str = ".qrcheckin-active-event.json"

    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0
    SENTRY_PROFILES_SAMPLE_RATE: float = 0.0

    RUN_MIGRATIONS_ON_STARTUP: bool = False

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
