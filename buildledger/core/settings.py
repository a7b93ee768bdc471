from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Supabase configuration
    SUPABASE_URL: str | None = None
    DATABASE_URL: str | None = None
    JWT_SECRET: str | None = None

    # Application URLs
    APP_BASE_URL: str = "http://localhost:8001"  # Default for development
    FRONTEND_URL: str = "http://localhost:3000"
    CORS_ORIGINS: list[str] = ["*"]

    # Xero OAuth configuration
    XERO_CLIENT_ID: str | None = None
    XERO_CLIENT_SECRET: str | None = None
    XERO_REDIRECT_URI: str | None = None
    XERO_SCOPES: str = (
        "openid profile email offline_access accounting.transactions "
        "accounting.contacts accounting.settings"
    )

    # Scheduled sync
    CRON_SECRET: str | None = None
    XERO_SYNC_LOOKBACK_HOURS: int = 24
    XERO_SYNC_MAX_PAGES: int = 1
    TOKEN_REFRESH_MARGIN_MINUTES: int = 5
    SYNC_TIME_BUDGET_SECONDS: int = 60

    # Reporting
    OVERHEADS_STAGE_NAME: str = "Overheads"
    CREATE_SUMMARY_VIEW_ON_STARTUP: bool = True

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
    )


settings = Settings()
