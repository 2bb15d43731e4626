from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str

    # Redis
    redis_url: str

    # API
    api_port: int = 8000

    # Security
    internal_auth_secret: str  # HMAC secret shared with the identity gateway
    classifier_auth_secret: str  # HMAC secret of the content classifier

    # Admin
    admin_user: str = "admin"
    admin_pass: str = "changeme"

    # Moderation
    report_rate_limit_max: int = 10
    report_rate_limit_window_hours: int = 24
    queue_default_limit: int = 100
    queue_max_limit: int = 500

    # Environment
    environment: str = "development"
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


settings = Settings()
