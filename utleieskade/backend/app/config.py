from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_CORS_ORIGINS = [
    "https://utleieskade-admin.vercel.app",
    "https://utleieskade-inspector.vercel.app",
    "https://utleieskade-tenant.vercel.app",
    "https://utleieskade-landlord.vercel.app",
    "http://localhost:3000",
    "http://localhost:3001",
    "http://localhost:3002",
    "http://localhost:3003",
]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ---- App ----
    app_env: str = "local"  # local|dev|prod
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    log_json: bool = True  # false gives plain text lines for local runs
    api_prefix: str = ""
    public_base_url: str = ""

    # ---- Database ----
    database_url: str = "sqlite:///./utleieskade.db"
    db_pool_size: int = 5
    db_connect_retry_seconds: float = 5.0
    db_connect_max_attempts: int = 0  # 0 = retry forever

    # ---- CORS (used by main.py) ----
    cors_allow_origins: list[str] | str = DEFAULT_CORS_ORIGINS

    # ---- JWT ----
    jwt_secret: str = "dev-change-me"
    jwt_exp_minutes: int = 60 * 24 * 7  # 7 days
    jwt_elevated_exp_minutes: int = 30

    # ---- Passwords ----
    password_min_length: int = 6
    pbkdf2_iterations: int = 210_000

    # ---- OTP ----
    otp_ttl_minutes: int = 10
    otp_resend_cooldown_seconds: int = 60

    # ---- Stripe ----
    stripe_secret_key: str | None = None
    stripe_currency: str = "nok"

    # ---- SMTP ----
    email_host: str | None = None
    email_port: int = 465
    email_user: str | None = None
    email_password: str | None = None
    email_from: str | None = None

    # ---- Storage ----
    azure_storage_connection_string: str | None = None
    azure_storage_container_name: str = "utleieskade-files"
    uploads_dir: str = "uploads"
    upload_max_bytes: int = 5 * 1024 * 1024

    # ---- Celery ----
    celery_broker_url: str | None = None
    celery_result_backend: str | None = None

    # ---- Notifications ----
    cancellation_alert_threshold: int = 3

    @property
    def is_prod(self) -> bool:
        return (self.app_env or "local").strip().lower() in ("prod", "production")

    @property
    def is_dev(self) -> bool:
        return (self.app_env or "local").strip().lower() in ("local", "dev", "development", "test")

    def model_post_init(self, __context) -> None:
        if self.is_prod:
            if (self.jwt_secret or "").strip() in ("", "dev-change-me"):
                raise ValueError("SECURITY: jwt_secret must be set in prod")

            origins = self.cors_allow_origins
            if origins == "*" or origins == ["*"] or (isinstance(origins, str) and "*" in origins):
                raise ValueError("SECURITY: cors_allow_origins wildcard is not allowed in prod")


settings = Settings()
