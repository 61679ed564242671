"""
Centralized configuration management using pydantic-settings.
This module provides a single source of truth for all application configuration.
"""


from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv()


logger = setup_logger("core_config")

ADMIN_SCOPES = (
    "tasks:write",
    "users:read",
    "users:write",
    "subscribers:export",
    "subscribers:purge",
)


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        env_prefix="",
    )

    # ===== Database Configuration =====
    app_database_url: str | None = Field(
        default=None,
        alias="WRITERSINN_DATABASE_URL",
        description="Application database URL (postgresql:// or sqlite+aiosqlite://)",
    )

    writersinn_schema: str = Field(
        default="writersinn",
        alias="WRITERSINN_SCHEMA",
        description="PostgreSQL schema name, ignored for SQLite",
    )

    # ===== Authentication =====
    admin_secret: str | None = Field(
        default=None,
        alias="ADMIN_SECRET",
        description="Shared secret used to mint scoped admin tokens",
    )

    allow_legacy_admin_secret: bool = Field(
        default=True,
        alias="ALLOW_LEGACY_ADMIN_SECRET",
        description="Accept the raw x-admin-secret header on admin routes",
    )

    secret_key: str = Field(
        default="your-secret-key-change-this-in-production",
        alias="SECRET_KEY",
        description="Signing key for user and admin JWTs",
    )

    access_token_expire_minutes: int = Field(
        default=1440,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
        description="Lifetime of user access tokens issued after magic-link verification",
    )

    admin_token_expire_minutes: int = Field(
        default=60,
        alias="ADMIN_TOKEN_EXPIRE_MINUTES",
        description="Lifetime of scoped admin tokens",
    )

    require_user_token: bool = Field(
        default=False,
        alias="REQUIRE_USER_TOKEN",
        description="Require a user bearer token on take-task and submit-task",
    )

    login_token_ttl_minutes: int = Field(
        default=15,
        alias="LOGIN_TOKEN_TTL_MINUTES",
        description="Lifetime of magic-link login tokens",
    )

    frontend_origin: str = Field(
        default="http://localhost:3000",
        alias="FRONTEND_ORIGIN",
        description="Base URL used to build magic-link verification URLs",
    )

    # ===== Assignment Policy =====
    assignment_deadline_hours: int = Field(
        default=6,
        alias="ASSIGNMENT_DEADLINE_HOURS",
        description="Hours between taking a task and its deadline",
    )

    cooldown_days: int = Field(
        default=3,
        alias="COOLDOWN_DAYS",
        description="Rolling window during which a recent assignment blocks a new one",
    )

    cooldown_mode: Literal["rolling", "lifetime"] = Field(
        default="rolling",
        alias="COOLDOWN_MODE",
        description="'rolling' window or 'lifetime' (any pending/completed assignment blocks)",
    )

    # ===== Uploads =====
    upload_dir: str = Field(
        default="uploads",
        alias="UPLOAD_DIR",
        description="Directory where task attachments and submissions are stored",
    )

    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        alias="MAX_UPLOAD_BYTES",
        description="Maximum accepted upload size in bytes",
    )

    # ===== Notifications =====
    notification_backend: Literal["smtp", "http", "log"] = Field(
        default="log",
        alias="NOTIFICATION_BACKEND",
        description="Mail gateway backend: smtp, http or log",
    )

    notification_max_attempts: int = Field(
        default=3,
        alias="NOTIFICATION_MAX_ATTEMPTS",
        description="Delivery attempts per message before it is dropped",
    )

    notification_retry_delay: float = Field(
        default=2.0,
        alias="NOTIFICATION_RETRY_DELAY",
        description="Initial delay between delivery attempts in seconds",
    )

    email_from: str = Field(
        default="no-reply@writersinn.local",
        alias="EMAIL_FROM",
        description="Sender address for outgoing mail",
    )

    smtp_host: str = Field(default="smtp.gmail.com", alias="SMTP_HOST")
    smtp_port: int = Field(default=587, alias="SMTP_PORT")
    smtp_user: str | None = Field(default=None, alias="SMTP_USER")
    smtp_password: str | None = Field(default=None, alias="SMTP_PASSWORD")
    smtp_timeout: float = Field(default=30.0, alias="SMTP_TIMEOUT")

    mail_api_url: str | None = Field(
        default=None,
        alias="MAIL_API_URL",
        description="Endpoint of the transactional mail API for the http backend",
    )

    mail_api_key: str | None = Field(default=None, alias="MAIL_API_KEY")

    # ===== Server Configuration =====
    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=3000, alias="SERVER_PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    # ===== CORS Configuration =====
    cors_allow_origins: list[str] = Field(
        default_factory=lambda: [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
        alias="CORS_ALLOW_ORIGINS",
        description="CORS allowed origins",
    )

    cors_allow_credentials: bool = Field(
        default=True,
        alias="CORS_ALLOW_CREDENTIALS",
        description="Whether to allow credentials in CORS requests",
    )

    cors_allow_methods: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_METHODS",
        description="CORS allowed methods",
    )

    cors_allow_headers: list[str] = Field(
        default_factory=lambda: ["*"],
        alias="CORS_ALLOW_HEADERS",
        description="CORS allowed headers",
    )

    db_unavailable_hint: str = Field(
        default="Database connection failed. The server may be offline or network connectivity is down.",
        alias="DB_UNAVAILABLE_HINT",
        description="User-facing hint for database connection errors",
    )

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""

        if not self.app_database_url:
            logger.warning("WRITERSINN_DATABASE_URL environment variable not set.")

        if not self.admin_secret:
            logger.warning(
                "ADMIN_SECRET environment variable not set. Admin routes are disabled."
            )

        if self.secret_key == "your-secret-key-change-this-in-production":
            logger.warning("SECRET_KEY is using the insecure default value.")

        if self.notification_backend == "http" and not self.mail_api_url:
            logger.warning("NOTIFICATION_BACKEND=http but MAIL_API_URL is not set.")

        logger.debug(
            f"Cooldown policy: mode={self.cooldown_mode}, days={self.cooldown_days}"
        )

        return self

    @property
    def is_sqlite(self) -> bool:
        return bool(self.app_database_url) and self.app_database_url.startswith(
            "sqlite"
        )

    @property
    def schema_name(self) -> str | None:
        # SQLite has no schemas; tables live in the main database.
        if self.is_sqlite or not self.writersinn_schema:
            return None
        return self.writersinn_schema


# Global settings instance
settings = Settings()

SCHEMA_NAME = settings.schema_name
