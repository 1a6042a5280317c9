"""
Application configuration using Pydantic Settings.

All configuration is loaded from environment variables, with an optional .env file
as a fallback. This pattern keeps secrets out of source code — the .env file is
gitignored, and .env.example provides a safe template for developers.

Pydantic Settings automatically:
  1. Reads from environment variables (highest priority)
  2. Falls back to .env file values
  3. Uses defaults defined here (lowest priority)

Usage:
    from beep.config import settings
    print(settings.REPORT_TIMEZONE)
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Central configuration for the beep.money API.

    Required fields (no defaults) MUST be set in .env or environment:
      - SECRET_KEY: Used to sign session and magic-link JWTs
      - TOKEN_ENCRYPTION_KEY: Fernet key for encrypting Teller access tokens at rest
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # --- Application ---
    APP_NAME: str = "beep.money API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Public URL of the web frontend; magic links point here
    APP_URL: str = "http://localhost:3000"

    # --- Database ---
    # SQLite for local development; swap to a PostgreSQL connection string for production
    DATABASE_URL: str = "sqlite+aiosqlite:///./beep.db"

    # --- Authentication ---
    # REQUIRED: no default, must be set in the environment
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    MAGIC_LINK_EXPIRE_MINUTES: int = 15

    # --- Access token encryption ---
    # REQUIRED: Fernet key for encrypting Teller enrollment tokens at rest
    # Generate with: python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"
    TOKEN_ENCRYPTION_KEY: str

    # --- CORS ---
    ALLOWED_ORIGINS: list[str] = ["http://localhost:3000"]

    # --- Teller (bank data) ---
    TELLER_API_URL: str = "https://api.teller.io"
    # Client certificate for mutual TLS; both must be set for it to be used
    TELLER_CERTIFICATE_PATH: str | None = None
    TELLER_PRIVATE_KEY_PATH: str | None = None
    TELLER_TIMEOUT_SECONDS: float = 30.0

    # --- Email (Resend) ---
    RESEND_API_URL: str = "https://api.resend.com"
    RESEND_API_KEY: str = ""
    EMAIL_FROM: str = "Beep Money <reports@beep.money>"

    # --- Scheduled jobs ---
    # Shared secret the scheduler passes as ?secret=... to /cron endpoints
    CRON_SECRET: str = ""

    # Users processed at once by the report job
    REPORT_CONCURRENCY: int = 5

    # IANA timezone used for every spending-window boundary
    REPORT_TIMEZONE: str = "UTC"


# Singleton: import this instance everywhere instead of creating new Settings()
settings = Settings()
