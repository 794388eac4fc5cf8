# settings.py
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEV_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    ENV: str = "dev"

    # -----------------------
    # DB
    # -----------------------
    DATABASE_URL: str = ""
    DB_POOL_MIN: int = Field(default=1, ge=1)
    DB_POOL_MAX: int = Field(default=10, ge=1)
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, ge=100)
    DB_APPLICATION_NAME: str = "gearguard_api"

    # -----------------------
    # JWT
    # -----------------------
    JWT_SECRET: str = Field(default=DEV_JWT_SECRET, min_length=16)
    JWT_ALG: str = Field(default="HS256")
    JWT_ACCESS_MINUTES: int = Field(default=60)

    # -----------------------
    # Logging
    # -----------------------
    LOG_LEVEL: str = "INFO"


def _is_strict_env(env: str) -> bool:
    return (env or "").strip().lower() in {"staging", "prod", "production"}


def validate_env_settings() -> None:
    """
    Fail fast outside dev when required settings are missing or unsafe.
    """
    if not _is_strict_env(settings.ENV):
        return

    missing: list[str] = []
    if not (settings.DATABASE_URL or "").strip():
        missing.append("DATABASE_URL")

    secret = settings.JWT_SECRET or ""
    if secret == DEV_JWT_SECRET or len(secret) < 32:
        missing.append("JWT_SECRET")

    if missing:
        raise RuntimeError(
            f"Invalid settings for ENV={settings.ENV}: missing or unsafe {', '.join(missing)}"
        )


settings = Settings()
