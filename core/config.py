from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    # -------------------------------------------------
    # General
    # -------------------------------------------------
    PROJECT_NAME: str = "Waitlist Signup API"
    ENV: str = "development"

    HOST: str = "0.0.0.0"
    PORT: int = 3001

    # -------------------------------------------------
    # CORS
    # -------------------------------------------------
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # -------------------------------------------------
    # Signup store
    # -------------------------------------------------
    SIGNUP_STORE_BACKEND: str = Field("csv", description="csv or sql")
    SIGNUPS_FILE: str = str(BASE_DIR / "signups.csv")
    DATABASE_URL: str = "sqlite:///./signups.db"

    # -------------------------------------------------
    # Export
    # -------------------------------------------------
    # Shared secret for GET /api/download-signups. Unset disables the export.
    EXPORT_KEY: Optional[str] = None

    # -------------------------------------------------
    # Signup rate limiting (per origin)
    # -------------------------------------------------
    SIGNUP_RATE_LIMIT_MAX: int = 10
    SIGNUP_RATE_LIMIT_WINDOW_SECONDS: int = 15 * 60

    # Use the first X-Forwarded-For hop as the caller address (behind a proxy)
    TRUST_FORWARDED_FOR: bool = False

    model_config = SettingsConfigDict(case_sensitive=True)


# Instantiate settings
settings = Settings()
