"""
CHGK Portal – Application configuration.
Reads environment variables from a .env file via pydantic-settings.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # ── App ──
    APP_NAME: str = "ЧГК Батуми"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # ── Database ── (empty string = store not configured)
    DATABASE_URL: str = "sqlite+aiosqlite:///./chgk_portal.db"

    # ── JWT (viewer session) ──
    SECRET_KEY: str = "change-me-to-a-random-secret"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7

    # ── Moderator gate ──
    HOST_PASSWORD: str = "editor"

    # ── Email (EmailJS REST API) ──
    EMAILJS_ENDPOINT: str = "https://api.emailjs.com/api/v1.0/email/send"
    EMAILJS_SERVICE_ID: str = ""
    EMAILJS_TEMPLATE_ID: str = ""
    EMAILJS_PUBLIC_KEY: str = ""
    CLUB_NAME: str = "Что? Где? Когда? Батуми"
    CLUB_SENDER_NAME: str = "ЧГК Батуми"

    # ── Media storage ──
    MEDIA_ROOT: str = "media"
    MEDIA_URL: str = "/media"
    PUBLIC_BASE_URL: str = "http://127.0.0.1:8000"
    MAX_UPLOAD_BYTES: int = 5 * 1024 * 1024
    ALLOWED_IMAGE_TYPES: List[str] = ["image/jpeg", "image/png", "image/gif", "image/webp"]

    # ── Polling client ──
    POLL_INTERVAL_SECONDS: float = 30.0


settings = Settings()
