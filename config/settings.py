"""
config/settings.py

- Reads the environment (and .env) and exposes application-wide settings.
- pydantic v2 / pydantic-settings v2.
- The hosted database (PostgREST) is reached through SUPABASE_URL + SUPABASE_ANON_KEY;
  the session token travels as a cookie on the browser side and as a custom header
  on the database side (SESSION_COOKIE_NAME / SESSION_HEADER_NAME).
"""

from typing import List, Optional, Literal
from pydantic import field_validator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # =========================
    # App / runtime
    # =========================
    ENV: Literal["dev", "stage", "prod"] = "dev"
    APP_TITLE: str = "Advisor Assessment API"
    APP_DESCRIPTION: str = "ระบบประเมินอาจารย์ที่ปรึกษา - backend API"
    APP_VERSION: str = "1.0.0"

    # =========================
    # CORS
    # =========================
    # comma separated string -> List[str]
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _split_origins(cls, v):
        if isinstance(v, str):
            # "a,b , c" -> ["a","b","c"]
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    # =========================
    # Hosted database (PostgREST)
    # =========================
    SUPABASE_URL: str
    SUPABASE_ANON_KEY: str
    DATA_TIMEOUT: float = 15.0

    @computed_field  # type: ignore[misc]
    @property
    def REST_URL(self) -> str:
        """
        PostgREST root of the hosted project, e.g. https://xyz.supabase.co/rest/v1
        """
        return f"{self.SUPABASE_URL.rstrip('/')}/rest/v1"

    # =========================
    # Session
    # =========================
    SESSION_COOKIE_NAME: str = "jupagaba"
    SESSION_HEADER_NAME: str = "x-session-id"
    SESSION_MAX_AGE: int = 60 * 60 * 24  # 1 day
    COOKIE_SECURE: Optional[bool] = None

    @computed_field  # type: ignore[misc]
    @property
    def SECURE_COOKIES(self) -> bool:
        if self.COOKIE_SECURE is not None:
            return self.COOKIE_SECURE
        return self.ENV == "prod"

    # =========================
    # Display
    # =========================
    # naive timestamps from the database are local (Indochina) time
    TZ_OFFSET_HOURS: int = 7
    TEMPLATE_DIR: str = "templates"

    # =========================
    # Logging / Misc
    # =========================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # =========================
    # BaseSettings Config
    # =========================
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# ✅ import `settings` from anywhere
settings = Settings()
