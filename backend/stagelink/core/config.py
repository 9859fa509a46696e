from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, model_validator
from typing import Any, ClassVar
import json
from pathlib import Path
import os


class Settings(BaseSettings):
    API_V1_STR: str = "/api/v1"

    # JWT configuration (provide a fallback for local development)
    SECRET_KEY: str = "fallback_secret_for_dev_only"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Use an absolute path so running the app from the repo root or backend/
    # always resolves the same DB file.
    BASE_DIR: ClassVar[Path] = Path(__file__).resolve().parents[2]
    SQLALCHEMY_DATABASE_URL: str = f"sqlite:///{BASE_DIR / 'stagelink.db'}"

    # Redis connection URL for the availability cache.
    # "disabled" (or empty) selects a no-op client.
    REDIS_URL: str = "redis://localhost:6379/0"
    AVAILABILITY_CACHE_TTL: int = 300

    CORS_ORIGINS: list[str] = ["http://localhost:3000", "http://localhost:5173"]
    CORS_ALLOW_ALL: bool = False

    # Soft-deleted profiles can be restored for this many days, then purged.
    PROFILE_DELETION_GRACE_DAYS: int = 30

    # Start time shown for booking-derived calendar entries without an event time
    DEFAULT_EVENT_TIME: str = "20:00"

    # Interval for the background contract expiry / profile purge loop.
    # 0 disables the loop; expiry is still enforced whenever a proposal is read.
    CONTRACT_EXPIRY_SWEEP_SECONDS: int = 3600

    LOG_LEVEL: str = "INFO"
    ENABLE_CONSOLE_TRACING: bool = False
    OTEL_EXCLUDE_WS: bool = True

    @field_validator("CORS_ORIGINS", mode="before")
    def split_origins(cls, v: Any) -> list[str]:
        """Parse comma-separated or JSON list of origins from environment."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("DEFAULT_EVENT_TIME", mode="before")
    def strip_whitespace(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip()
        return v

    @model_validator(mode="after")
    def allow_all_if_requested(cls, values: "Settings") -> "Settings":
        if values.CORS_ALLOW_ALL:
            values.CORS_ORIGINS = ["*"]
        return values

    model_config = SettingsConfigDict(extra="ignore", case_sensitive=True)


def _env_file() -> str:
    return os.getenv("ENV_FILE", str(Path(__file__).resolve().parents[3] / ".env"))


def load_settings() -> "Settings":
    return Settings(_env_file=_env_file())


settings = load_settings()
