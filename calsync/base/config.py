from functools import lru_cache
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppConfig(BaseSettings):
    # === App Metadata ===
    PROJECT_NAME: str = "CalSync"
    ENVIRONMENT: str = Field("dev")  # dev, staging, prod
    DEBUG_MODE: bool = Field(True)
    API_VERSION: str = "v1"

    # === Security ===
    JWT_SECRET_KEY: str = Field("your-secret-key-change-in-production")
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_DAYS: int = Field(7)
    BCRYPT_ROUNDS: int = Field(10)

    # === Logging ===
    LOG_LEVEL: str = Field("INFO")
    ENABLE_JSON_LOGS: bool = Field(False)

    @property
    def LOG_LEVEL_NUMERIC(self) -> int:
        import logging
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)

    # === Database (PostgreSQL or SQLite fallback) ===
    DATABASE_URL: Optional[str] = Field(None)
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("postgres")
    DB_PASSWORD: str = Field("postgres")
    DB_NAME: str = Field("calsync_db")
    DB_POOL_SIZE: int = Field(10)
    DB_MAX_OVERFLOW: int = Field(20)

    @property
    def SQLALCHEMY_DATABASE_URL(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        if self.DB_HOST == "sqlite":
            return "sqlite:///./calsync.db"
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    # === Email SMTP ===
    SMTP_SERVER: str = Field("smtp.gmail.com")
    SMTP_PORT: int = Field(587)
    SMTP_USER: str = Field("")
    SMTP_PASSWORD: str = Field("")
    SMTP_USE_TLS: bool = Field(True)
    DEFAULT_SENDER: str = Field("noreply@calsync.app")

    @property
    def SMTP_ENABLED(self) -> bool:
        return all([self.SMTP_SERVER, self.SMTP_USER, self.SMTP_PASSWORD])

    # === Frontend ===
    FRONTEND_URL: str = Field("http://localhost:3000")
    CORS_ORIGINS: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # === Calendar Providers (OAuth2) ===
    GOOGLE_CLIENT_ID: str = Field("")
    GOOGLE_CLIENT_SECRET: str = Field("")
    GOOGLE_REDIRECT_URI: str = Field("http://localhost:3000/auth/google/callback")

    OUTLOOK_CLIENT_ID: str = Field("")
    OUTLOOK_CLIENT_SECRET: str = Field("")
    OUTLOOK_REDIRECT_URI: str = Field("http://localhost:3000/auth/outlook/callback")

    # === Outbound HTTP ===
    HTTP_TIMEOUT_SECONDS: float = Field(7.0)

    # === Scheduling ===
    WORKDAY_START_HOUR: int = Field(9)
    SLOTS_PER_DAY: int = Field(8)
    SLOT_DURATION_MINUTES: int = Field(60)
    LINK_TOKEN_BYTES: int = Field(16)
    LINK_MAX_ATTEMPTS: int = Field(5)
    # selection waits at most this long (or the per-meeting estimate) for booking
    BOOKING_STALE_MIN_SECONDS: int = Field(60)

    # === Feature Flags ===
    ENABLE_PROMETHEUS: bool = Field(True)

    # === Environment Shortcuts ===
    @property
    def IS_PROD(self) -> bool:
        return self.ENVIRONMENT.lower() == "prod"

    @property
    def IS_DEV(self) -> bool:
        return self.ENVIRONMENT.lower() == "dev"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> AppConfig:
    return AppConfig()


# Global config instance
settings = get_settings()
