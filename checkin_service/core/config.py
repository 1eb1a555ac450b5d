# checkin_service/core/config.py

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import List, Optional
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # The environment mode: 'local' or 'prod'
    ENV: str = "local"
    PROJECT_NAME: str = "VIP Check-in Service"
    VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"

    # Storage: "memory" keeps everything in-process, "sql" uses DATABASE_URL
    STORAGE_BACKEND: str = "memory"
    DATABASE_URL: Optional[str] = None

    # Business rules
    MAX_QUEUE_LENGTH: int = 10
    SECONDS_PER_QUEUE_ITEM: int = 30
    CHECKIN_COOLDOWN_MINUTES: int = 5
    BATCH_WRITE_LIMIT: int = 500

    # Recognition service (face matching)
    AI_SERVICE_URL: str = "http://localhost:8000"
    AI_SERVICE_API_KEY: Optional[str] = None
    AI_SERVICE_TIMEOUT_SECONDS: float = 10.0
    AI_HEALTH_TIMEOUT_SECONDS: float = 5.0
    AI_DEFAULT_CONFIDENCE: float = 0.95

    # Admin tokens
    JWT_SECRET: str = "change-me-in-production"
    JWT_ISSUER: str = "vip-checkin-backend"
    JWT_AUDIENCE: str = "vip-checkin-api"

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_DEFAULT: str = "100/minute"
    RATE_LIMIT_CHECKIN: str = "30/minute"

    # CORS - Stored as string, parsed via get_cors_origins() method
    CORS_ORIGINS: Optional[str] = None

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def check_storage_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("memory", "sql"):
            raise ValueError("STORAGE_BACKEND must be 'memory' or 'sql'")
        return v

    @field_validator("MAX_QUEUE_LENGTH")
    @classmethod
    def check_queue_length(cls, v: int) -> int:
        if v < 1:
            raise ValueError("MAX_QUEUE_LENGTH must be at least 1")
        return v

    @field_validator("CHECKIN_COOLDOWN_MINUTES")
    @classmethod
    def check_cooldown(cls, v: int) -> int:
        if v < 0:
            raise ValueError("CHECKIN_COOLDOWN_MINUTES cannot be negative")
        return v

    @field_validator("BATCH_WRITE_LIMIT")
    @classmethod
    def check_batch_limit(cls, v: int) -> int:
        # Document stores cap a single batch at 500 operations
        if not 1 <= v <= 500:
            raise ValueError("BATCH_WRITE_LIMIT must be between 1 and 500")
        return v

    @field_validator("AI_SERVICE_URL")
    @classmethod
    def clean_ai_service_url(cls, v: str) -> str:
        return v.strip().rstrip("/")

    def get_cors_origins(self) -> List[str]:
        """Parse CORS_ORIGINS from comma-separated string or JSON array"""
        if not self.CORS_ORIGINS:
            return []
        v = self.CORS_ORIGINS.strip()
        if not v:
            return []
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @property
    def ASYNC_DATABASE_URL(self) -> Optional[str]:
        if not self.DATABASE_URL:
            return None
        if self.DATABASE_URL.startswith("postgresql://"):
            return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.DATABASE_URL


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
