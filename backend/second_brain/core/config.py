"""
Settings for the API, the worker and migrations.

Values come from the environment (or a .env file next to the process).
SECRET_KEY and DATABASE_URL have no defaults: the process refuses to start
without them.
"""

from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ================================
    # Service
    # ================================
    APP_NAME: str = "SecondBrain"
    APP_ENV: Literal["development", "testing", "staging", "production"] = "development"
    DEBUG: bool = False
    SECRET_KEY: str = Field(..., min_length=32, description="HS256 signing key for access tokens")
    API_V1_PREFIX: str = "/api/v1"
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    @field_validator("ALLOWED_ORIGINS")
    @classmethod
    def split_origins(cls, v: str) -> List[str]:
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # ================================
    # Relational Store
    # ================================
    DATABASE_URL: str = Field(..., description="Async SQLAlchemy URL, e.g. postgresql+asyncpg://...")
    DB_ECHO: bool = False
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: int = 30
    DB_COMMAND_TIMEOUT: int = 30  # seconds, asyncpg only

    # ================================
    # Access Tokens
    # ================================
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    JWT_ALGORITHM: str = "HS256"

    # ================================
    # Embeddings (Cohere)
    # ================================
    COHERE_API_KEY: Optional[str] = None
    COHERE_BASE_URL: str = "https://api.cohere.com"
    EMBEDDING_MODEL: str = "embed-english-v3.0"
    EMBEDDING_DIMENSION: int = 1024
    EMBEDDING_TIMEOUT: float = 30.0

    # ================================
    # Vector Index (Qdrant)
    # ================================
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_API_KEY: Optional[str] = None
    QDRANT_COLLECTION: str = "second_brain"
    QDRANT_DISTANCE: Literal["Cosine", "Dot", "Euclid", "Manhattan"] = "Cosine"
    QDRANT_TIMEOUT: float = 30.0
    QDRANT_SCROLL_PAGE_SIZE: int = 256

    # ================================
    # Content & Search
    # ================================
    CONTENT_DESCRIPTION_MAX_LENGTH: int = 100
    SEARCH_RESULT_LIMIT: int = 3

    # ================================
    # Background Worker (Celery)
    # ================================
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TIMEZONE: str = "UTC"
    RECONCILE_INTERVAL_HOURS: int = Field(default=6, ge=1, le=24)

    # ================================
    # Logging
    # ================================
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"

    @property
    def is_development(self) -> bool:
        return self.APP_ENV == "development"

    @property
    def is_production(self) -> bool:
        return self.APP_ENV == "production"

    @property
    def uses_postgres(self) -> bool:
        return self.DATABASE_URL.startswith("postgresql")


settings = Settings()
