"""
GAuth Web - Configuration Management

Centralized configuration using Pydantic Settings.
All secrets and connection strings are loaded from environment variables.

Security: Change JWT_SECRET for any non-local deployment. Use .env for local development.
"""

from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Attributes:
        DATABASE_URL: Full SQLAlchemy URL; when empty a PostgreSQL URL is
            assembled from the DB_* fields
        REDIS_HOST: Redis host backing the rate limiter (optional)
        RATE_LIMIT_STORAGE_URI: Explicit limiter storage; overrides REDIS_*
        JWT_SECRET: HMAC key for signing access and refresh tokens
        ALLOWED_ORIGINS: CORS allowed origins for the dashboard frontend
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Server
    ENVIRONMENT: str = "development"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = ""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "gauth"
    DB_PASSWORD: str = "gauth_password"
    DB_NAME: str = "gauth_db"
    DB_SSLMODE: str = "disable"

    # Cache (rate limiter storage)
    REDIS_HOST: str = ""
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    RATE_LIMIT_STORAGE_URI: str = ""
    RATE_LIMIT: str = "100/minute"

    # Security
    JWT_SECRET: str = "your_jwt_secret_change_in_production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60
    REFRESH_TOKEN_EXPIRE_DAYS: int = 7
    BCRYPT_ROUNDS: int = 12

    # CORS
    ALLOWED_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # Create default roles and admin account on startup
    SEED_DEFAULTS: bool = True

    def database_url(self) -> str:
        """Resolve the database URL, assembling it from DB_* when unset."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
            f"?sslmode={self.DB_SSLMODE}"
        )

    def rate_limit_storage_uri(self) -> str:
        """Resolve limiter storage: explicit URI, then Redis, then in-memory."""
        if self.RATE_LIMIT_STORAGE_URI:
            return self.RATE_LIMIT_STORAGE_URI
        if self.REDIS_HOST:
            auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
            return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return "memory://"


settings = Settings()
