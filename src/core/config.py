from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import List
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    # Environment setting
    ENVIRONMENT: str = Field(
        "development", description="Environment: development, staging, production"
    )

    # API settings
    API_PREFIX: str = Field("/api/v1")
    API_VERSION: int = 1
    DEBUG: bool = Field(False)
    ALLOWED_ORIGINS: str = Field("http://localhost:5173,http://127.0.0.1:5173")
    FRONTEND_URL: str = Field("http://localhost:5173")

    # Database settings
    DB_HOST: str = Field("localhost")
    DB_PORT: int = Field(5432)
    DB_USER: str = Field("")
    DB_PASSWORD: str = Field("")
    DB_NAME: str = Field("medicai")
    DB_DRIVER: str = Field("postgresql+asyncpg")

    SQLITE_MODE: bool = False

    # Jwt Security settings
    SECRET_KEY: str = Field("change-me-access-secret")
    REFRESH_SECRET_KEY: str = Field("change-me-refresh-secret")
    ALGORITHM: str = Field("HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(15)
    REFRESH_TOKEN_EXPIRE_DAYS: int = Field(7)

    # One-time codes and links
    OTP_EXPIRE_MINUTES: int = Field(10)
    RESET_TOKEN_EXPIRE_MINUTES: int = Field(15)
    SHARE_EXPIRE_DAYS: int = Field(30, description="Lifetime of a share link")

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = Field(True)

    # Logging
    LOG_FILE: str = Field("app.log", description="Empty string disables file logs")

    # Uvicorn settings
    UVICORN_HOST: str = Field("127.0.0.1")
    UVICORN_PORT: int = Field(8000)
    WORKERS_COUNT: int = Field(1)
    RELOAD: bool = Field(True)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def POSTGRESQL_DATABASE_URL(self) -> str:
        return (
            f"{self.DB_DRIVER}://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def SQLITE_DATABASE_URL(self) -> str:
        return f"sqlite+aiosqlite:///{self.DB_NAME}.db"

    @property
    def DATABASE_URL(self) -> str:
        return (
            self.SQLITE_DATABASE_URL
            if self.SQLITE_MODE
            else self.POSTGRESQL_DATABASE_URL
        )

    @property
    def IS_PRODUCTION(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def CORS_ORIGINS(self) -> List[str]:
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin]

    @field_validator("API_PREFIX")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()
