"""Application configuration via environment variables."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from .env or environment."""

    DATABASE_URL: str = "sqlite:///./eventhub.db"
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRE_HOURS: int = 24
    CORS_ORIGINS: str = "http://localhost:3000"
    STORE_TIMEOUT_SECONDS: float = 5.0
    REALTIME_SEND_TIMEOUT_SECONDS: float = 5.0
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"


settings = Settings()
