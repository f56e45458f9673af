from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Development
    DEV_MODE: bool = Field(default=True, description="Enable debug mode")
    ENVIRONMENT: str = Field(default="development", description="development or production")

    # Database
    DATABASE_URL: str = Field(default="sqlite:///./reservations.db", description="Database connection URL")
    ASYNC_DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./reservations.db", description="Async database URL")

    # FastAPI
    FASTAPI_HOST: str = Field(default="localhost", description="FastAPI host")
    FASTAPI_PORT: int = Field(default=8080, description="FastAPI port")

    # Reservation window limits
    MAX_RESERVATION_HOURS: int = Field(default=24, description="Longest reservation allowed, in hours")
    MAX_ADVANCE_DAYS: int = Field(default=30, description="How far ahead a reservation may start, in days")

    # Pricing
    BASE_FEE: float = Field(default=100.0, description="Flat fee covering the first hour")
    OVERSTAY_BLOCK_MINUTES: int = Field(default=15, description="Overstay is billed per started block of this many minutes")
    OVERSTAY_BLOCK_FEE: float = Field(default=20.0, description="Fee per overstay block")
    CURRENCY: str = Field(default="mxn", description="Currency sent to the payment provider")

    # QR tokens
    QR_TOKEN_BYTES: int = Field(default=16, description="Random bytes in a QR token (hex encoded)")

    # Scheduled jobs
    CRON_SECRET: Optional[str] = Field(default=None, description="Bearer secret for the sweep endpoint")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"


# Create settings instance
settings = Settings()
