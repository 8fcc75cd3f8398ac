import os
from typing import List
from dotenv import load_dotenv
from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings

# Load environment variables from the correct .env file
env_file = ".env.production" if os.getenv("APP_ENV") == "production" else ".env"
load_dotenv(env_file)  # Load the .env file

class Settings(BaseSettings):
    APP_ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "info"
    ALLOWED_ORIGINS: List[str] = ["*"]

    # Score store
    # "memory://" keeps scores in-process (tests, local demos only)
    DATABASE_URL: str = "sqlite+aiosqlite:///./leaderboard.db"
    DATABASE_ECHO: bool = False
    DATABASE_POOL_SIZE: int = 5

    # Rate limiting
    RATE_LIMIT_DEFAULT: str = "60/minute"

    # Leaderboard behaviour
    LEADERBOARD_DEFAULT_LIMIT: int = 20
    LEADERBOARD_MAX_LIMIT: int = 100
    SUBMIT_MAX_ATTEMPTS: int = 5
    REQUEST_TIMEOUT_SECONDS: float = 5.0
    RETRY_BACKOFF_SECONDS: float = 0.01

    @field_validator("ALLOWED_ORIGINS", mode="before")
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @model_validator(mode="after")
    def validate_leaderboard_settings(self):
        """Reject limit/retry settings that cannot work, and dev-only stores in production."""
        if self.LEADERBOARD_MAX_LIMIT < 1:
            raise ValueError("LEADERBOARD_MAX_LIMIT must be at least 1")
        if not 1 <= self.LEADERBOARD_DEFAULT_LIMIT <= self.LEADERBOARD_MAX_LIMIT:
            raise ValueError("LEADERBOARD_DEFAULT_LIMIT must be between 1 and LEADERBOARD_MAX_LIMIT")
        if self.SUBMIT_MAX_ATTEMPTS < 1:
            raise ValueError("SUBMIT_MAX_ATTEMPTS must be at least 1")
        if self.REQUEST_TIMEOUT_SECONDS <= 0:
            raise ValueError("REQUEST_TIMEOUT_SECONDS must be positive")

        if self.APP_ENV == "production":
            if self.DATABASE_URL.startswith(("memory://", "sqlite")):
                raise ValueError(
                    "DATABASE_URL must point to a shared database in production, "
                    f"got {self.DATABASE_URL.split(':', 1)[0]}"
                )
        return self

settings = Settings()
