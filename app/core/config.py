"""
Configuration management for Bricks Attendance Backend
"""
from datetime import time
from decimal import Decimal
from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    DATABASE_URL: str = Field(default="sqlite:///./attendance.db", description="SQLAlchemy database URL")
    JWT_SECRET_KEY: str = Field(default="local-dev-secret-change-me", description="JWT secret key for token signing")

    JWT_ALGORITHM: str = Field(default="HS256", description="JWT algorithm")
    JWT_EXPIRE_MINUTES: int = Field(default=120, description="JWT token expiration in minutes")

    APP_ENV: str = Field(default="local", description="Application environment: local, staging, prod")
    LOG_LEVEL: str = Field(default="INFO", description="Logging level: DEBUG, INFO, WARNING, ERROR")

    # CORS settings
    ALLOWED_ORIGINS: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins. Use '*' for local only."
    )

    # Organization timezone: every civil date and wall-clock time is resolved here
    ORG_TIMEZONE: str = Field(default="Asia/Manila", description="Organization timezone for dates and wall-clock times")

    # Attendance rules
    STANDARD_START_TIME: str = Field(default="09:00:00", description="Clock-ins after this time are late")
    STANDARD_WORK_HOURS: int = Field(default=8, ge=1, le=24, description="Hours per day before overtime")
    WORKING_DAYS_PER_MONTH: int = Field(default=22, ge=1, le=31, description="Working days used for monthly projection")

    # Wage defaults used when the employee profile has none
    DEFAULT_WAGE: Decimal = Field(default=Decimal("15.00"), description="Default hourly wage")
    DEFAULT_OVERTIME_RATE: Decimal = Field(default=Decimal("1.5"), description="Default overtime multiplier")

    VERSION: Optional[str] = Field(default=None, description="Application version (git SHA or semver)")

    INITIAL_ADMIN_PASSWORD: str = Field(
        default="Admin@12345",
        description="Password for initial admin user (used when no admin exists)"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True

    @field_validator("APP_ENV")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate APP_ENV"""
        allowed = ["local", "staging", "prod"]
        if v not in allowed:
            raise ValueError(f"APP_ENV must be one of {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate LOG_LEVEL"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of {allowed}")
        return v.upper()

    @field_validator("ORG_TIMEZONE")
    @classmethod
    def validate_tz(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"ORG_TIMEZONE must be a valid IANA timezone, got {v!r}")
        return v

    @field_validator("STANDARD_START_TIME")
    @classmethod
    def validate_standard_start(cls, v: str) -> str:
        try:
            time.fromisoformat(v)
        except ValueError:
            raise ValueError("STANDARD_START_TIME must be HH:MM:SS")
        return v

    def validate_production(self) -> None:
        """
        Validate settings for production environment

        Raises:
            ValueError: If production settings are invalid
        """
        if self.APP_ENV == "prod":
            if len(self.JWT_SECRET_KEY) < 32:
                raise ValueError(
                    "JWT_SECRET_KEY must be at least 32 characters in production environment"
                )

            if self.ALLOWED_ORIGINS == "*" or not self.ALLOWED_ORIGINS:
                raise ValueError(
                    "ALLOWED_ORIGINS must be explicitly set (not '*') in production environment"
                )

    def get_allowed_origins_list(self) -> List[str]:
        """
        Get list of allowed CORS origins

        Returns:
            List of allowed origins (or ['*'] for local)
        """
        if self.ALLOWED_ORIGINS == "*":
            return ["*"]
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",") if origin.strip()]

    def standard_start_time(self) -> time:
        return time.fromisoformat(self.STANDARD_START_TIME)


# Create settings instance
settings = Settings()

# Validate production settings if in prod
if settings.APP_ENV == "prod":
    settings.validate_production()
