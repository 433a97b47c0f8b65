# chatauth/core/config.py
import os
from datetime import timedelta
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils import parse_duration

DEFAULT_ACCESS_SECRET = "change-me-in-prod"
DEFAULT_REFRESH_SECRET = "change-me-refresh-in-prod"


class ConfigurationError(RuntimeError):
    """Raised at startup when the configuration cannot run safely."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application Settings
    APP_NAME: str = "Chat Auth API"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: Literal["development", "test", "production"] = "development"
    DEBUG: bool = False
    DOCS_ENABLED: bool = True
    API_PREFIX: str = "/api"

    # Server Settings
    HOST: str = "0.0.0.0"
    PORT: int = int(os.environ.get("PORT", 8000))

    # Database Settings
    DATABASE_URL: str = "sqlite:///./chatauth.db"
    DB_TIMEOUT_SECONDS: int = 5

    # Token Settings
    JWT_PRIVATE_KEY: str = DEFAULT_ACCESS_SECRET
    JWT_REFRESH_SECRET: str = DEFAULT_REFRESH_SECRET
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRY: str = "15m"
    REFRESH_TOKEN_EXPIRY: str = "30d"

    # Password hashing
    PASSWORD_HASH_ROUNDS: int = Field(default=12, ge=4, le=31)

    # Verification codes
    SMS_CODE_TIMEOUT_MINUTES: int = Field(default=2, ge=1)
    SMS_CODES_PER_HOUR: int = 10
    SMS_SEND_RATE_LIMIT_PER_HOUR: int = 10
    SMS_REQUEST_TIMEOUT_SECONDS: int = 10
    SMS_DEFAULT_COUNTRY_CODE: str = "+86"

    # Twilio Settings
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_PHONE_NUMBER: str = ""

    # Development-only authentication bypass
    REQUIRES_AUTH: bool = True

    # Rate Limiting
    CHAT_RATE_LIMIT_PER_MINUTE: int = 10
    CHAT_RATE_LIMIT_PER_HOUR: int = 100
    REDIS_URL: Optional[str] = None

    # AI Settings
    GEMINI_API_KEY: str = ""
    GEMINI_MODEL: str = "gemini-2.5-flash"
    LLM_TIMEOUT_SECONDS: int = 30

    # Periodic cleanup
    CLEANUP_ENABLED: bool = True
    CLEANUP_INTERVAL_MINUTES: int = Field(default=60, ge=1)

    # Logging Settings
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # HTTP Settings
    ALLOWED_ORIGINS: str = "*"
    MAX_REQUEST_BODY_BYTES: int = 1024 * 1024
    GZIP_MIN_SIZE: int = 500

    @field_validator("ACCESS_TOKEN_EXPIRY", "REFRESH_TOKEN_EXPIRY")
    @classmethod
    def _validate_expiry(cls, v: str) -> str:
        # Fails settings construction, so a bad value stops the process at startup
        parse_duration(v)
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def is_development(self) -> bool:
        return self.ENVIRONMENT == "development"

    @property
    def access_token_ttl(self) -> timedelta:
        return parse_duration(self.ACCESS_TOKEN_EXPIRY)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return parse_duration(self.REFRESH_TOKEN_EXPIRY)

    @property
    def auth_bypass_enabled(self) -> bool:
        """The bypass only ever applies outside production."""
        return not self.REQUIRES_AUTH and not self.is_production

    @property
    def twilio_configured(self) -> bool:
        return bool(self.TWILIO_ACCOUNT_SID and self.TWILIO_AUTH_TOKEN and self.TWILIO_PHONE_NUMBER)

    def _split_csv(self, value: str) -> List[str]:
        if value is None:
            return []
        value = value.strip()
        if value == "":
            return []
        return [item.strip() for item in value.split(",")]

    @property
    def allowed_origins_list(self) -> List[str]:
        return self._split_csv(self.ALLOWED_ORIGINS)

    def validate_for_production(self) -> None:
        if not self.is_production:
            return
        problems = []
        if not self.JWT_PRIVATE_KEY or self.JWT_PRIVATE_KEY == DEFAULT_ACCESS_SECRET:
            problems.append("JWT_PRIVATE_KEY must be set")
        if not self.JWT_REFRESH_SECRET or self.JWT_REFRESH_SECRET == DEFAULT_REFRESH_SECRET:
            problems.append("JWT_REFRESH_SECRET must be set")
        if self.JWT_PRIVATE_KEY == self.JWT_REFRESH_SECRET:
            problems.append("JWT_PRIVATE_KEY and JWT_REFRESH_SECRET must differ")
        if not self.REQUIRES_AUTH:
            problems.append("REQUIRES_AUTH=false is not allowed in production")
        if not self.twilio_configured:
            problems.append("Twilio credentials are required in production")
        if self.PASSWORD_HASH_ROUNDS < 10:
            problems.append("PASSWORD_HASH_ROUNDS must be at least 10 in production")
        if problems:
            raise ConfigurationError("; ".join(problems))


@lru_cache()
def get_settings() -> Settings:
    return Settings()


settings: Settings = get_settings()
