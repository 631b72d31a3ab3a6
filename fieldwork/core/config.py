from functools import lru_cache
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing_extensions import Self


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="FIELDWORK_",
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "fieldwork-execution"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: Literal["json", "console"] = "console"
    LOG_SQL: bool = False

    # Persistence
    DATABASE_URL: str = "sqlite:///./fieldwork.db"
    DATABASE_ECHO: bool = False

    # Transaction retries on write conflicts
    TRANSACTION_MAX_ATTEMPTS: int = Field(default=5, ge=1, le=50)
    TRANSACTION_BASE_DELAY_SECONDS: float = Field(default=0.01, ge=0.0)
    TRANSACTION_MAX_DELAY_SECONDS: float = Field(default=0.5, ge=0.0)
    TRANSACTION_JITTER: bool = True

    # Reject self-intersecting parcel rings instead of measuring them
    STRICT_GEOMETRY: bool = False

    @model_validator(mode="after")
    def _check_delays(self) -> Self:
        if self.TRANSACTION_MAX_DELAY_SECONDS < self.TRANSACTION_BASE_DELAY_SECONDS:
            raise ValueError(
                "TRANSACTION_MAX_DELAY_SECONDS must not be smaller than "
                "TRANSACTION_BASE_DELAY_SECONDS"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
