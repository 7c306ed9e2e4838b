from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator
from typing import Optional, Literal
from loguru import logger
import sys


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_default=True,
    )

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Application environment"
    )

    database_host: str = Field(default="localhost", description="Database host")
    database_port: int = Field(
        default=5432, ge=1, le=65535, description="Database port"
    )
    database_name: str = Field(
        default="prospector", min_length=1, description="Database name"
    )
    database_user: str = Field(default="postgres", min_length=1, description="Database username")
    database_password: Optional[str] = Field(
        default="postgres", description="Database password"
    )

    database_pool_min: int = Field(
        default=1, ge=1, le=100, description="Minimum database pool size"
    )
    database_pool_max: int = Field(
        default=20, ge=1, le=100, description="Maximum database pool size"
    )

    # Discovery provider
    discovery_provider: Literal["anthropic", "serper"] = Field(
        default="anthropic", description="Which discovery provider the workers use"
    )
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    anthropic_model: str = Field(
        default="claude-sonnet-4-20250514", description="Model used for AI-assisted discovery"
    )
    anthropic_max_tokens: int = Field(default=8192, ge=256, le=64000)
    serper_api_key: Optional[str] = Field(default=None, description="Serper.dev API key")

    # Job policy
    job_max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Total attempts allowed per search job (first run plus retries)",
    )
    provider_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=900,
        description="Upper bound on a single discovery provider call",
    )
    job_processing_timeout_seconds: int = Field(
        default=300,
        ge=30,
        le=86400,
        description="A processing job untouched for this long is failed by the recovery sweep",
    )
    worker_concurrency: int = Field(
        default=2, ge=1, le=32, description="Number of search workers in the pool"
    )
    worker_poll_interval_seconds: float = Field(
        default=2.0, gt=0, le=60, description="Idle sleep between pending-queue polls"
    )
    recovery_sweep_interval_seconds: float = Field(
        default=60.0, gt=0, le=3600, description="Interval between stuck-job sweeps"
    )
    embedded_worker: bool = Field(
        default=True, description="Run the worker pool inside the API process"
    )
    poll_interval_seconds: int = Field(
        default=3, ge=1, le=60, description="Client poll hint for non-terminal jobs"
    )

    # Notifications
    notification_webhook_url: Optional[str] = Field(
        default=None, description="Push gateway that receives job terminal notifications"
    )
    notification_timeout_seconds: float = Field(default=10.0, gt=0, le=60)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_format: str = Field(
        default="{time:YYYY-MM-DD HH:mm:ss} | {level} | {name}:{function}:{line} - {message}",
        description="Log format string",
    )
    log_rotation: str = Field(default="100 MB", description="Log file rotation size")
    log_retention: str = Field(default="10 days", description="Log retention period")
    log_file: Optional[str] = Field(default="logs/app.log", description="Log file path")

    app_name: str = Field(default="Prospector", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")
    cors_origins: list[str] = Field(default=["*"], description="CORS allowed origins")

    @field_validator("database_port")
    @classmethod
    def validate_port(cls, v: int) -> int:
        if not 1 <= v <= 65535:
            raise ValueError("Port must be between 1 and 65535")
        return v

    @model_validator(mode="after")
    def validate_pool_sizes(self) -> "Settings":
        """Ensure max pool size is greater than min pool size"""
        if self.database_pool_max < self.database_pool_min:
            raise ValueError(
                "database_pool_max must be greater than or equal to database_pool_min"
            )
        return self

    @model_validator(mode="after")
    def validate_job_timeouts(self) -> "Settings":
        """A healthy provider call must finish before the sweep can fail its job."""
        if self.job_processing_timeout_seconds <= self.provider_timeout_seconds:
            raise ValueError(
                "job_processing_timeout_seconds must be greater than provider_timeout_seconds"
            )
        return self

    @property
    def database_url(self) -> str:
        """Standard database URL for synchronous connections"""
        password = f":{self.database_password}" if self.database_password else ""
        return f"postgresql://{self.database_user}{password}@{self.database_host}:{self.database_port}/{self.database_name}"

    def configure_logging(self) -> None:
        """Configure loguru based on settings"""
        logger.remove()

        logger.add(
            sys.stderr, format=self.log_format, level=self.log_level, colorize=True
        )

        if self.log_file:
            logger.add(
                self.log_file,
                format=self.log_format,
                level=self.log_level,
                rotation=self.log_rotation,
                retention=self.log_retention,
                compression="zip",
            )

        logger.info(f"Logging configured for {self.environment} environment")


def get_settings() -> Settings:
    """Get cached settings instance"""
    settings = Settings()
    settings.configure_logging()
    return settings


settings = get_settings()
