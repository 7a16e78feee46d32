"""
Application settings using Pydantic BaseSettings.
"""

from typing import List, Optional, Union

from pydantic import Field, ValidationInfo, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Intervention Dispatch Service"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "production"
    LOG_LEVEL: str = "INFO"

    # API Configuration
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    API_PREFIX: str = "/api/v1"
    CORS_ORIGINS: Union[str, List[str]] = "*"
    ENABLE_SWAGGER: bool = True

    # Database
    POSTGRES_USER: str = "dispatch_user"
    POSTGRES_PASSWORD: str = "dispatch_pass"
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_DB: str = "intervention_dispatch"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)
    DATABASE_POOL_SIZE: int = 10
    DATABASE_MAX_OVERFLOW: int = 20
    DATABASE_ECHO: bool = False
    USE_IN_MEMORY_STORE: bool = False

    # Redis / Queue
    CELERY_BROKER_URL: str = "redis://localhost:6379/0"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/0"
    CELERY_TASK_ACKS_LATE: bool = True
    CELERY_TASK_REJECT_ON_WORKER_LOST: bool = True
    CELERY_TASK_TIME_LIMIT: int = 300  # 5 minutes
    CELERY_TASK_SOFT_TIME_LIMIT: int = 240  # 4 minutes

    # Monitoring
    ENABLE_METRICS: bool = True
    HEALTH_CHECK_TIMEOUT: int = 5

    # Dispatch
    DISPATCH_TOP_K: int = 3
    DISPATCH_OFFER_TIMEOUT_MINUTES: int = 5
    DISPATCH_STANDBY_DEPTH: int = 0
    DISPATCH_DEFAULT_MAX_CONCURRENT_JOBS: int = 3
    DISPATCH_COLD_START_RATING: float = 3.0
    DISPATCH_SKILL_MISMATCH_SCORE: float = 30.0
    DISPATCH_AVERAGE_SPEED_KMH: float = 40.0
    DISPATCH_WEIGHT_PROXIMITY: float = 0.4
    DISPATCH_WEIGHT_SKILLS: float = 0.3
    DISPATCH_WEIGHT_WORKLOAD: float = 0.2
    DISPATCH_WEIGHT_RATING: float = 0.1

    # Celery Beat Scheduler Configuration
    CELERY_CHECK_DISPATCH_TIMEOUTS_INTERVAL_SECONDS: int = 60
    CELERY_CHECK_DISPATCH_TIMEOUTS_TASK_RATE_LIMIT: str = "12/m"
    TIMEOUT_SWEEP_BATCH_SIZE: int = 100

    # Notifications
    NOTIFICATION_WEBHOOK_URL: Optional[str] = None
    NOTIFICATION_TIMEOUT_SECONDS: int = 10

    # External Services
    HTTP_TIMEOUT: int = 30

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str):
            if v == "*":
                return ["*"]
            return [i.strip() for i in v.split(",")]
        elif isinstance(v, list):
            return v
        return ["*"]

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        if v:
            return v
        # Build from individual components if DATABASE_URL is not provided
        user = info.data.get("POSTGRES_USER", "dispatch_user")
        password = info.data.get("POSTGRES_PASSWORD", "dispatch_pass")
        host = info.data.get("POSTGRES_SERVER", "localhost")
        db = info.data.get("POSTGRES_DB", "intervention_dispatch")
        return f"postgresql+asyncpg://{user}:{password}@{host}:5432/{db}"

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ["development", "staging", "production", "test"]:
            raise ValueError(
                "Environment must be one of: development, staging, production, test"
            )
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_dispatch_weights(self) -> "Settings":
        total = (
            self.DISPATCH_WEIGHT_PROXIMITY
            + self.DISPATCH_WEIGHT_SKILLS
            + self.DISPATCH_WEIGHT_WORKLOAD
            + self.DISPATCH_WEIGHT_RATING
        )
        if abs(total - 1.0) > 1e-6:
            raise ValueError(f"Dispatch weights must sum to 1.0, got {total}")
        return self

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}


# Global settings instance
settings = Settings()
