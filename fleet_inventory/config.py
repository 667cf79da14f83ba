from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import Dict
from functools import lru_cache
import json


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./fleet_inventory.db"

    # Database Connection Pool Settings
    DB_POOL_SIZE: int = 10  # Base number of connections in pool
    DB_MAX_OVERFLOW: int = 20  # Extra connections allowed beyond pool_size
    DB_POOL_TIMEOUT: int = 30  # Seconds to wait for connection from pool
    DB_POOL_RECYCLE: int = 1800  # Recycle connections after 30 minutes

    # App Settings
    APP_NAME: str = "Fleet Inventory Cycle Counts"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # CORS - accepts JSON string, comma-separated, or list
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # ABC Classification (cumulative share of total usage value, in percent)
    ABC_A_THRESHOLD_PERCENT: float = 80.0
    ABC_B_THRESHOLD_PERCENT: float = 95.0

    # Cycle count interval per ABC class, in days
    CYCLE_COUNT_INTERVAL_A_DAYS: int = 30
    CYCLE_COUNT_INTERVAL_B_DAYS: int = 90
    CYCLE_COUNT_INTERVAL_C_DAYS: int = 180

    # Batch job limits
    CYCLE_COUNT_BATCH_SIZE: int = 200  # Parts written per flush/commit
    CYCLE_COUNT_JOB_TIMEOUT_SECONDS: int = 300  # Hard limit per batch job
    CYCLE_COUNT_SCHEDULE_TIME_BUDGET_SECONDS: int = 240  # Stop between batches after this

    # Count numbering: CC-00001
    COUNT_NUMBER_PREFIX: str = "CC"
    COUNT_NUMBER_PADDING: int = 5

    # Background scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_TIMEZONE: str = "UTC"
    CYCLE_COUNT_JOB_HOUR: int = 1  # Nightly "Recalculate ABC" then "Generate Schedule"

    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v):
        if isinstance(v, str):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [origin.strip() for origin in v.split(',')]
        return v

    @field_validator('ABC_B_THRESHOLD_PERCENT')
    @classmethod
    def check_b_threshold(cls, v, info):
        a_threshold = info.data.get('ABC_A_THRESHOLD_PERCENT')
        if a_threshold is not None and v < a_threshold:
            raise ValueError("ABC_B_THRESHOLD_PERCENT must be >= ABC_A_THRESHOLD_PERCENT")
        return v

    @property
    def cors_origins_list(self) -> list[str]:
        return list(self.CORS_ORIGINS)

    @property
    def cycle_count_intervals(self) -> Dict[str, int]:
        """Count interval in days keyed by ABC class value."""
        return {
            "A": self.CYCLE_COUNT_INTERVAL_A_DAYS,
            "B": self.CYCLE_COUNT_INTERVAL_B_DAYS,
            "C": self.CYCLE_COUNT_INTERVAL_C_DAYS,
        }

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
