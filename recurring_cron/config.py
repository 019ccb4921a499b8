"""Configuration management using Pydantic Settings"""

from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./recurring_cron.db"

    # Service
    service_name: str = "recurring-cron"
    app_version: str = "0.1.0"
    log_level: str = "INFO"
    environment: str = "production"  # development enables the frequent dev sweep

    # Scheduler
    scheduler_enabled: bool = True
    sweep_cron: str = "0 9 * * *"  # Every day at 09:00
    scheduler_timezone: str = "Europe/Rome"
    sweep_misfire_grace_seconds: int = 3600
    dev_sweep_interval_minutes: int = 5
    health_check_interval_minutes: int = 5

    # Job tracker
    job_history_size: int = 100

    # Health thresholds
    db_slow_threshold_ms: float = 5000.0
    long_running_job_minutes: int = 30
    failure_rate_threshold: float = 0.5

    # Manual trigger: when set, requires "Authorization: Bearer <secret>"
    cron_secret: Optional[str] = None


settings = Settings()
