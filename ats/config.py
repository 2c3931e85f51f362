"""
Configuration management for the applicant tracking backend.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Database
    database_url: str = ""

    # Scheduler
    scheduler_jobstore_url: str = ""  # Defaults to database_url when empty
    scheduler_timezone: str = "UTC"
    scheduler_group: str = "resume-screening"
    scheduler_max_workers: int = 4

    # Screening pipeline
    filtering_delay_minutes: int = 1
    filtering_retry_seconds: int = 60
    filtering_max_deferrals: int = 30
    filtering_statement_timeout_ms: int = 30000

    # Mail
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_password: str = ""
    mail_from: str = ""
    frontend_base_url: str = "http://localhost:5173"

    # API
    cors_origins: str = "http://localhost:5173"
    apply_rate_limit: str = "10/minute"

    # Observability
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"  # Ignore extra env vars


settings = Settings()
