"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue
    queue_name: str = "jobs"
    queue_url: str | None = None
    queue_backend: Literal["sqs", "memory"] = "sqs"
    queue_default_timeout: int = 60
    queue_default_visibility_timeout: int = 300

    # AWS
    aws_region: str = "eu-central-1"
    aws_endpoint_url: str | None = None
    aws_read_timeout_seconds: int = 70
    aws_connect_timeout_seconds: int = 3

    # Worker Configuration
    worker_id: str | None = None
    worker_visibility_timeout_seconds: int | None = None
    worker_error_backoff_seconds: float = 5.0
    worker_heartbeat_interval_seconds: float = 60.0
    worker_max_attempts: int = 3
    worker_retry_delay_seconds: int = 60

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "sqs-job-queue"
    prometheus_port: int = 9090
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
