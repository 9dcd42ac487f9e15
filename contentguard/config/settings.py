from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    analyzer_engine: str = "streaming"

    entropy_threshold: float = Field(default=4.8, gt=0)
    risk_threshold: float = Field(default=0.6, ge=0, le=1)
    max_words: int = Field(default=10, ge=0)
    banned_phrases: list[str] = [
        "confidential",
        "do not share",
        "internal use only",
        "secret",
        "classified",
    ]
    stopwords: list[str] = [
        "the", "a", "an", "and", "or", "but", "in",
        "on", "at", "to", "for", "of", "with", "by",
    ]
    pii_detectors: list[str] = ["digit_run"]

    chunk_size_bytes: int = Field(default=1024 * 1024, gt=0)
    max_file_size_bytes: int = Field(default=100 * 1024 * 1024, gt=0)
    operation_timeout_seconds: float = Field(default=30.0, gt=0)
    stale_operation_seconds: float = Field(default=30 * 60, gt=0)
    sweep_interval_seconds: float = Field(default=5 * 60, gt=0)

    backpressure_chunk_limit: int = 50
    backpressure_resume_ms: int = 1000
    max_queue_size: int = 10
    processing_rate: int = 5

    retry_base_delay_seconds: float = Field(default=1.0, ge=0)
    max_retries: int = Field(default=3, ge=0)
    error_log_capacity: int = Field(default=100, gt=0)
