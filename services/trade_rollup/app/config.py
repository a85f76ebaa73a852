"""
Trade Rollup Configuration

Pydantic Settings for the Trade Rollup job.
Loads from environment variables with sensible defaults.
"""

from typing import Literal, Optional
from pydantic_settings import BaseSettings
from pydantic import Field

from ..core.constants import AGGREGATE_BATCH_SIZE, DEFAULT_SOURCES, STAGE_BATCH_SIZE


class Settings(BaseSettings):
    """Trade Rollup job configuration."""

    # Service identity
    service_name: str = Field(default="trade-rollup", description="Service name for logging/metrics")
    environment: Literal["local", "staging", "production"] = Field(default="local")
    service_version: str = Field(default="0.1.0")
    log_level: str = Field(default="INFO")

    # Data sources (one worker each)
    sources: str = Field(default=",".join(DEFAULT_SOURCES), description="Comma-separated exchange list")

    # Database
    database_url: str = Field(default="", description="PostgreSQL connection string")
    connect_timeout_seconds: float = Field(default=60.0, gt=0, description="Connection setup timeout")

    # Batching
    stage_batch_size: int = Field(default=STAGE_BATCH_SIZE, gt=0, description="Distinct timestamps per bulk round")
    aggregate_batch_size: int = Field(default=AGGREGATE_BATCH_SIZE, gt=0, description="Index entries per transaction")

    # Bulk transfer files (empty = system temp dir)
    bulk_dir: str = Field(default="", description="Directory for bulk export/load files")

    # Prometheus textfile collector output (empty = disabled)
    metrics_textfile: str = Field(default="", description="Path to write metrics to after the run")

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"
        extra = "ignore"

    @property
    def source_list(self) -> list[str]:
        """Parse sources string to list."""
        return [s.strip().lower() for s in self.sources.split(",") if s.strip()]

    @property
    def bulk_dir_path(self) -> Optional[str]:
        """Bulk file directory, or None for the system default."""
        return self.bulk_dir or None


# Global settings instance
settings = Settings()
