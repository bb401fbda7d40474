"""Configuration management for the catalog sync engine."""

import os
from pathlib import Path
from typing import Dict, Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


class SyncConfig(BaseModel):
    """Run configuration for a feed-to-catalog sync."""

    # Feed source
    feed_url: str = Field(default="https://dummyjson.com/products", description="Paginated product feed URL")
    page_size: int = Field(default=20, description="Maximum items requested per HTTP call")

    # Work partitioning
    batch_size: int = Field(default=20, description="Items per batch task")
    worker_count: int = Field(default=4, description="Concurrent sync workers")
    safe_max_items: int = Field(default=5000, description="Upper bound on items synced per run")

    # Retry policy
    max_retries: int = Field(default=3, description="Total attempts per request before giving up")
    initial_backoff: float = Field(default=1.0, description="Delay before the first retry in seconds")
    max_backoff: float = Field(default=30.0, description="Backoff cap in seconds")
    backoff_multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")
    rate_limit_backoff: float = Field(default=5.0, description="Delay after a 429 without Retry-After")
    max_retry_after: float = Field(default=60.0, description="Cap on server-directed Retry-After delays")
    request_delay: float = Field(default=0.0, description="Pacing delay before every request")

    # Timeouts
    connect_timeout: float = Field(default=3.0, description="HTTP connect timeout in seconds")
    read_timeout: float = Field(default=10.0, description="HTTP read timeout in seconds")
    run_timeout: Optional[float] = Field(default=None, description="Stop awaiting workers after this many seconds")

    # Catalog
    currency_code: str = Field(default="usd", description="Currency for variant prices")
    store_path: str = Field(default="data/catalog.json", description="Catalog snapshot file for the local store")

    # Scheduling
    schedule_interval: float = Field(default=1800.0, description="Seconds between scheduled runs")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")

    # Output
    output_directory: str = Field(default="out", description="Output directory for run reports")
    output_filename: str = Field(default="sync_report.json", description="Run report filename")

    @field_validator('feed_url')
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError(f"URL must start with http:// or https://, got: {v}")
        return v

    @field_validator('page_size', 'batch_size', 'worker_count', 'safe_max_items', 'max_retries')
    @classmethod
    def validate_positive_int(cls, v: int, info) -> int:
        if v <= 0:
            raise ValueError(f"{info.field_name} must be positive, got: {v}")
        return v

    @field_validator('backoff_multiplier')
    @classmethod
    def validate_multiplier(cls, v: float) -> float:
        if v < 1.0:
            raise ValueError(f"backoff_multiplier must be at least 1.0, got: {v}")
        return v

    @field_validator('run_timeout')
    @classmethod
    def validate_timeout(cls, v: Optional[float]) -> Optional[float]:
        """Validate timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError(f"run_timeout must be positive, got: {v}")
        return v

    @model_validator(mode='after')
    def validate_backoff_bounds(self) -> "SyncConfig":
        if self.max_backoff < self.initial_backoff:
            raise ValueError("max_backoff must not be lower than initial_backoff")
        return self

    @property
    def output_path(self) -> Path:
        """Get full output file path."""
        return Path(self.output_directory) / self.output_filename

    @classmethod
    def from_env(cls) -> "SyncConfig":
        """Create configuration with environment variable overrides."""
        config = cls()

        env_mappings = {
            "SYNC_API_URL": "feed_url",
            "SYNC_PAGE_SIZE": "page_size",
            "SYNC_BATCH_SIZE": "batch_size",
            "SYNC_WORKERS": "worker_count",
            "SYNC_SAFE_MAX": "safe_max_items",
            "SYNC_MAX_RETRIES": "max_retries",
            "SYNC_INITIAL_BACKOFF": "initial_backoff",
            "SYNC_MAX_BACKOFF": "max_backoff",
            "SYNC_REQUEST_DELAY": "request_delay",
            "SYNC_RUN_TIMEOUT": "run_timeout",
            "SYNC_SCHEDULE_INTERVAL": "schedule_interval",
            "SYNC_STORE_PATH": "store_path",
            "SYNC_LOG_LEVEL": "log_level",
        }

        values = {}
        for env_var, field_name in env_mappings.items():
            if env_var in os.environ:
                values[field_name] = os.environ[env_var]

        if not values:
            return config
        # pydantic coerces the string values to the declared field types
        return cls(**{**config.model_dump(), **values})


class ConfigManager:
    """Manages configuration loading with override precedence."""

    def __init__(self, config_file: Optional[Path] = None):
        self.config_file = config_file or Path("config/config.yaml")
        self._config: Optional[SyncConfig] = None

    def load_config(self, cli_overrides: Optional[Dict] = None) -> SyncConfig:
        """
        Load configuration with override precedence: CLI > ENV > YAML > defaults.

        Args:
            cli_overrides: Optional dictionary of CLI flag overrides

        Returns:
            Fully merged SyncConfig instance

        Raises:
            ValueError: If configuration validation fails
        """
        config_dict = {}

        if self.config_file.exists():
            with open(self.config_file, 'r') as f:
                yaml_config = yaml.safe_load(f)
                if yaml_config:
                    config_dict.update(yaml_config)

        merged_dict = SyncConfig(**config_dict).model_dump()

        # Only env values that differ from defaults override the YAML file
        env_dict = SyncConfig.from_env().model_dump()
        default_dict = SyncConfig().model_dump()
        for key, value in env_dict.items():
            if value != default_dict[key]:
                merged_dict[key] = value

        if cli_overrides:
            cli_overrides = {k: v for k, v in cli_overrides.items() if v is not None}
            merged_dict.update(cli_overrides)

        self._config = SyncConfig(**merged_dict)
        return self._config

    @property
    def config(self) -> SyncConfig:
        """Get the loaded configuration."""
        if self._config is None:
            self._config = self.load_config()
        return self._config
