from pathlib import Path
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # App
    app_name: str = "Log Relay"
    host: str = "0.0.0.0"
    port: int = 3006
    log_level: str = "INFO"

    # CORS — comma-separated list of allowed origins
    cors_origins: str = "*"

    # Storage: the live buffer document and the snapshot directory default to
    # locations under data_dir when not set explicitly.
    data_dir: Path = Path("data")
    logs_file: Path | None = None
    archive_dir: Path | None = None

    # What to do when logs_file exists but cannot be parsed:
    #   fallback — log the error and start with an empty buffer
    #   fail     — refuse to start
    corrupt_store_policy: Literal["fallback", "fail"] = "fallback"

    # Ingestion
    sentinel: str = "shutdown"

    # Real-time channel
    heartbeat_interval: float = 30.0
    subscriber_queue_size: int = 1000

    @model_validator(mode="after")
    def resolve_storage_paths(self) -> "Settings":
        """Fill in logs_file / archive_dir from data_dir when they were not given."""
        if self.logs_file is None:
            self.logs_file = self.data_dir / "logs.json"
        if self.archive_dir is None:
            self.archive_dir = self.data_dir / "archives"
        return self


settings = Settings()
