"""Application configuration using pydantic-settings."""

import json
from typing import Literal

from pydantic import AliasChoices, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=("../.env", ".env"),  # Load root .env first, then backend/.env (overrides)
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Sequence store
    # "auto" picks Redis when a URL is configured, otherwise the local file
    sequence_backend: Literal["auto", "file", "redis"] = "auto"
    sequence_file_path: str = "data/chassis_sequences.json"
    sequence_redis_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SEQUENCE_REDIS_URL", "KV_URL", "REDIS_URL"),
    )
    sequence_key_namespace: str = "chassis_seq:"
    sequence_operation_timeout: float = 5.0
    sequence_retry_attempts: int = 3
    sequence_retry_min_wait: float = 0.1
    sequence_retry_max_wait: float = 2.0
    sequence_warn_threshold: int = 990_000

    # Batch generation
    max_batch_quantity: int = 10_000
    default_manufacturer_id: str = "LZS"
    default_descriptor: str = "HCKZS"
    default_plant_code: str = "S"

    # Templates
    template_marker_prefix: str = "CH: "
    template_output_dir: str = "xml-output"

    # Application
    debug: bool = False
    log_level: str = "info"

    # CORS origins - stored as string to avoid pydantic-settings JSON parsing
    # Supports comma-separated values or JSON array format
    backend_cors_origins_str: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000",
        validation_alias="BACKEND_CORS_ORIGINS",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def backend_cors_origins(self) -> list[str]:
        """Parse CORS origins from string (comma-separated or JSON array)."""
        v = self.backend_cors_origins_str
        if not v:
            return []
        if v.startswith("["):
            result: list[str] = json.loads(v)
            return result
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @property
    def use_redis(self) -> bool:
        """True when credentials for the distributed sequence store are present."""
        return bool(self.sequence_redis_url)


settings = Settings()
