"""Application configuration."""

import json

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from geo_api.engine.queries import StoreLayout


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Store
    spatial_data_table: str = "spatial-data"
    aws_region: str = "eu-west-1"
    dynamodb_endpoint_url: str | None = None
    # "dynamodb" or "memory" (local development without AWS)
    store_backend: str = "dynamodb"

    # Key layout of the spatial data table
    partition_key_hash_precision: int = 1
    partition_key_shards: int = 10
    sort_key_hash_precision: int = 8
    gsi_hash_precision: int = 4
    gsi_name: str = "GSI1"

    # Query behaviour
    maximum_records: int = 100
    query_batch_size: int = 50
    minimum_fetch_limit: int = 10
    route_step_meters: float = 1000.0
    route_buffer_meters: float = 10000.0
    route_proximity_meters: dict[str, float] = {
        "Population": 500.0,
        "Weather": 20000.0,
    }
    sampler_seed: int | None = None

    # Logging
    log_level: str = "info"

    # CORS configuration
    cors_origins: list[str] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from string (JSON or comma-separated) or list."""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except json.JSONDecodeError:
                pass
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    def store_layout(self) -> StoreLayout:
        """Build the key layout value handed to the query engine."""
        return StoreLayout(
            partition_key_precision=self.partition_key_hash_precision,
            secondary_index_precision=self.gsi_hash_precision,
            sort_key_precision=self.sort_key_hash_precision,
            shard_count=self.partition_key_shards,
            index_name=self.gsi_name,
        )


settings = Settings()
