"""Centralized configuration for index-feeder using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Strictly typed configuration loaded from environment variables.

    Values are validated once at construction. Every field has a safe default
    so the codec layer can be used without any environment at all.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        validate_default=True,
        extra="ignore",
    )

    # Index server
    index_base_url: str = Field(
        default="http://localhost:8983/solr",
        description="Base URL of the index server (collection names are appended to it)",
    )
    full_text_field_type: str = Field(
        default="text_en",
        min_length=1,
        description="Index field type used for the catch-all text field and full-text named fields",
    )

    # HTTP/Request settings
    http_timeout: int = Field(default=30, ge=1, description="HTTP request timeout in seconds")

    # Collection defaults
    default_shards: int = Field(default=1, ge=1, description="Shard count used when creating collections")
    default_replication_factor: int = Field(
        default=1, ge=1, description="Replication factor used when creating collections"
    )

    # Schema and snapshot artifacts
    storage_path: str = Field(default=".", description="Directory holding ds_schema_*.xml and ds_snapshot_*.xml")

    # Logging
    log_level: str = Field(default="info", description="Logging level")
    json_logs: bool = Field(default=True, description="Emit structured JSON log lines")

    @field_validator("index_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def collection_url(self, collection: str, handler: str = "") -> str:
        """Return the URL of a collection, optionally extended with a request handler."""
        url = f"{self.index_base_url}/{collection}"
        if handler:
            url = f"{url}/{handler.lstrip('/')}"
        return url

    def admin_collections_url(self) -> str:
        """Return the collections administration endpoint."""
        return f"{self.index_base_url}/admin/collections"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
