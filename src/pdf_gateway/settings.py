# src/pdf_gateway/settings.py
from typing import List, Optional
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Build it once at startup and pass it to ``create_app`` and
    ``ObjectStore.from_settings``; request handlers read it from ``app.state``.
    """

    # Application Settings
    app_name: str = Field(
        default="pdf-gateway",
        description="Application name"
    )

    api_prefix: str = Field(
        default="/api",
        description="Path prefix every route is mounted under"
    )

    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Browser origins allowed to call the API"
    )

    host: str = Field(default="0.0.0.0", description="Bind address for `serve`")
    port: int = Field(default=5000, alias="PORT", description="Bind port for `serve`")

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        alias="AWS_ENDPOINT_URL",
        description="Custom endpoint for S3-compatible stores (MinIO, moto server)"
    )

    # S3 Configuration
    s3_bucket_name: str = Field(
        default="pdf-documents",
        alias="AWS_S3_BUCKET_NAME",
        description="S3 bucket for PDF storage"
    )

    # Transfer limits
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        gt=0,
        description="Hard ceiling for a single uploaded document"
    )

    multipart_chunk_bytes: int = Field(
        default=5 * 1024 * 1024,
        ge=5 * 1024 * 1024,
        description="Part size used when streaming uploads to S3 (S3 minimum is 5 MiB)"
    )

    transfer_max_concurrency: int = Field(
        default=4,
        ge=1,
        description="Parts uploaded in parallel per document"
    )

    upload_body_allowance_bytes: int = Field(
        default=64 * 1024,
        ge=0,
        description="Multipart framing allowed on top of max_upload_bytes before the raw request body is refused"
    )

    download_chunk_bytes: int = Field(
        default=64 * 1024,
        gt=0,
        description="Chunk size when piping an object into a response"
    )

    # Directory operations
    list_max_keys: int = Field(
        default=10,
        ge=1,
        le=1000,
        description="Maximum entries returned by GET /list-files"
    )

    signed_url_ttl_seconds: int = Field(
        default=3600,
        gt=0,
        description="Lifetime of presigned download URLs"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator("api_prefix")
    @classmethod
    def normalize_api_prefix(cls, v: str) -> str:
        """Strip trailing slashes and make sure the prefix starts with one."""
        v = v.strip().rstrip("/")
        if v and not v.startswith("/"):
            v = f"/{v}"
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one the logging module knows."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log_level: {v}. Must be one of {valid_levels}")
        return v

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
