"""Application configuration via Pydantic Settings.

All configuration is loaded from environment variables following 12-factor principles.
"""

import re

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_url: str = Field(
        description="PostgreSQL async connection string",
    )
    database_schema: str | None = Field(
        default=None,
        description="PostgreSQL schema for isolated environments (e.g., pr_42)",
    )

    @field_validator("database_schema")
    @classmethod
    def validate_database_schema(cls, v: str | None) -> str | None:
        if v is None:
            return None
        if not re.match(r"^[a-z_][a-z0-9_]{0,62}$", v):
            msg = "Invalid database_schema: must match ^[a-z_][a-z0-9_]{0,62}$"
            raise ValueError(msg)
        return v

    # JWT (verification only; tokens are issued by the auth service)
    jwt_secret_key: str = Field(min_length=32, description="Secret key for verifying JWTs (minimum 32 characters)")
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")

    # Import pipeline
    import_progress_interval: int = Field(
        default=250,
        description="Rows written between progress checkpoints",
        gt=0,
    )
    xlsx_convert_timeout: float = Field(
        default=60.0,
        description="Hard timeout in seconds for the XLSX to CSV conversion subprocess",
        gt=0,
    )
    max_import_file_size_mb: int = Field(
        default=100,
        description="Maximum accepted voter file upload size in megabytes",
        gt=0,
    )
    default_state: str = Field(
        default="LA",
        description="State recorded on imported voters whose file has no state column",
    )

    # Placeholder geocoordinate used until real geocoding runs
    placeholder_latitude: float = Field(default=40.7128, description="Reference latitude for unplaced voters")
    placeholder_longitude: float = Field(default=-74.006, description="Reference longitude for unplaced voters")
    placeholder_jitter: float = Field(
        default=0.01,
        description="Maximum per-voter offset added to the reference point",
        ge=0,
    )

    # S3-compatible object storage (Cloudflare R2)
    s3_endpoint_url: str | None = Field(
        default=None,
        description="S3 endpoint URL (e.g. https://<account>.r2.cloudflarestorage.com)",
    )
    s3_region: str = Field(default="auto", description="S3 region name")
    s3_bucket: str | None = Field(default=None, description="Bucket holding uploaded voter files")
    s3_access_key_id: str | None = Field(default=None, description="S3 access key")
    s3_secret_access_key: str | None = Field(default=None, description="S3 secret key")

    @property
    def storage_enabled(self) -> bool:
        """True when every setting needed to reach the object store is present."""
        return bool(self.s3_bucket and self.s3_access_key_id and self.s3_secret_access_key)

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_dir: str | None = Field(
        default=None,
        description="Directory for log files (enables file logging with 24h rotation when set)",
    )

    # CORS
    cors_origins: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins (must be explicitly configured)",
    )

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        if not self.cors_origins.strip():
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    # Environment
    environment: str = Field(
        default="production",
        description="Deployment environment name (e.g. production, dev, staging)",
    )

    # API
    api_v1_prefix: str = Field(
        default="/api/v1",
        description="API version prefix",
    )


def get_settings() -> Settings:
    """Create and return application settings."""
    return Settings()  # type: ignore[call-arg]
