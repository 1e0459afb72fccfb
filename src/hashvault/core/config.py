"""Configuration management for hashvault."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
    )

    ENV: str = "local"
    SERVICE_NAME: str = "hashvault"
    SERVICE_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "INFO"

    # Listen address
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Storage Configuration
    STORAGE_BACKEND: str = "s3"  # "s3", "gcs" or "local"
    UPLOAD_BUCKET_NAME: str = ""
    UPLOAD_BUCKET_REGION: str = ""
    UPLOAD_BUCKET_ENDPOINT: str = ""  # Empty = AWS default endpoint
    UPLOAD_BUCKET_ACCESS_KEY: str = ""
    UPLOAD_BUCKET_SECRET_KEY: str = ""
    UPLOAD_BUCKET_PATH_STYLE: bool = True
    GCP_PROJECT_ID: str = ""
    LOCAL_STORAGE_PATH: str = "data/uploads"

    # Upload Constraints
    MAX_UPLOAD_MB: int = 8
    UPLOAD_CHUNK_SIZE: int = 64 * 1024  # 64KB chunks
    S3_PART_SIZE_MB: int = 8  # S3 rejects non-final parts under 5MB
    STORE_RETRY_ATTEMPTS: int = 3

    # Download Configuration
    CACHE_MAX_AGE_SECONDS: int = 31536000  # One year, keys are immutable

    @property
    def max_upload_bytes(self) -> int:
        """Convert MAX_UPLOAD_MB to bytes."""
        return self.MAX_UPLOAD_MB * 1024 * 1024

    @property
    def s3_part_size_bytes(self) -> int:
        """Convert S3_PART_SIZE_MB to bytes, clamped to the S3 minimum."""
        return max(self.S3_PART_SIZE_MB, 5) * 1024 * 1024

    @property
    def cache_control(self) -> str:
        """Cache-Control header value for downloads."""
        return f"max-age={self.CACHE_MAX_AGE_SECONDS}"


# Singleton settings instance
settings = Settings()
