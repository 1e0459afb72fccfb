"""Object store selection."""

import logging
from functools import lru_cache

from hashvault.core.config import Settings, settings
from hashvault.core.exceptions import StoreConfigurationError
from hashvault.storage.base import ObjectStore

logger = logging.getLogger(__name__)


def build_object_store(config: Settings) -> ObjectStore:
    """Build the object store named by STORAGE_BACKEND.

    Configuration is passed explicitly into the adapter constructor; the
    adapters never read settings themselves.

    Raises:
        StoreConfigurationError: If the backend is unknown or misconfigured
    """
    backend = config.STORAGE_BACKEND.lower()
    try:
        if backend == "s3":
            from hashvault.storage.s3 import S3ObjectStore

            return S3ObjectStore(
                bucket_name=config.UPLOAD_BUCKET_NAME,
                region=config.UPLOAD_BUCKET_REGION,
                endpoint_url=config.UPLOAD_BUCKET_ENDPOINT,
                access_key=config.UPLOAD_BUCKET_ACCESS_KEY,
                secret_key=config.UPLOAD_BUCKET_SECRET_KEY,
                path_style=config.UPLOAD_BUCKET_PATH_STYLE,
                part_size=config.s3_part_size_bytes,
                chunk_size=config.UPLOAD_CHUNK_SIZE,
                retry_attempts=config.STORE_RETRY_ATTEMPTS,
            )
        if backend == "gcs":
            from hashvault.storage.gcs import GCSObjectStore

            return GCSObjectStore(
                bucket_name=config.UPLOAD_BUCKET_NAME,
                project_id=config.GCP_PROJECT_ID,
                write_chunk_size=config.s3_part_size_bytes,
                chunk_size=config.UPLOAD_CHUNK_SIZE,
            )
        if backend == "local":
            from hashvault.storage.local import LocalObjectStore

            return LocalObjectStore(config.LOCAL_STORAGE_PATH, chunk_size=config.UPLOAD_CHUNK_SIZE)
    except ValueError as e:
        raise StoreConfigurationError(str(e)) from e

    raise StoreConfigurationError(f"Unknown STORAGE_BACKEND: {config.STORAGE_BACKEND}")


@lru_cache(maxsize=1)
def get_object_store() -> ObjectStore:
    """Return the process-wide object store, building it on first use."""
    store = build_object_store(settings)
    logger.info(f"Object store ready: backend={store.get_backend_name()}")
    return store
