"""Object storage library public API."""

from canvass_api.lib.storage.local import LocalFileStore
from canvass_api.lib.storage.storage import (
    ObjectNotAccessibleError,
    ObjectStore,
    S3ObjectStore,
    create_object_store,
    create_storage_client,
    ensure_bucket,
    get_object_bytes,
    put_object,
)

__all__ = [
    "LocalFileStore",
    "ObjectNotAccessibleError",
    "ObjectStore",
    "S3ObjectStore",
    "create_object_store",
    "create_storage_client",
    "ensure_bucket",
    "get_object_bytes",
    "put_object",
]
