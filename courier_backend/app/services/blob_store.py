"""
Blob store for signature images and delivery photos.

The core only keeps the returned reference string. `LocalBlobStore` stands in
for real object storage by writing files under settings.blob_storage_dir.
"""

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Protocol

from courier_backend.app.core.config import settings
from courier_backend.app.core.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob://"
MAX_BLOB_BYTES = 5 * 1024 * 1024


class BlobStore(Protocol):
    async def put(self, data: bytes, content_type: str) -> str:
        ...

    async def exists(self, ref: str) -> bool:
        ...


class LocalBlobStore:

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path_for(self, ref: str) -> Path:
        if not ref.startswith(BLOB_SCHEME):
            raise ValidationError.for_field("ref", f"Not a blob reference: {ref}")
        key = ref[len(BLOB_SCHEME):]
        try:
            uuid.UUID(key)
        except ValueError:
            raise ValidationError.for_field("ref", f"Malformed blob reference: {ref}")
        return self.root / key

    async def put(self, data: bytes, content_type: str) -> str:
        if not data:
            raise ValidationError.for_field("content", "Blob payload is empty")
        if len(data) > MAX_BLOB_BYTES:
            raise ValidationError.for_field("content", "Blob payload exceeds 5 MB")

        ref = f"{BLOB_SCHEME}{uuid.uuid4()}"
        path = self._path_for(ref)
        try:
            await asyncio.to_thread(self._write, path, data)
        except OSError as exc:
            logger.error("Blob write failed at %s: %s", path, exc)
            raise StorageError("Could not store blob") from exc

        logger.info("Stored blob %s (%s, %d bytes)", ref, content_type, len(data))
        return ref

    async def exists(self, ref: str) -> bool:
        try:
            path = self._path_for(ref)
        except ValidationError:
            return False
        return await asyncio.to_thread(path.exists)

    @staticmethod
    def _write(path: Path, data: bytes) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)


def get_blob_store() -> BlobStore:
    """FastAPI dependency for the blob store."""
    return LocalBlobStore(settings.blob_storage_dir)
