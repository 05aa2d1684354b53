import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict

logger = logging.getLogger(__name__)

BLOB_URL_PREFIX = "/api/blobs"


class BlobNotFoundError(LookupError):
    pass


@dataclass(frozen=True)
class BlobReference:
    """Locally addressable handle to bytes held by a :class:`BlobStore`."""

    blob_id: str
    media_type: str
    size: int

    @property
    def url(self) -> str:
        return f"{BLOB_URL_PREFIX}/{self.blob_id}"


@dataclass(frozen=True)
class Blob:
    data: bytes
    media_type: str


class BlobStore:
    """In-memory object URL registry.

    Nothing is persisted; a reference stays resolvable until it is revoked or
    the process exits.
    """

    def __init__(self):
        self._blobs: Dict[str, Blob] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes, media_type: str) -> BlobReference:
        blob_id = uuid.uuid4().hex
        with self._lock:
            self._blobs[blob_id] = Blob(data=bytes(data), media_type=media_type)
        logger.debug("Stored blob %s (%s, %d bytes)", blob_id, media_type, len(data))
        return BlobReference(blob_id=blob_id, media_type=media_type, size=len(data))

    def get(self, blob_id: str) -> Blob:
        with self._lock:
            blob = self._blobs.get(blob_id)
        if blob is None:
            raise BlobNotFoundError(f"Blob {blob_id} not found")
        return blob

    def read(self, reference: BlobReference) -> bytes:
        return self.get(reference.blob_id).data

    def revoke(self, reference: BlobReference) -> None:
        with self._lock:
            removed = self._blobs.pop(reference.blob_id, None)
        if removed is not None:
            logger.debug("Revoked blob %s", reference.blob_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._blobs)
