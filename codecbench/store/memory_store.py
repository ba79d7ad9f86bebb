"""
In-memory blob store.
"""

from typing import Dict, List

from .base import BlobStore


class MemoryBlobStore(BlobStore):
    """Dict-backed store. Blobs are copied in and out, never aliased."""

    def __init__(self) -> None:
        self._blobs: Dict[str, bytes] = {}

    def put(self, key: str, data: bytes) -> None:
        self._blobs[key] = bytes(data)

    def get(self, key: str) -> bytes:
        return self._blobs[key]

    def delete(self, key: str) -> None:
        self._blobs.pop(key, None)

    def keys(self) -> List[str]:
        return sorted(self._blobs)
