"""
Persistence media for encoded state.

This module provides:
- BlobStore: Abstract put/get/delete interface (context manager)
- MemoryBlobStore: In-memory storage
- FileBlobStore: Temp-directory storage, removed on close
"""

from .base import BlobStore
from .memory_store import MemoryBlobStore
from .file_store import FileBlobStore

STORES = {
    "memory": MemoryBlobStore,
    "file": FileBlobStore,
}


def open_store(kind: str) -> BlobStore:
    """
    Create a store by name ("memory" or "file").

    Raises:
        ValueError: If kind is unknown
    """
    try:
        return STORES[kind]()
    except KeyError:
        raise ValueError(f"unknown store {kind!r}; choose from {sorted(STORES)}") from None


__all__ = [
    "BlobStore",
    "MemoryBlobStore",
    "FileBlobStore",
    "STORES",
    "open_store",
]
