"""
BlobStore abstract interface.

The persistence medium the harness writes encoded state to between trials.
"""

from abc import ABC, abstractmethod
from typing import List


class BlobStore(ABC):
    """
    Abstract key -> bytes storage.

    All implementations must guarantee:
    - Byte fidelity (get returns exactly what put stored)
    - Scoped lifetime (close() removes every stored blob)

    Stores are context managers; leaving the block closes the store on every
    exit path, including exceptions.
    """

    @abstractmethod
    def put(self, key: str, data: bytes) -> None:
        """
        Store data under key, replacing any previous value.

        Raises:
            StoreIOError: If the medium fails
        """
        ...

    @abstractmethod
    def get(self, key: str) -> bytes:
        """
        Return bytes stored under key.

        Raises:
            KeyError: If key was never stored or has been deleted
            StoreIOError: If the medium fails
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is a no-op."""
        ...

    @abstractmethod
    def keys(self) -> List[str]:
        ...

    def close(self) -> None:
        """Delete every stored blob. Safe to call more than once."""
        for key in self.keys():
            self.delete(key)

    def __enter__(self) -> "BlobStore":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
