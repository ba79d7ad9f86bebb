"""
File-backed blob store.

Each key is one file inside a private temporary directory. The directory is
removed when the store is closed.
"""

import os
import re
import shutil
import tempfile
from typing import List, Optional

from ..core.errors import StoreIOError
from .base import BlobStore

_KEY_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
SUFFIX = ".blob"


class FileBlobStore(BlobStore):
    """
    Temp-file blob store.

    Guarantees:
    - Fsync after each put (the bytes read back are the bytes on disk)
    - Directory and every blob removed on close()
    """

    def __init__(self, base_dir: Optional[str] = None, prefix: str = "codecbench-") -> None:
        """
        Args:
            base_dir: Parent for the private directory (default: system temp)
            prefix: Directory name prefix
        """
        try:
            self.directory: Optional[str] = tempfile.mkdtemp(prefix=prefix, dir=base_dir)
        except OSError as ex:
            raise StoreIOError(f"cannot create store directory: {ex}") from ex

    def _path(self, key: str) -> str:
        if self.directory is None:
            raise StoreIOError("store is closed")
        if not _KEY_RE.match(key):
            raise ValueError(f"invalid store key: {key!r}")
        return os.path.join(self.directory, key + SUFFIX)

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        try:
            with open(path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as ex:
            raise StoreIOError(f"put {key!r} failed: {ex}") from ex

    def get(self, key: str) -> bytes:
        path = self._path(key)
        try:
            with open(path, "rb") as f:
                return f.read()
        except FileNotFoundError:
            raise KeyError(key) from None
        except OSError as ex:
            raise StoreIOError(f"get {key!r} failed: {ex}") from ex

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as ex:
            raise StoreIOError(f"delete {key!r} failed: {ex}") from ex

    def keys(self) -> List[str]:
        if self.directory is None or not os.path.isdir(self.directory):
            return []
        return sorted(
            name[: -len(SUFFIX)] for name in os.listdir(self.directory) if name.endswith(SUFFIX)
        )

    def close(self) -> None:
        if self.directory is None:
            return
        super().close()
        shutil.rmtree(self.directory, ignore_errors=True)
        self.directory = None
