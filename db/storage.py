"""
Blob storage backends for persisted calculator state.

The calculation store keeps its whole state as one JSON blob under a fixed
key. Backends only need to read, write and delete opaque text by key.
"""

import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_KEY = "calculator-storage"
DEFAULT_STORAGE_DIR = "~/.stock_calculators"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class StorageError(Exception):
    """Exception raised when storage operations fail."""
    pass


class BlobStorage(ABC):
    """Key/value text storage."""

    @abstractmethod
    def read(self, key: str) -> Optional[str]:
        """Return the blob stored under key, or None if absent."""
        pass

    @abstractmethod
    def write(self, key: str, blob: str) -> None:
        """Replace the blob stored under key."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove the blob under key. Returns False if nothing was stored."""
        pass


class InMemoryBlobStorage(BlobStorage):
    """Process-local storage for tests and ephemeral sessions."""

    def __init__(self):
        self._blobs: Dict[str, str] = {}

    def read(self, key: str) -> Optional[str]:
        return self._blobs.get(key)

    def write(self, key: str, blob: str) -> None:
        self._blobs[key] = blob

    def delete(self, key: str) -> bool:
        return self._blobs.pop(key, None) is not None


class FileBlobStorage(BlobStorage):
    """
    One JSON file per key under a base directory.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a failed write never leaves a truncated blob behind.
    """

    def __init__(self, base_path: Optional[str] = None):
        """
        Initialize file storage.

        Args:
            base_path: Directory for blob files
                       (defaults to CALCULATOR_STORAGE_DIR env var)
        """
        raw_path = base_path or os.getenv('CALCULATOR_STORAGE_DIR', DEFAULT_STORAGE_DIR)
        self._base_path = Path(raw_path).expanduser()
        try:
            self._base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create storage directory {self._base_path}: {e}")

    @property
    def base_path(self) -> Path:
        return self._base_path

    def _path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise StorageError(f"Invalid storage key: {key!r}")
        return self._base_path / f"{key}.json"

    def read(self, key: str) -> Optional[str]:
        path = self._path_for(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.error(f"Failed to read {path}: {e}")
            raise StorageError(f"Read failed for key {key}: {e}")

    def write(self, key: str, blob: str) -> None:
        path = self._path_for(key)
        tmp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                "w",
                encoding="utf-8",
                dir=self._base_path,
                prefix=f".{key}.",
                suffix=".tmp",
                delete=False,
            ) as tmp:
                tmp_name = tmp.name
                tmp.write(blob)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            raise StorageError(f"Write failed for key {key}: {e}")
        finally:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Failed to delete {path}: {e}")
            raise StorageError(f"Deletion failed for key {key}: {e}")


def get_storage(backend: Optional[str] = None) -> BlobStorage:
    """
    Factory function to get the configured storage backend.

    Args:
        backend: 'file' or 'memory' (defaults to CALCULATOR_STORAGE_BACKEND env var)
    """
    backend = (backend or os.getenv('CALCULATOR_STORAGE_BACKEND', 'file')).lower()

    if backend == 'memory':
        logger.info("Using in-memory storage for calculations")
        return InMemoryBlobStorage()
    if backend == 'file':
        storage = FileBlobStorage()
        logger.info(f"Using file storage for calculations at {storage.base_path}")
        return storage

    raise ValueError(f"Unknown storage backend: {backend}")
