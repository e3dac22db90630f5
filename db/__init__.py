"""
Persistence layer for saved calculations.

This module provides:
- Blob storage backends (in-memory and JSON files)
- The calculation record store and its module-level lifecycle
"""

from .storage import (
    BlobStorage,
    FileBlobStorage,
    InMemoryBlobStorage,
    StorageError,
    get_storage,
)
from .calculation_store import (
    CalculationStore,
    RecordNotFoundError,
    init_calculation_store,
    get_calculation_store,
    close_calculation_store,
)

__all__ = [
    'BlobStorage',
    'FileBlobStorage',
    'InMemoryBlobStorage',
    'StorageError',
    'get_storage',
    'CalculationStore',
    'RecordNotFoundError',
    'init_calculation_store',
    'get_calculation_store',
    'close_calculation_store',
]
