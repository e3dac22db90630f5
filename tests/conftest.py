"""
Pytest configuration and fixtures.

Provides shared fixtures for blob storage, the calculation store and the
calculator service. Stores are backed by a temporary directory or memory,
never by the user's real storage directory.
"""

import pytest
from dotenv import load_dotenv

from db.calculation_store import CalculationStore, close_calculation_store
from db.storage import FileBlobStorage, InMemoryBlobStorage, StorageError
from services.calculator_service import CalculatorService


load_dotenv()


class FailingBlobStorage(InMemoryBlobStorage):
    """In-memory storage whose writes can be switched to fail."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def write(self, key: str, blob: str) -> None:
        if self.fail_writes:
            raise StorageError("disk full")
        super().write(key, blob)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Point storage config at a temp dir and reset the shared store."""
    monkeypatch.setenv("CALCULATOR_STORAGE_DIR", str(tmp_path / "storage"))
    monkeypatch.setenv("CALCULATOR_STORAGE_KEY", "calculator-storage")
    monkeypatch.delenv("CALCULATOR_STORAGE_BACKEND", raising=False)
    yield
    close_calculation_store()


@pytest.fixture
def memory_storage():
    return InMemoryBlobStorage()


@pytest.fixture
def failing_storage():
    return FailingBlobStorage()


@pytest.fixture
def file_storage(tmp_path):
    return FileBlobStorage(str(tmp_path / "blobs"))


@pytest.fixture
def store(memory_storage):
    """Empty store on in-memory storage."""
    return CalculationStore(memory_storage).load()


@pytest.fixture
def service(store):
    return CalculatorService(store)


@pytest.fixture
def cagr_inputs():
    """10,000 growing to 15,000 over 5 years."""
    return {'initial_value': '10000', 'final_value': '15000', 'years': '5'}


@pytest.fixture
def loss_recovery_inputs():
    """100 shares at 50, down 20%, recovering 10 points."""
    return {
        'shares_owned': '100',
        'average_price': '50',
        'current_loss_pct': '20',
        'recovery_pct': '10',
    }
