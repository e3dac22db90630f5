"""
Calculation record store.

Holds saved calculations (most recent first) and the selected calculator,
and persists both as a single JSON blob through a BlobStorage backend.

Every mutation rewrites the whole blob. The in-memory state is only replaced
after the write succeeds, so a failed write leaves the store exactly as it
was and the last written blob remains the durable state.

Usage:
    store = CalculationStore(FileBlobStorage())
    store.load()
    record_id = store.save(CalculatorKind.CAGR, inputs, label="Index fund")
"""

import logging
import os
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Union

from pydantic import ValidationError

from db.storage import (
    DEFAULT_STORAGE_KEY,
    BlobStorage,
    StorageError,
    get_storage,
)
from models.calculations import (
    RECORD_MODELS,
    CalculationRecord,
    CalculationStoreState,
    CalculatorInputs,
    CalculatorKind,
    CalculatorResult,
)
from services.calculations import get_calculator
from services.errors import CalculationValidationError

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 255


class RecordNotFoundError(Exception):
    """Raised when no saved calculation has the requested id."""

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Calculation {record_id} not found")


class CalculationStore:
    """
    Ordered collection of saved calculation records backed by blob storage.

    Single writer; no locking.
    """

    def __init__(self, storage: BlobStorage, key: Optional[str] = None):
        """
        Args:
            storage: Backend used to persist the blob
            key: Storage key (defaults to CALCULATOR_STORAGE_KEY env var)
        """
        self._storage = storage
        self._key = key or os.getenv('CALCULATOR_STORAGE_KEY', DEFAULT_STORAGE_KEY)
        self._records: List[CalculationRecord] = []
        self._selected: Optional[CalculatorKind] = None

    @property
    def key(self) -> str:
        return self._key

    @property
    def selected_calculator(self) -> Optional[CalculatorKind]:
        return self._selected

    def __len__(self) -> int:
        return len(self._records)

    # =========================================================================
    # Persistence
    # =========================================================================

    def load(self) -> "CalculationStore":
        """
        Replace in-memory state with the persisted blob.

        A missing blob yields an empty store.

        Raises:
            StorageError: If the blob cannot be read or decoded
        """
        blob = self._storage.read(self._key)
        if blob is None:
            logger.info(f"No saved calculations under '{self._key}', starting empty")
            self._records = []
            self._selected = None
            return self

        try:
            state = CalculationStoreState.model_validate_json(blob)
        except (ValidationError, ValueError) as e:
            logger.error(f"Saved calculations under '{self._key}' are unreadable: {e}")
            raise StorageError(f"Corrupt calculation blob under key {self._key}") from e

        self._records = list(state.saved_calculations)
        self._selected = state.selected_calculator
        logger.info(f"Loaded {len(self._records)} saved calculations")
        return self

    def _dump(self, records: List[CalculationRecord], selected: Optional[CalculatorKind]) -> str:
        state = CalculationStoreState(
            selected_calculator=selected,
            saved_calculations=records,
        )
        return state.model_dump_json(by_alias=True)

    def _commit(
        self,
        records: List[CalculationRecord],
        selected: Optional[CalculatorKind],
        action: str
    ) -> None:
        """Write the new state, then adopt it. On failure nothing changes."""
        try:
            self._storage.write(self._key, self._dump(records, selected))
        except StorageError:
            logger.warning(f"Rolled back {action}: storage write failed")
            raise

        self._records = records
        self._selected = selected

    # =========================================================================
    # Queries
    # =========================================================================

    def list_all(self) -> List[CalculationRecord]:
        return list(self._records)

    def list_by_kind(self, kind: Union[CalculatorKind, str]) -> List[CalculationRecord]:
        """Records of one calculator, most recent first."""
        kind = CalculatorKind(kind)
        return [r for r in self._records if r.kind == kind]

    def get(self, record_id: str) -> CalculationRecord:
        for record in self._records:
            if record.id == record_id:
                return record
        raise RecordNotFoundError(record_id)

    # =========================================================================
    # Mutations
    # =========================================================================

    def save(
        self,
        kind: Union[CalculatorKind, str],
        inputs: Union[CalculatorInputs, Mapping[str, Any]],
        outputs: Union[CalculatorResult, Mapping[str, Any], None] = None,
        label: Optional[str] = None
    ) -> str:
        """
        Save a new calculation at the front of the list.

        Outputs are recomputed from inputs; caller-supplied outputs must match.

        Returns:
            The new record id

        Raises:
            CalculationValidationError: Missing label or mismatched outputs
            StorageError: If the blob write fails
        """
        kind = CalculatorKind(kind)
        label = self._clean_label(label)
        if label is None:
            raise CalculationValidationError(
                "Please enter a name for this calculation", field='label'
            )

        calculator = get_calculator(kind)
        validated = calculator.coerce_inputs(inputs)
        result = self._recompute(kind, validated, outputs)

        record = RECORD_MODELS[kind](label=label, inputs=validated, outputs=result)
        self._commit([record] + self._records, self._selected, f"save of {kind.value}")

        logger.info(f"Saved {kind.value} calculation {record.id} ('{label}')")
        return record.id

    def update(
        self,
        record_id: str,
        outputs: Union[CalculatorResult, Mapping[str, Any], None] = None,
        label: Optional[str] = None,
        inputs: Union[CalculatorInputs, Mapping[str, Any], None] = None
    ) -> CalculationRecord:
        """
        Edit-save an existing record in place.

        The id, kind, position and creation time are kept. New inputs trigger
        recomputation; with no new inputs the stored inputs are re-evaluated.
        A None label keeps the current one.

        Raises:
            RecordNotFoundError: Unknown id
            CalculationValidationError: Blank label or mismatched outputs
            StorageError: If the blob write fails
        """
        current = self.get(record_id)
        kind = current.kind

        validated = current.inputs
        if inputs is not None:
            validated = get_calculator(kind).coerce_inputs(inputs)
        result = self._recompute(kind, validated, outputs)

        new_label = current.label
        if label is not None:
            new_label = self._clean_label(label)
            if new_label is None:
                raise CalculationValidationError(
                    "Calculation name cannot be blank", field='label'
                )

        updated = current.model_copy(update={
            'inputs': validated,
            'outputs': result,
            'label': new_label,
            'updated_at': datetime.now(timezone.utc),
        })
        records = [updated if r.id == record_id else r for r in self._records]
        self._commit(records, self._selected, f"update of {record_id}")

        logger.info(f"Updated {kind.value} calculation {record_id}")
        return updated

    def delete(self, record_id: str) -> None:
        """
        Raises:
            RecordNotFoundError: Unknown id
            StorageError: If the blob write fails
        """
        self.get(record_id)
        records = [r for r in self._records if r.id != record_id]
        self._commit(records, self._selected, f"delete of {record_id}")
        logger.info(f"Deleted calculation {record_id}")

    def clear(self, kind: Union[CalculatorKind, str, None] = None) -> int:
        """
        Remove every record, or only those of one calculator.

        Returns:
            Number of records removed
        """
        if kind is None:
            records: List[CalculationRecord] = []
        else:
            kind = CalculatorKind(kind)
            records = [r for r in self._records if r.kind != kind]

        removed = len(self._records) - len(records)
        scope = kind.value if kind is not None else "all"
        self._commit(records, self._selected, f"clear ({scope})")

        logger.info(f"Cleared {removed} calculations ({scope})")
        return removed

    def select_calculator(self, kind: Union[CalculatorKind, str, None]) -> None:
        """Persist the calculator the user last opened (None to deselect)."""
        selected = CalculatorKind(kind) if kind is not None else None
        self._commit(list(self._records), selected, "calculator selection")

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _clean_label(label: Optional[str]) -> Optional[str]:
        if label is None:
            return None
        label = label.strip()
        if not label:
            return None
        if len(label) > MAX_LABEL_LENGTH:
            raise CalculationValidationError(
                f"Calculation name must be at most {MAX_LABEL_LENGTH} characters",
                field='label'
            )
        return label

    @staticmethod
    def _recompute(
        kind: CalculatorKind,
        inputs: CalculatorInputs,
        outputs: Union[CalculatorResult, Mapping[str, Any], None]
    ) -> CalculatorResult:
        calculator = get_calculator(kind)
        result = calculator.evaluate(inputs)
        if outputs is None:
            return result

        if not isinstance(outputs, calculator.result_model):
            try:
                outputs = calculator.result_model.model_validate(dict(outputs))
            except (ValidationError, TypeError, ValueError) as e:
                raise CalculationValidationError(
                    f"Outputs are not a valid {kind.value} result", field='outputs'
                ) from e

        if outputs != result:
            logger.warning(f"Rejected stale outputs for {kind.value}")
            raise CalculationValidationError(
                "Outputs do not match the inputs; recalculate before saving",
                field='outputs'
            )
        return result


# =============================================================================
# Module-level store lifecycle
# =============================================================================

_calculation_store: Optional[CalculationStore] = None


def init_calculation_store(
    storage: Optional[BlobStorage] = None,
    key: Optional[str] = None
) -> CalculationStore:
    """
    Initialize and load the shared calculation store.

    Args:
        storage: Blob backend (defaults to get_storage(), configured by
                 CALCULATOR_STORAGE_BACKEND / CALCULATOR_STORAGE_DIR)
        key: Storage key (defaults to CALCULATOR_STORAGE_KEY env var)

    Raises:
        StorageError: If the persisted blob cannot be read or decoded
    """
    global _calculation_store

    if _calculation_store is not None:
        logger.warning("Calculation store already initialized")
        return _calculation_store

    store = CalculationStore(storage or get_storage(), key=key)
    store.load()
    _calculation_store = store
    logger.info(f"Calculation store initialized (key='{store.key}')")
    return store


def get_calculation_store() -> CalculationStore:
    """
    Raises:
        RuntimeError: If the store is not initialized
    """
    if _calculation_store is None:
        raise RuntimeError(
            "Calculation store not initialized. Call init_calculation_store() first."
        )
    return _calculation_store


def close_calculation_store() -> None:
    """Drop the shared store. Persisted state is already durable."""
    global _calculation_store

    if _calculation_store is not None:
        _calculation_store = None
        logger.info("Calculation store closed")
