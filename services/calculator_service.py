"""
Calculator service.

Binds raw form text to the formula evaluators and the calculation store:
what a calculator screen does when the user presses Calculate, Save, or
re-opens a saved calculation from history.
"""

import logging
import os
from typing import Any, Dict, List, Mapping, Optional, Union

from dotenv import load_dotenv

from db.calculation_store import CalculationStore, get_calculation_store
from models.calculations import CalculationRecord, CalculatorKind, CalculatorResult
from services.calculations import get_calculator

logger = logging.getLogger(__name__)


def configure_logging(level: Optional[str] = None) -> None:
    """Load .env and set the root log level (LOG_LEVEL, default INFO)."""
    load_dotenv()
    level = (level or os.getenv("LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # basicConfig is a no-op once handlers exist
    logging.getLogger().setLevel(level)


class CalculatorService:
    """
    Facade over evaluators and the record store.

    Forms are mappings of field name to raw user text (e.g. "₹1,00,000",
    "12.5%"); each calculator's FIELD_RULES decide how they are parsed.
    """

    def __init__(self, store: Optional[CalculationStore] = None):
        """
        Args:
            store: Record store (defaults to the module-level shared store)
        """
        self._store = store

    @property
    def store(self) -> CalculationStore:
        if self._store is None:
            self._store = get_calculation_store()
        return self._store

    def calculate(
        self,
        kind: Union[CalculatorKind, str],
        form: Mapping[str, Any]
    ) -> CalculatorResult:
        """
        Normalize a raw form and evaluate it.

        Raises:
            InvalidInputError: A field failed to parse (field_errors per field)
            CalculationValidationError: Cross-field constraint violated
            CalculationError: Non-finite intermediate result
        """
        calculator = get_calculator(kind)
        values = calculator.parse_form(form)
        return calculator.evaluate(values)

    def save(
        self,
        kind: Union[CalculatorKind, str],
        form: Mapping[str, Any],
        label: str
    ) -> CalculationRecord:
        """Calculate and save under a user-supplied name."""
        calculator = get_calculator(kind)
        values = calculator.parse_form(form)
        record_id = self.store.save(calculator.kind, values, label=label)
        return self.store.get(record_id)

    def resave(
        self,
        record_id: str,
        form: Mapping[str, Any],
        label: Optional[str] = None
    ) -> CalculationRecord:
        """Recalculate an existing record from an edited form, keeping its id."""
        record = self.store.get(record_id)
        values = get_calculator(record.kind).parse_form(form)
        return self.store.update(record_id, inputs=values, label=label)

    def reapply(self, record_id: str) -> CalculationRecord:
        """
        Fetch a saved record for re-editing and mark its calculator selected.
        """
        record = self.store.get(record_id)
        if self.store.selected_calculator != record.kind:
            self.store.select_calculator(record.kind)
        logger.debug(f"Reapplying {record.kind.value} calculation {record_id}")
        return record

    def history(self, kind: Union[CalculatorKind, str, None] = None) -> List[CalculationRecord]:
        """Saved records, most recent first; optionally for one calculator."""
        if kind is None:
            return self.store.list_all()
        return self.store.list_by_kind(kind)

    @staticmethod
    def form_from_record(record: CalculationRecord) -> Dict[str, Any]:
        """Saved inputs as form values, for pre-filling an edit screen."""
        return record.inputs.model_dump(mode='json', exclude_none=True)
