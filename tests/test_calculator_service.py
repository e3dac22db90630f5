"""
Tests for the calculator service facade.
"""

import logging
import pytest
from decimal import Decimal

from db.calculation_store import init_calculation_store
from db.storage import InMemoryBlobStorage
from models.calculations import CalculatorKind, LossRecoveryResult
from services.calculator_service import CalculatorService, configure_logging
from services.errors import InvalidInputError


def test_calculate_from_raw_text(service):
    result = service.calculate('cagr', {
        'initial_value': '₹10,000',
        'final_value': '₹15,000',
        'years': '5',
    })

    assert result.cagr_pct == Decimal("8.45")


def test_calculate_reports_every_bad_field(service):
    with pytest.raises(InvalidInputError) as exc:
        service.calculate('loss-recovery', {
            'shares_owned': 'abc',
            'average_price': '',
            'current_loss_pct': '20%',
            'recovery_pct': '10%',
        })

    assert set(exc.value.field_errors) == {'shares_owned', 'average_price'}


def test_calculate_unknown_kind(service):
    with pytest.raises(ValueError):
        service.calculate('crypto-arbitrage', {})


def test_save_and_history(service, loss_recovery_inputs):
    record = service.save(CalculatorKind.LOSS_RECOVERY, loss_recovery_inputs, label="HDFC dip")

    assert isinstance(record.outputs, LossRecoveryResult)
    assert record.outputs.investment_amount == Decimal("5000.00")
    assert service.history('loss-recovery') == [record]
    assert service.history() == [record]
    assert service.history('cagr') == []


def test_resave_updates_in_place(service, loss_recovery_inputs):
    record = service.save('loss-recovery', loss_recovery_inputs, label="First")

    edited = service.resave(record.id, dict(loss_recovery_inputs, recovery_pct='5'))

    assert edited.id == record.id
    assert edited.label == "First"
    assert edited.outputs.final_loss_pct == Decimal("15.00")
    assert len(service.history()) == 1


def test_reapply_selects_calculator(service, loss_recovery_inputs):
    record = service.save('loss-recovery', loss_recovery_inputs, label="Reuse")

    reapplied = service.reapply(record.id)

    assert reapplied == record
    assert service.store.selected_calculator == CalculatorKind.LOSS_RECOVERY


def test_form_from_record_round_trips(service):
    form = {
        'purchases': [{'quantity': '10', 'price': '100'}, {'quantity': '10', 'price': '120'}],
        'current_price': '130',
    }
    record = service.save('average-buy', form, label="Averaging")

    prefilled = CalculatorService.form_from_record(record)

    assert service.calculate('average-buy', prefilled) == record.outputs


def test_service_uses_shared_store(cagr_inputs):
    store = init_calculation_store(InMemoryBlobStorage())
    service = CalculatorService()

    service.save('cagr', cagr_inputs, label="Shared")

    assert service.store is store
    assert len(store) == 1


def test_configure_logging(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "debug")
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level

    try:
        configure_logging()
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(level)
        root.handlers[:] = handlers
