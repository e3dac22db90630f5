"""
Unit tests for stock split / bonus and dividend yield calculators.
"""

import pytest
from decimal import Decimal

from models.calculations import CorporateAction, StockSplitInputs
from services.calculations import DividendYieldCalculator, StockSplitCalculator
from services.errors import CalculationValidationError, InvalidInputError


@pytest.fixture
def splitter():
    return StockSplitCalculator()


# Stock split

def test_two_for_one_split(splitter):
    result = splitter.evaluate(StockSplitInputs(
        current_shares=Decimal("100"),
        current_price=Decimal("200"),
        ratio_numerator=Decimal("2"),
        ratio_denominator=Decimal("1"),
    ))

    assert result.action == CorporateAction.SPLIT
    assert result.ratio == "2:1"
    assert result.extra_shares == Decimal("100.00")
    assert result.total_shares == 200
    assert result.fractional_shares == Decimal("0.00")
    assert result.new_price == Decimal("100.00")
    assert result.total_value == Decimal("20000.00")


def test_split_preserves_value(splitter):
    result = splitter.evaluate({
        'current_shares': '100', 'current_price': '1250',
        'ratio_numerator': '10', 'ratio_denominator': '1',
    })

    assert result.ratio == "10:1"
    assert result.total_shares == 1000
    assert result.new_price == Decimal("125.00")
    assert result.total_shares * result.new_price == result.total_value


def test_split_reports_fractional_entitlement(splitter):
    result = splitter.evaluate({
        'current_shares': '101', 'current_price': '300',
        'ratio_numerator': '3', 'ratio_denominator': '2',
    })

    assert result.total_shares == 151
    assert result.fractional_shares == Decimal("0.50")
    assert result.extra_shares == Decimal("50.50")
    assert result.new_price == Decimal("200.00")


def test_split_whole_shares_are_floored(splitter):
    # 7 x 5/3 = 11.67 credits 11 whole shares, not 12
    result = splitter.evaluate({
        'current_shares': '7', 'current_price': '300',
        'ratio_numerator': '5', 'ratio_denominator': '3',
    })

    assert result.total_shares == 11
    assert result.fractional_shares == Decimal("0.67")
    assert result.total_shares + result.fractional_shares == Decimal("11.67")


@pytest.mark.parametrize("num,den", [("1", "1"), ("1", "2"), ("2", "5")])
def test_split_requires_numerator_above_denominator(splitter, num, den):
    with pytest.raises(CalculationValidationError) as exc:
        splitter.evaluate({
            'current_shares': '100', 'current_price': '200',
            'ratio_numerator': num, 'ratio_denominator': den,
        })

    assert exc.value.field == 'ratio_numerator'


def test_bonus_issue(splitter):
    result = splitter.evaluate({
        'current_shares': '101', 'current_price': '500',
        'ratio_numerator': '1', 'ratio_denominator': '2', 'action': 'bonus',
    })

    assert result.action == CorporateAction.BONUS
    assert result.ratio == "1:2"
    assert result.extra_shares == Decimal("50.50")
    assert result.fractional_shares == Decimal("0.50")
    assert result.total_shares == 151
    assert result.new_price == Decimal("500.00")
    assert result.total_value == Decimal("75500.00")


def test_one_for_one_bonus(splitter):
    result = splitter.evaluate({
        'current_shares': '100', 'current_price': '80',
        'ratio_numerator': '1', 'ratio_denominator': '1', 'action': CorporateAction.BONUS,
    })

    assert result.total_shares == 200
    assert result.fractional_shares == Decimal("0.00")


def test_split_form_requires_whole_shares(splitter):
    with pytest.raises(InvalidInputError) as exc:
        splitter.parse_form({
            'current_shares': '10.5', 'current_price': '200',
            'ratio_numerator': '2', 'ratio_denominator': '1',
        })

    assert 'current_shares' in exc.value.field_errors


# Dividend yield

def test_dividend_yield():
    result = DividendYieldCalculator().evaluate({
        'share_price': '1500', 'dividend_yield_pct': '2.5', 'shares_held': '40'
    })

    assert result.dividend_per_share == Decimal("37.50")
    assert result.annual_dividend == Decimal("37.50")
    assert result.examples == {
        10: Decimal("375.00"),
        100: Decimal("3750.00"),
        1000: Decimal("37500.00"),
    }
    assert result.total_dividend == Decimal("1500.00")


def test_zero_dividend_yield_is_valid():
    result = DividendYieldCalculator().evaluate({'share_price': '250', 'dividend_yield_pct': '0'})

    assert result.dividend_per_share == Decimal("0.00")
    assert result.total_dividend is None


def test_negative_dividend_yield_is_rejected():
    calculator = DividendYieldCalculator()

    with pytest.raises(InvalidInputError) as exc:
        calculator.parse_form({'share_price': '250', 'dividend_yield_pct': '-1%'})

    assert exc.value.field == 'dividend_yield_pct'
