"""
Tests for the pricing calculator.
"""

from decimal import Decimal

import pytest

from reservation_api.core.exceptions import InvalidPricingInput, ValidationError
from reservation_api.domain.pricing import calculate_pricing


def test_discount_and_tax_breakdown():
    """100.00 with 10.00 off at 8% tax totals 97.20."""
    breakdown = calculate_pricing(Decimal("100.00"), Decimal("10.00"), Decimal("0.08"))

    assert breakdown.sub_total == Decimal("90.00")
    assert breakdown.tax_amount == Decimal("7.20")
    assert breakdown.total_price == Decimal("97.20")
    assert breakdown.currency == "USD"


def test_identities_hold():
    breakdown = calculate_pricing("59.99", "5.49", "0.0725")

    assert breakdown.sub_total == breakdown.service_price - breakdown.discount_amount
    assert breakdown.total_price == breakdown.sub_total + breakdown.tax_amount
    assert breakdown.savings == breakdown.discount_amount
    assert breakdown.effective_price == breakdown.sub_total


def test_deterministic():
    first = calculate_pricing(45, 0, 0.08)
    second = calculate_pricing(45, 0, 0.08)
    assert first == second


def test_tax_rounds_half_up_once():
    # 12.50 * 0.1 = 1.25 exactly; 0.05 * 0.5 = 0.025 -> 0.03
    assert calculate_pricing("12.50", 0, "0.1").tax_amount == Decimal("1.25")
    assert calculate_pricing("0.05", 0, "0.5").tax_amount == Decimal("0.03")


def test_float_inputs_go_through_str():
    breakdown = calculate_pricing(0.1, 0, 0)
    assert breakdown.service_price == Decimal("0.10")


def test_zero_price_is_allowed():
    breakdown = calculate_pricing(0, 0, "0.08")
    assert breakdown.total_price == Decimal("0.00")


def test_currency_is_normalised():
    assert calculate_pricing(10, currency="eur").currency == "EUR"


def test_tip_is_added_on_top():
    breakdown = calculate_pricing("100.00", "10.00", "0.08")
    assert breakdown.with_tip("5.00") == Decimal("102.20")
    assert breakdown.total_price == Decimal("97.20")


@pytest.mark.parametrize(
    "price, discount, rate, field",
    [
        ("-1.00", "0", "0", "service_price"),
        ("10.00", "-0.50", "0", "discount_amount"),
        ("10.00", "10.01", "0", "discount_amount"),
        ("10.00", "0", "-0.01", "tax_rate"),
        ("10.00", "0", "1.5", "tax_rate"),
        ("abc", "0", "0", "service_price"),
        ("NaN", "0", "0", "service_price"),
        ("10.00", "0", "Infinity", "tax_rate"),
    ],
)
def test_invalid_inputs(price, discount, rate, field):
    with pytest.raises(InvalidPricingInput) as exc_info:
        calculate_pricing(price, discount, rate)
    assert exc_info.value.field == field
    assert isinstance(exc_info.value, ValidationError)


def test_invalid_currency():
    with pytest.raises(InvalidPricingInput):
        calculate_pricing(10, currency="DOLLARS")


def test_negative_tip_rejected():
    with pytest.raises(InvalidPricingInput):
        calculate_pricing(10).with_tip(-1)


@pytest.mark.parametrize(
    "price, discount, rate, field",
    [
        ("10.005", "0", "0", "service_price"),
        ("10.00", "0.001", "0", "discount_amount"),
        ("10.00", "0", "0.081249", "tax_rate"),
        ("1e40", "0", "0", "service_price"),
    ],
)
def test_excess_precision_is_rejected_not_rounded(price, discount, rate, field):
    with pytest.raises(InvalidPricingInput) as exc_info:
        calculate_pricing(price, discount, rate)
    assert exc_info.value.field == field


def test_trailing_zeros_are_not_excess_precision():
    breakdown = calculate_pricing("10.000", "1.0", "0.08000")
    assert breakdown.service_price == Decimal("10.00")
    assert breakdown.tax_rate == Decimal("0.0800")


def test_stored_rate_reproduces_tax():
    breakdown = calculate_pricing("1000.00", 0, "0.0812")
    assert breakdown.tax_amount == (breakdown.sub_total * breakdown.tax_rate).quantize(Decimal("0.01"))
    assert calculate_pricing(
        breakdown.service_price, breakdown.discount_amount, breakdown.tax_rate
    ) == breakdown
