"""
Pricing computation.

    sub_total   = service_price - discount_amount
    tax_amount  = round_half_up(sub_total * tax_rate, 0.01)
    total_price = sub_total + tax_amount

Money is Decimal with two places and rates have four. Inputs with more
precision are rejected rather than rounded, so tax is the only rounded
step. Tips are not part of the breakdown; they are added on top (`with_tip`).
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Union

from reservation_api.core.exceptions import InvalidPricingInput

Number = Union[Decimal, int, float, str]

CENT = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
ZERO = Decimal("0.00")


def to_decimal(value: Number, field: str) -> Decimal:
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidPricingInput(field, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidPricingInput(field, "must be a finite number")
    return result


def _quantize(value: Decimal, places: Decimal, field: str) -> Decimal:
    try:
        quantized = value.quantize(places)
    except InvalidOperation:
        raise InvalidPricingInput(field, "is out of range") from None
    if quantized != value:
        raise InvalidPricingInput(field, f"cannot have more than {-places.as_tuple().exponent} decimal places")
    return quantized


def money(value: Number, field: str = "amount") -> Decimal:
    """Two-place amount. Sub-cent inputs are rejected, never rounded."""
    return _quantize(to_decimal(value, field), CENT, field)


def rate(value: Number, field: str = "tax_rate") -> Decimal:
    """Four-place rate, the precision the breakdown is stored with."""
    return _quantize(to_decimal(value, field), RATE_PLACES, field)


@dataclass(frozen=True)
class PricingBreakdown:
    service_price: Decimal
    discount_amount: Decimal
    tax_rate: Decimal
    sub_total: Decimal
    tax_amount: Decimal
    total_price: Decimal
    currency: str

    @property
    def savings(self) -> Decimal:
        return self.discount_amount

    @property
    def effective_price(self) -> Decimal:
        """Price after discount, before tax."""
        return self.sub_total

    def with_tip(self, tip: Number) -> Decimal:
        tip_amount = money(tip, "tip_amount")
        if tip_amount < 0:
            raise InvalidPricingInput("tip_amount", "cannot be negative")
        return self.total_price + tip_amount

    def as_dict(self) -> dict:
        return {
            "service_price": self.service_price,
            "discount_amount": self.discount_amount,
            "tax_rate": self.tax_rate,
            "sub_total": self.sub_total,
            "tax_amount": self.tax_amount,
            "total_price": self.total_price,
            "currency": self.currency,
        }


def calculate_pricing(
    service_price: Number,
    discount_amount: Number = 0,
    tax_rate: Number = 0,
    currency: str = "USD",
) -> PricingBreakdown:
    """Build a breakdown, rejecting inputs outside their allowed ranges."""
    price = money(service_price, "service_price")
    discount = money(discount_amount, "discount_amount")
    tax = rate(tax_rate)

    if price < 0:
        raise InvalidPricingInput("service_price", "cannot be negative")
    if discount < 0:
        raise InvalidPricingInput("discount_amount", "cannot be negative")
    if discount > price:
        raise InvalidPricingInput("discount_amount", "cannot exceed service price")
    if tax < 0 or tax > 1:
        raise InvalidPricingInput("tax_rate", "must be between 0 and 1")
    if not currency or len(currency) != 3 or not currency.isalpha():
        raise InvalidPricingInput("currency", "must be a 3-letter currency code")

    sub_total = price - discount
    tax_amount = (sub_total * tax).quantize(CENT, rounding=ROUND_HALF_UP)

    return PricingBreakdown(
        service_price=price,
        discount_amount=discount,
        tax_rate=tax,
        sub_total=sub_total,
        tax_amount=tax_amount,
        total_price=sub_total + tax_amount,
        currency=currency.upper(),
    )
