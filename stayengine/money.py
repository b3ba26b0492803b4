"""Minor-unit money boundary.

Inside the service every amount is a non-negative ``int`` of minor currency
units. Strings, floats and fractional decimals are rejected here and
nowhere else.
"""

from decimal import Decimal
from typing import Annotated

from pydantic import Field

from stayengine.errors import ValidationError

# Request/response field type for minor amounts
MoneyMinor = Annotated[int, Field(ge=0, strict=True)]


def ensure_minor(value: object, field: str = "amount") -> int:
    """Return ``value`` if it is a valid minor amount, else raise ``ValidationError``.

    Accepts ``int`` and integral ``Decimal``. Rejects ``bool``, ``float``,
    strings, negatives, NaN and infinities instead of coercing them.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer minor amount", code="invalid_amount")
    if isinstance(value, Decimal):
        if not value.is_finite() or value != value.to_integral_value():
            raise ValidationError(f"{field} must be a whole number of minor units", code="invalid_amount")
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(f"{field} must be an integer minor amount", code="invalid_amount")
    if value < 0:
        raise ValidationError(f"{field} must not be negative", code="invalid_amount")
    return value
