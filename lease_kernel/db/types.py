"""
Module: lease_kernel.db.types
Responsibility: Annotated column types and the rounding helpers used for
    rents, payment amounts and reporting percentages.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum
from typing import Annotated

from sqlalchemy import Enum as SAEnum
from sqlalchemy import Numeric, String
from sqlalchemy.orm import mapped_column

# Rent and payment amounts: 12 digits, 2 decimal places
Money = Annotated[Decimal, mapped_column(Numeric(12, 2))]

# Opaque storage URL (contract PDF, receipt, avatar, image)
Url = Annotated[str, mapped_column(String(500))]

# Short identifier strings
ShortText = Annotated[str, mapped_column(String(100))]

MONEY_DECIMAL_PLACES = 2
PERCENT_DECIMAL_PLACES = 1
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: object) -> Decimal:
    """
    Convert an int, str, float or Decimal to Decimal.

    Floats go through str() so that 0.1 becomes Decimal("0.1").

    Raises:
        ValueError: If value is None or not numeric.
    """
    if isinstance(value, Decimal):
        return value
    if value is None or isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"Not a numeric value: {value!r}") from exc


def round_money(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round a monetary value half-up to the given decimal places."""
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=DEFAULT_ROUNDING)


def round_percent(value: Decimal) -> Decimal:
    """Round a percentage half-up to one decimal place."""
    return round_money(value, PERCENT_DECIMAL_PLACES)


def status_column_type(enum_cls: type[Enum]) -> SAEnum:
    """
    Column type for a closed status enum.

    Stored as VARCHAR (no native ENUM type) holding the member values, and
    validated on bind so a string outside the enum never reaches storage.
    """
    return SAEnum(
        enum_cls,
        native_enum=False,
        validate_strings=True,
        values_callable=lambda members: [member.value for member in members],
        length=20,
    )
