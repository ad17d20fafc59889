"""
Module: lease_kernel.db.types
Responsibility: Decimal conversion, fitting values to their column scale,
    and the one sanctioned money rounding function.
Architecture position: Kernel > DB.  May be imported by models/, domain/,
    services/, and selectors/.  MUST NOT import from any of those layers.

CRITICAL: No floats anywhere in the lease kernel.  Amounts, readings and
rates are Decimal end to end; to_decimal() is the conversion point for
anything arriving from JSON or a form.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

MONEY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    This is the ONLY sanctioned rounding function for billed amounts.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places if decimal_places else "1"
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def to_decimal(value: Any, default: Decimal | None = None) -> Decimal:
    """
    Convert an inbound scalar to Decimal without passing through float.

    None (or "") yields ``default``; when no default is given a ValueError
    is raised.  Floats are converted via their repr so 7.1 becomes
    Decimal("7.1"), not its binary expansion.

    Raises:
        ValueError: If the value is missing with no default, or not numeric.
    """
    if value is None or value == "":
        if default is None:
            raise ValueError("value is required")
        return default
    if isinstance(value, bool):
        raise ValueError(f"Not a number: {value!r}")
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, (int, float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as exc:
            raise ValueError(f"Not a number: {value!r}") from exc
    else:
        raise ValueError(f"Not a number: {value!r}")
    if not result.is_finite():
        raise ValueError(f"Not a finite number: {value!r}")
    return result


def fit_to_column(value: Decimal, precision: int, scale: int) -> Decimal:
    """
    Quantize ``value`` to a ``Numeric(precision, scale)`` column.

    The returned Decimal is exactly what the column stores, so anything
    derived from it before the flush matches the persisted row.

    Raises:
        ValueError: If the value needs more than ``precision - scale``
            integer digits.
    """
    limit = Decimal(10) ** (precision - scale)
    if abs(value) >= limit:
        raise ValueError(f"{value} exceeds Numeric({precision}, {scale})")
    quantized = value.quantize(Decimal(1).scaleb(-scale), rounding=DEFAULT_ROUNDING)
    if abs(quantized) >= limit:
        raise ValueError(f"{value} exceeds Numeric({precision}, {scale})")
    return quantized
