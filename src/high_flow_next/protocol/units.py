"""Fixed-point to physical unit conversion.

Raw integers are multiplied by a decimal scale factor. Unscaled values
stay plain ``int``; scaled values become :class:`~decimal.Decimal` so
that ``to_raw(to_physical(x))`` is exact.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from fractions import Fraction

CELSIUS = "°C"
LITERS_PER_HOUR = "l/h"
MICROSIEMENS_PER_CM = "µS/cm"
PERCENT = "%"
WATT = "W"
VOLT = "V"
MILLIAMPERE = "mA"
SECOND = "s"

ONE = Decimal(1)


def to_physical(raw: int, scale: Decimal = ONE) -> int | Decimal:
    """Convert a raw integer into its physical value."""
    if scale == ONE:
        return raw
    return Decimal(raw) * scale


def to_raw(value: int | float | Decimal | Fraction, scale: Decimal = ONE) -> int:
    """Convert a physical value back into a raw integer.

    Rounds to the nearest integer, ties away from zero.

    Raises:
        TypeError: If the value is not a real number.
        ValueError: If the value is NaN or infinite.
    """
    if isinstance(value, bool):
        raise TypeError(f"Expected a number, got {value!r}")
    if isinstance(value, Fraction):
        exact = Decimal(value.numerator) / Decimal(value.denominator)
    elif isinstance(value, float):
        exact = Decimal(repr(value))
    elif isinstance(value, (int, Decimal)):
        exact = Decimal(value)
    else:
        raise TypeError(f"Expected a number, got {value!r}")

    if not exact.is_finite():
        raise ValueError(f"Cannot encode non-finite value {value!r}")

    try:
        return int((exact / scale).to_integral_value(rounding=ROUND_HALF_UP))
    except InvalidOperation as e:
        raise ValueError(f"Cannot scale {value!r} by {scale}") from e
