"""Naira/kobo conversion. Everything downstream works on integer kobo."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

from debt_ledger.config import settings

Number = Union[int, float, Decimal, str]


def to_minor_units(major: Number) -> int:
    """
    Convert a major-unit amount (naira) to minor units (kobo).

    Goes through Decimal(str(x)) so binary float noise (1.005 * 100 == 100.49999...)
    cannot pull a half-kobo down. Halves round away from zero.

    Example:
        12.34 → 1234
        0.005 → 1
    """
    scaled = Decimal(str(major)) * 100
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(minor: Number) -> float:
    """Convert kobo to naira for display: round(minor) / 100"""
    whole = int(Decimal(str(minor)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    return whole / 100


def format_amount(minor: int, symbol: Optional[str] = None) -> str:
    """Render kobo as a grouped major-unit string, e.g. 123456 → ₦1,234.56"""
    symbol = settings.currency_symbol if symbol is None else symbol
    sign = "-" if minor < 0 else ""
    naira, kobo = divmod(abs(int(minor)), 100)
    return f"{sign}{symbol}{naira:,}.{kobo:02d}"
