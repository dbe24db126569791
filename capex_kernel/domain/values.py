"""
Values -- locale helpers for BRL amounts and pt-BR dates.

Responsibility:
    Parse and format the monetary amounts and dates that cross the form
    boundary.  Users type amounts in Brazilian notation (``1.234.567,89``),
    the store answers with plain numbers and ISO timestamps.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - All amounts are ``Decimal`` -- never ``float`` arithmetic.
    - ``parse_brl`` is total: it never raises, blank and garbage become 0.
    - ``parse_brl`` keeps the sign of a typed negative amount.

Failure modes:
    - ``format_brl`` on a non-finite Decimal returns ``str(value)``.
"""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
CENTS = Decimal("0.01")

_NON_NUMERIC = re.compile(r"[^\d.]")
_NEGATIVE = re.compile(r"^\s*(R\$\s*)?-")


def parse_brl(value: Any) -> Decimal:
    """
    Convert a pt-BR formatted amount into a ``Decimal``.

    ``"1.234,56"`` -> ``Decimal("1234.56")``.  Numbers pass through; ``None``
    and blank strings give zero.  Dots are thousands separators and the
    comma is the decimal separator.  A leading minus sign, before or after
    the currency symbol, is kept (``"-R$ 500,00"`` -> ``-500.00``);
    every other character (currency symbol, spaces) is stripped.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        return Decimal(int(value))
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if not value:
        return ZERO
    normalized = str(value).replace(".", "").replace(",", ".", 1)
    normalized = _NON_NUMERIC.sub("", normalized)
    if not normalized:
        return ZERO
    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        return ZERO
    return -amount if _NEGATIVE.match(str(value)) else amount


def format_brl(amount: Any) -> str:
    """Format an amount as Brazilian Real, e.g. ``R$ 1.234,56``."""
    value = parse_brl(amount)
    if not value.is_finite():
        return str(value)
    quantized = value.quantize(CENTS, rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    integer, _, fraction = f"{abs(quantized):.2f}".partition(".")
    groups = []
    while len(integer) > 3:
        groups.insert(0, integer[-3:])
        integer = integer[:-3]
    groups.insert(0, integer)
    return f"{sign}R$ {'.'.join(groups)},{fraction}"


def parse_date(value: Any) -> date | None:
    """
    Parse a form or store date.

    Store timestamps (``2024-03-01T03:00:00Z``) are cut to their first ten
    characters, exactly like the date inputs of the form.  Blank or invalid
    input gives ``None``.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_date(value: Any) -> str:
    """Format a date as ``dd/mm/yyyy``; empty string when absent or invalid."""
    parsed = parse_date(value)
    if parsed is None:
        return ""
    return parsed.strftime("%d/%m/%Y")


def iso_date(value: date | None) -> str | None:
    """Serialize a date for the store (``YYYY-MM-DD``) or ``None``."""
    return value.isoformat() if value is not None else None
