"""Decimal helpers for monetary amounts (2 decimal places, half-up)."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(raw: Any) -> Decimal:
    """Return ``raw`` as a 2dp ``Decimal``.

    Floats go through ``str`` first so ``0.1`` becomes ``0.10`` rather than
    the binary expansion. Raises ``ValueError`` for anything unparseable.
    """

    if isinstance(raw, bool):
        raise ValueError(f"not a monetary amount: {raw!r}")
    try:
        d = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"not a monetary amount: {raw!r}") from e
    if not d.is_finite():
        raise ValueError(f"not a monetary amount: {raw!r}")
    return d.quantize(CENT, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal) -> str:
    """Plain ``"1234.50"`` rendering used in result messages."""

    return f"{to_money(amount):.2f}"


def round_percent(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


__all__ = ["CENT", "ZERO", "to_money", "format_amount", "round_percent"]
