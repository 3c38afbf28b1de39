"""Pure folds over the transaction ledger.

Nothing here touches the database. Every function skips soft-deleted
entries, so callers can pass the raw ledger (deleted rows included).
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, timedelta
from decimal import Decimal

from .models import TransactionView
from .money import ZERO, to_money


def _active(transactions: Iterable[TransactionView]) -> list[TransactionView]:
    return [t for t in transactions if t.deleted_at is None]


def total_by_type(transactions: Iterable[TransactionView], tx_type: str) -> Decimal:
    """Sum of ``value`` for non-deleted entries of ``tx_type``."""

    total = ZERO
    for t in _active(transactions):
        if t.type == tx_type:
            total += to_money(t.value)
    return to_money(total)


def calculate_balance(transactions: Iterable[TransactionView]) -> Decimal:
    """Σ income − Σ expense over non-deleted entries; ``0.00`` when empty."""

    items = _active(transactions)
    return to_money(total_by_type(items, "income") - total_by_type(items, "expense"))


def savings(transactions: Iterable[TransactionView]) -> Decimal:
    """Income minus expense over ``transactions``, clamped at zero."""

    net = calculate_balance(transactions)
    return net if net > 0 else ZERO


def entries_since(
    transactions: Iterable[TransactionView], since: date
) -> list[TransactionView]:
    return [t for t in _active(transactions) if t.date >= since]


def savings_window(transactions: Iterable[TransactionView], today: date, days: int) -> Decimal:
    """Savings over entries dated on or after ``today - days``.

    Entries carry dates, not timestamps, so both ends are inclusive: a 7-day
    window on 2025-06-15 spans 2025-06-08 through 2025-06-15. That is the
    day-granular reading of a rolling ``days * 24h`` lookback, which admits
    anything recorded on the boundary day after the current time of day.
    """

    return savings(entries_since(transactions, today - timedelta(days=days)))


__all__ = [
    "calculate_balance",
    "total_by_type",
    "savings",
    "entries_since",
    "savings_window",
]
