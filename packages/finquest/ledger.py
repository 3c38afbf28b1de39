"""Transaction ledger: the source of truth for balance and challenge metrics.

Entries are never physically removed; :func:`remove_transaction` stamps
``deleted_at`` and every read filters on it. Each mutation runs the cascade
in :mod:`finquest.cascade` before returning.

The period/filter helpers are pure and operate on any iterable of
:class:`~finquest.models.TransactionView`.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import UTC, date
from typing import Any

from .cascade import apply_ledger_mutation, run_cascade
from .errors import ValidationError
from .logging_setup import get_logger
from .models import (
    TRANSACTION_TYPES,
    CascadeResult,
    TransactionInput,
    TransactionPatch,
    TransactionView,
    parse_date,
    parse_input,
)
from .persistence import Repositories

_logger = get_logger("finquest.ledger")

ALL = "all"


def add_transaction(
    repos: Repositories,
    user_id: str,
    payload: TransactionInput | Mapping[str, Any],
    *,
    today: date | None = None,
) -> CascadeResult:
    """Validate and append one entry, then run the cascade."""

    data = parse_input(TransactionInput, payload)
    event = apply_ledger_mutation(
        "transaction_added", user_id, lambda: repos.ledger.insert(user_id, data)
    )
    tx = event.transaction
    assert tx is not None
    _logger.info(
        "user %s added %s %s (%s) as %s", user_id, tx.type, tx.value, tx.category, tx.id
    )
    return run_cascade(repos, event, today=today)


def update_transaction(
    repos: Repositories,
    user_id: str,
    transaction_id: str,
    patch: TransactionPatch | Mapping[str, Any],
    *,
    today: date | None = None,
) -> CascadeResult:
    """Overwrite the provided fields of a live entry, then run the cascade.

    Rewards already paid for completed challenges are kept.
    """

    changes = parse_input(TransactionPatch, patch).changes()
    event = apply_ledger_mutation(
        "transaction_updated",
        user_id,
        lambda: repos.ledger.update(user_id, transaction_id, changes),
    )
    _logger.info("user %s updated transaction %s: %s", user_id, transaction_id, sorted(changes))
    return run_cascade(repos, event, today=today)


def remove_transaction(
    repos: Repositories, user_id: str, transaction_id: str, *, today: date | None = None
) -> CascadeResult:
    """Soft-delete a live entry, then run the cascade.

    Raises :class:`~finquest.errors.NotFoundError` for unknown or already
    deleted ids.
    """

    event = apply_ledger_mutation(
        "transaction_removed",
        user_id,
        lambda: repos.ledger.soft_delete(user_id, transaction_id),
    )
    _logger.info("user %s removed transaction %s", user_id, transaction_id)
    return run_cascade(repos, event, today=today)


# ---------------------------
# Pure queries
# ---------------------------


def _check_type_filter(type_filter: str) -> str:
    tf = (type_filter or ALL).strip().lower()
    if tf != ALL and tf not in TRANSACTION_TYPES:
        raise ValidationError(f"type_filter must be one of all/income/expense, got {type_filter!r}")
    return tf


def _bound(raw: date | str | None, name: str) -> date | None:
    if raw is None or raw == "":
        return None
    try:
        return parse_date(raw)
    except ValueError as e:
        raise ValidationError(f"{name}: {e}") from e


def _created_key(t: TransactionView) -> float:
    stamp = t.created_at
    if stamp is None:
        return 0.0
    # SQLite hands back naive datetimes; treat them as UTC.
    if stamp.tzinfo is None:
        stamp = stamp.replace(tzinfo=UTC)
    return stamp.timestamp()


def _newest_first(items: Iterable[TransactionView]) -> list[TransactionView]:
    return sorted(items, key=lambda t: (t.date, _created_key(t)), reverse=True)


def get_filtered_transactions(
    transactions: Iterable[TransactionView],
    type_filter: str = ALL,
    category_filter: str = ALL,
) -> list[TransactionView]:
    """Live entries matching the type/category filters, newest first."""

    tf = _check_type_filter(type_filter)
    cf = category_filter or ALL
    out = [
        t
        for t in transactions
        if t.deleted_at is None
        and (tf == ALL or t.type == tf)
        and (cf == ALL or t.category == cf)
    ]
    return _newest_first(out)


def get_by_period(
    transactions: Iterable[TransactionView],
    start: date | str | None = None,
    end: date | str | None = None,
    type_filter: str = ALL,
    category_filter: str = ALL,
) -> list[TransactionView]:
    """Live entries dated within ``[start, end]`` (inclusive, date-only).

    Either bound may be omitted. Sorted by date descending; entries on the
    same date are ordered newest ``created_at`` first.
    """

    lo = _bound(start, "start")
    hi = _bound(end, "end")
    return [
        t
        for t in get_filtered_transactions(transactions, type_filter, category_filter)
        if (lo is None or t.date >= lo) and (hi is None or t.date <= hi)
    ]


def get_categories(transactions: Iterable[TransactionView]) -> list[str]:
    """Sorted distinct categories of live entries."""

    return sorted({t.category for t in transactions if t.deleted_at is None})


def list_transactions(
    repos: Repositories,
    user_id: str,
    *,
    start: date | str | None = None,
    end: date | str | None = None,
    type_filter: str = ALL,
    category_filter: str = ALL,
) -> list[TransactionView]:
    return get_by_period(
        repos.ledger.list(user_id),
        start=start,
        end=end,
        type_filter=type_filter,
        category_filter=category_filter,
    )


def get_transaction(repos: Repositories, user_id: str, transaction_id: str) -> TransactionView:
    return repos.ledger.get(user_id, transaction_id)


__all__ = [
    "add_transaction",
    "update_transaction",
    "remove_transaction",
    "get_by_period",
    "get_filtered_transactions",
    "get_categories",
    "list_transactions",
    "get_transaction",
]
