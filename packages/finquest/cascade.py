"""Ledger mutation cascade.

Every ledger write runs the same pipeline, strictly in order::

    apply_ledger_mutation -> recompute_balance -> reevaluate_challenges
        -> grant_rewards_if_newly_completed

The snapshot is loaded once, after the mutation is flushed, so every stage
sees the post-mutation ledger. Each stage is wrapped in
:func:`finquest.errors.backend_stage`; a ``BackendFailure`` names the stage
that failed.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal

from .balance import calculate_balance
from .challenges import grant_rewards_if_newly_completed, reevaluate_challenges
from .errors import backend_stage
from .logging_setup import get_logger
from .models import CascadeResult, LedgerEvent, LedgerEventKind, LedgerSnapshot, TransactionView
from .persistence import Repositories

_logger = get_logger("finquest.cascade")


def apply_ledger_mutation(
    kind: LedgerEventKind,
    user_id: str,
    write: Callable[[], TransactionView | None],
    *,
    goal_id: str | None = None,
) -> LedgerEvent:
    """Run ``write`` and describe what it did as a :class:`LedgerEvent`."""

    with backend_stage("apply_ledger_mutation"):
        tx = write()
    return LedgerEvent(kind=kind, user_id=user_id, transaction=tx, goal_id=goal_id)


def recompute_balance(repos: Repositories, user_id: str, snapshot: LedgerSnapshot) -> Decimal:
    """Fold the ledger and rewrite the cached balance."""

    balance = calculate_balance(snapshot.transactions)
    previous = repos.rewards.set_cached_balance(user_id, balance)
    if previous != balance:
        _logger.debug("balance cache for user %s: %s -> %s", user_id, previous, balance)
    return balance


def run_cascade(
    repos: Repositories, event: LedgerEvent, *, today: date | None = None
) -> CascadeResult:
    user_id = event.user_id
    on = today or date.today()

    with backend_stage("load_snapshot"):
        repos.session.flush()
        snapshot = repos.load_snapshot(user_id, on)
    with backend_stage("recompute_balance"):
        balance = recompute_balance(repos, user_id, snapshot)
    with backend_stage("reevaluate_challenges"):
        applied = reevaluate_challenges(repos, user_id, snapshot)
    with backend_stage("grant_rewards_if_newly_completed"):
        granted = grant_rewards_if_newly_completed(repos, user_id, applied, today=on)

    _logger.debug(
        "cascade %s for user %s: balance=%s progressed=%d granted=%d",
        event.kind,
        user_id,
        balance,
        len(applied),
        len(granted),
    )
    return CascadeResult(event=event, balance=balance, progress=applied, granted=granted)


__all__ = [
    "apply_ledger_mutation",
    "recompute_balance",
    "run_cascade",
]
