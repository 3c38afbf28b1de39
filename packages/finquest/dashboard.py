"""Dashboard summary and the reconcile-on-load pass."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from .balance import calculate_balance, savings_window
from .cascade import run_cascade
from .errors import backend_stage
from .goals import calculate_overall_goal_progress
from .logging_setup import get_logger
from .models import CascadeResult, LedgerEvent, LedgerSnapshot
from .money import round_percent, to_money
from .persistence import Repositories

_logger = get_logger("finquest.dashboard")

WEEKLY_TARGET = Decimal("50.00")


@dataclass(frozen=True, slots=True)
class WeeklyChallengeCard:
    title: str
    description: str
    target: Decimal
    current: Decimal
    progress: int


@dataclass(frozen=True, slots=True)
class DashboardSummary:
    user_id: str
    balance: Decimal
    goals_progress: int
    transactions_count: int
    points: int
    weekly: WeeklyChallengeCard
    active_challenges: int = 0


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    cascade: CascadeResult
    cached_balance: Decimal
    stale: bool

    @property
    def balance(self) -> Decimal:
        return self.cascade.balance


def weekly_challenge_card(snapshot: LedgerSnapshot) -> WeeklyChallengeCard:
    """The always-on "save 50 this week" card; not a catalog challenge."""

    current = min(savings_window(snapshot.transactions, snapshot.today, 7), WEEKLY_TARGET)
    progress = round_percent(current / WEEKLY_TARGET * 100) if WEEKLY_TARGET > 0 else 0
    return WeeklyChallengeCard(
        title="Poupador da Semana",
        description="Economize R$ 50 até o final da semana",
        target=WEEKLY_TARGET,
        current=to_money(current),
        progress=progress,
    )


def dashboard_summary(
    repos: Repositories, user_id: str, *, today: date | None = None
) -> DashboardSummary:
    """Read-only overview. The balance shown is derived from the ledger."""

    on = today or date.today()
    with backend_stage("load_snapshot"):
        snapshot = repos.load_snapshot(user_id, on)
        profile = repos.rewards.profile(user_id)
        active = repos.challenges.list(user_id, ("active",))
    return DashboardSummary(
        user_id=user_id,
        balance=calculate_balance(snapshot.transactions),
        goals_progress=calculate_overall_goal_progress(snapshot.goals),
        transactions_count=len(snapshot.transactions),
        points=profile.points,
        weekly=weekly_challenge_card(snapshot),
        active_challenges=len(active),
    )


def reconcile(repos: Repositories, user_id: str, *, today: date | None = None) -> ReconcileResult:
    """Re-derive everything from the ledger.

    Rewrites the cached balance and re-runs challenge evaluation, so any
    stage that failed on an earlier mutation catches up here.
    """

    with backend_stage("load_profile"):
        cached = to_money(repos.rewards.get_or_create_profile(user_id).balance)
    cascade = run_cascade(repos, LedgerEvent(kind="reconcile", user_id=user_id), today=today)
    stale = cached != cascade.balance
    if stale:
        _logger.warning(
            "balance cache for user %s was stale: %s (ledger says %s)",
            user_id,
            cached,
            cascade.balance,
        )
    return ReconcileResult(cascade=cascade, cached_balance=cached, stale=stale)


__all__ = [
    "WEEKLY_TARGET",
    "WeeklyChallengeCard",
    "DashboardSummary",
    "ReconcileResult",
    "weekly_challenge_card",
    "dashboard_summary",
    "reconcile",
]
