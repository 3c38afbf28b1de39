"""Challenge catalog and progress tracking.

The catalog is a fixed strategy table: each entry binds a challenge id to
the metric that drives it. Tracking is split into a pure step
(:func:`evaluate_progress`, snapshot in, pending updates out) and the
persisted steps that apply updates and pay rewards.

Rules
-----
- Progress only moves forward: ``current = min(metric, target)`` and updates
  with a non-positive delta are skipped.
- A challenge completes once. Only the write that flips ``active`` to
  ``completed`` reports ``completed_now``, and only that transition pays.
- At most one ``active``/``completed`` instance per (user, challenge id);
  re-accepting returns the existing instance.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, TypeAlias

from .balance import savings, savings_window
from .errors import NotFoundError, ValidationError, backend_stage
from .logging_setup import get_logger
from .models import (
    AcceptChallengeResult,
    AchievementView,
    AppliedProgress,
    ChallengeOverrides,
    ChallengeView,
    LedgerSnapshot,
    ProgressUpdate,
    parse_input,
)
from .money import ZERO, format_amount, to_money
from .persistence import OPEN_STATUSES, Repositories
from .rewards import grant_points, record_achievement

_logger = get_logger("finquest.challenges")

Metric: TypeAlias = Callable[[LedgerSnapshot], Decimal]


# ---------------------------
# Metrics
# ---------------------------


def _window_savings(days: int) -> Metric:
    def metric(snapshot: LedgerSnapshot) -> Decimal:
        return savings_window(snapshot.transactions, snapshot.today, days)

    return metric


def _lifetime_savings(snapshot: LedgerSnapshot) -> Decimal:
    return savings(snapshot.transactions)


def _transaction_count(snapshot: LedgerSnapshot) -> Decimal:
    return Decimal(sum(1 for t in snapshot.transactions if t.deleted_at is None))


def _completed_goals(snapshot: LedgerSnapshot) -> Decimal:
    return Decimal(sum(1 for g in snapshot.goals if g.is_complete))


# ---------------------------
# Catalog
# ---------------------------


@dataclass(frozen=True, slots=True)
class ChallengeDefinition:
    challenge_id: str
    title: str
    description: str
    target: Decimal
    reward: int
    icon: str
    metric: Metric
    # Formatted with ``amount`` (2dp metric) and ``count`` (integer metric)
    achievement_text: str
    achievement_icon: str

    def achievement_description(self, metric_value: Decimal) -> str:
        return self.achievement_text.format(
            amount=format_amount(metric_value), count=int(metric_value)
        )


def _savings_challenge(
    challenge_id: str,
    title: str,
    description: str,
    target: int,
    reward: int,
    icon: str,
    metric: Metric,
) -> ChallengeDefinition:
    return ChallengeDefinition(
        challenge_id=challenge_id,
        title=title,
        description=description,
        target=to_money(target),
        reward=reward,
        icon=icon,
        metric=metric,
        achievement_text="Economizou R$ {amount}",
        achievement_icon="trophy",
    )


CATALOG: Mapping[str, ChallengeDefinition] = {
    d.challenge_id: d
    for d in (
        _savings_challenge(
            "1", "Economista Semanal", "Economize R$ 50 esta semana", 50, 100, "Wallet",
            _window_savings(7),
        ),
        _savings_challenge(
            "2", "Poupador Mensal", "Economize R$ 200 este mês", 200, 500, "Target",
            _window_savings(30),
        ),
        ChallengeDefinition(
            challenge_id="3",
            title="Meta Master",
            description="Complete 3 metas",
            target=to_money(3),
            reward=300,
            icon="Trophy",
            metric=_completed_goals,
            achievement_text="Completou {count} metas!",
            achievement_icon="target",
        ),
        ChallengeDefinition(
            challenge_id="4",
            title="Transações Pro",
            description="Registre 10 transações",
            target=to_money(10),
            reward=150,
            icon="TrendingUp",
            metric=_transaction_count,
            achievement_text="Registrou {count} transações!",
            achievement_icon="trending-up",
        ),
        ChallengeDefinition(
            challenge_id="5",
            title="Primeiro Passo",
            description="Registre sua primeira transação",
            target=to_money(1),
            reward=50,
            icon="Zap",
            metric=_transaction_count,
            achievement_text="Registrou sua primeira transação!",
            achievement_icon="zap",
        ),
        _savings_challenge(
            "6", "Economia Bronze", "Economize R$ 100 no total", 100, 200, "Award",
            _lifetime_savings,
        ),
        _savings_challenge(
            "7", "Economia Prata", "Economize R$ 500 no total", 500, 1000, "Star",
            _lifetime_savings,
        ),
        _savings_challenge(
            "8", "Economia Ouro", "Economize R$ 1000 no total", 1000, 2500, "Trophy",
            _lifetime_savings,
        ),
    )
}


def get_definition(challenge_id: str | int) -> ChallengeDefinition:
    definition = CATALOG.get(str(challenge_id).strip())
    if definition is None:
        raise ValidationError(f"unknown challenge: {challenge_id!r}")
    return definition


def initial_progress(challenge_id: str | int, snapshot: LedgerSnapshot) -> Decimal:
    """Metric value a caller can seed as ``current`` when accepting."""

    return to_money(get_definition(challenge_id).metric(snapshot))


# ---------------------------
# Tracking
# ---------------------------


def evaluate_progress(
    challenges: Iterable[ChallengeView], snapshot: LedgerSnapshot
) -> list[ProgressUpdate]:
    """Compute forward moves for the active challenges in ``challenges``.

    Pure: reads only ``snapshot``. Non-active instances, instances whose
    catalog entry is unknown and non-positive deltas are skipped.
    """

    updates: list[ProgressUpdate] = []
    for ch in challenges:
        if ch.status != "active":
            continue
        definition = CATALOG.get(ch.challenge_id)
        if definition is None:
            _logger.warning("challenge %s has unknown catalog id %r", ch.id, ch.challenge_id)
            continue
        metric_value = to_money(definition.metric(snapshot))
        new_current = min(metric_value, ch.target)
        if new_current - ch.current <= 0:
            continue
        updates.append(
            ProgressUpdate(
                challenge=ch,
                previous=ch.current,
                new_current=new_current,
                metric_value=metric_value,
                completes=new_current >= ch.target,
            )
        )
    return updates


def reevaluate_challenges(
    repos: Repositories, user_id: str, snapshot: LedgerSnapshot
) -> tuple[AppliedProgress, ...]:
    """Apply :func:`evaluate_progress` to the user's active challenges."""

    active = repos.challenges.list(user_id, ("active",))
    applied: list[AppliedProgress] = []
    for update in evaluate_progress(active, snapshot):
        outcome = repos.challenges.advance(
            user_id, update.challenge.id, update.new_current, complete=update.completes
        )
        if outcome is None:
            # No longer active; another writer got there first.
            continue
        view, completed_now = outcome
        _logger.info(
            "challenge %s (%s) progress %s -> %s%s",
            view.id,
            view.challenge_id,
            update.previous,
            view.current,
            " [completed]" if completed_now else "",
        )
        applied.append(AppliedProgress(update=update, challenge=view, completed_now=completed_now))
    return tuple(applied)


def grant_rewards_if_newly_completed(
    repos: Repositories,
    user_id: str,
    applied: Iterable[AppliedProgress],
    *,
    today: date | None = None,
) -> tuple[AchievementView, ...]:
    """Pay each challenge whose transition to ``completed`` was performed here."""

    on = today or date.today()
    granted: list[AchievementView] = []
    for item in applied:
        if not item.completed_now:
            continue
        ch = item.challenge
        definition = CATALOG.get(ch.challenge_id)
        if definition is not None:
            description = definition.achievement_description(item.update.metric_value)
            icon = definition.achievement_icon
        else:
            description, icon = ch.description, "trophy"
        grant_points(repos, user_id, ch.reward)
        granted.append(
            record_achievement(repos, user_id, ch.title, description, icon, today=on)
        )
        _logger.info("challenge %s paid %d points to user %s", ch.id, ch.reward, user_id)
    return tuple(granted)


# ---------------------------
# Lifecycle
# ---------------------------


def accept_challenge(
    repos: Repositories,
    user_id: str,
    challenge_id: str | int,
    overrides: ChallengeOverrides | Mapping[str, Any] | None = None,
    *,
    today: date | None = None,
) -> AcceptChallengeResult:
    """Create an ``active`` instance of a catalog challenge.

    Returns the existing instance unchanged (``created=False``) when one is
    already active or completed. A seeded ``current`` is clamped to the
    target and advanced like any other progress, so a seed that meets the
    target completes and pays immediately.
    """

    definition = get_definition(challenge_id)
    opts = parse_input(ChallengeOverrides, overrides)

    existing = repos.challenges.find_open(user_id, definition.challenge_id)
    if existing is not None:
        _logger.info(
            "challenge %s already %s for user %s", definition.challenge_id, existing.status, user_id
        )
        return AcceptChallengeResult(challenge=existing, created=False)

    with backend_stage("accept_challenge"):
        created = repos.challenges.insert(
            user_id,
            challenge_id=definition.challenge_id,
            title=opts.title or definition.title,
            description=opts.description if opts.description is not None else definition.description,
            target=opts.target if opts.target is not None else definition.target,
            reward=opts.reward if opts.reward is not None else definition.reward,
        )
    _logger.info("user %s accepted challenge %s as %s", user_id, definition.challenge_id, created.id)

    seed = opts.current if opts.current is not None else ZERO
    if seed <= 0:
        return AcceptChallengeResult(challenge=created, created=True)

    new_current = min(seed, created.target)
    update = ProgressUpdate(
        challenge=created,
        previous=created.current,
        new_current=new_current,
        metric_value=seed,
        completes=new_current >= created.target,
    )
    with backend_stage("reevaluate_challenges"):
        outcome = repos.challenges.advance(
            user_id, created.id, new_current, complete=update.completes
        )
    assert outcome is not None  # inserted as active in this unit of work
    view, completed_now = outcome
    applied = AppliedProgress(update=update, challenge=view, completed_now=completed_now)
    with backend_stage("grant_rewards_if_newly_completed"):
        granted = grant_rewards_if_newly_completed(repos, user_id, [applied], today=today)
    return AcceptChallengeResult(challenge=view, created=True, granted=granted)


def abandon_challenge(repos: Repositories, user_id: str, instance_id: str) -> ChallengeView:
    """Move an active instance to ``abandoned``. Completed ones cannot be abandoned."""

    with backend_stage("abandon_challenge"):
        view = repos.challenges.abandon(user_id, instance_id)
    _logger.info("user %s abandoned challenge %s", user_id, instance_id)
    return view


def get_challenge(repos: Repositories, user_id: str, instance_id: str) -> ChallengeView:
    view = repos.challenges.get(user_id, instance_id)
    if view is None:
        raise NotFoundError("challenge", instance_id)
    return view


def list_challenges(
    repos: Repositories, user_id: str, statuses: Sequence[str] | None = OPEN_STATUSES
) -> tuple[ChallengeView, ...]:
    """Accepted instances, oldest first. ``statuses=None`` includes abandoned ones."""

    return repos.challenges.list(user_id, statuses)


def available_challenges(repos: Repositories, user_id: str) -> list[ChallengeDefinition]:
    """Catalog entries the user can accept right now."""

    taken = {c.challenge_id for c in repos.challenges.list(user_id, OPEN_STATUSES)}
    return [d for d in CATALOG.values() if d.challenge_id not in taken]


__all__ = [
    "CATALOG",
    "ChallengeDefinition",
    "get_definition",
    "initial_progress",
    "evaluate_progress",
    "reevaluate_challenges",
    "grant_rewards_if_newly_completed",
    "accept_challenge",
    "abandon_challenge",
    "get_challenge",
    "list_challenges",
    "available_challenges",
]
