"""Persistence integration for finquest.

Repositories here read and write the tables owned by ``libs/db``
(``db.models.finance``) through a session the caller provides. They only ever
``flush``; committing or rolling back is the job of whoever opened the
session (usually :func:`db.client.session_scope`).

Every query is scoped by ``user_id`` and every read of ledger/goal rows
filters out soft-deleted rows unless asked otherwise.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import UTC, date, datetime
from decimal import Decimal
from typing import Any

from db.models.finance import Achievement, Challenge, Goal, Transaction, UserProfile
from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import NotFoundError, ValidationError
from .models import (
    AchievementView,
    ChallengeView,
    GoalInput,
    GoalView,
    LedgerSnapshot,
    ProfileView,
    TransactionInput,
    TransactionView,
)
from .money import ZERO, to_money

OPEN_STATUSES: tuple[str, ...] = ("active", "completed")


def _utcnow() -> datetime:
    return datetime.now(UTC)


# ---------------------------
# Row -> view mapping
# ---------------------------


def _tx_view(row: Transaction) -> TransactionView:
    return TransactionView(
        id=row.id,
        name=row.name,
        value=to_money(row.value),
        type=row.type,
        category=row.category,
        date=row.date,
        created_at=row.created_at,
        deleted_at=row.deleted_at,
    )


def _goal_view(row: Goal) -> GoalView:
    return GoalView(
        id=row.id,
        title=row.title,
        target_value=to_money(row.target_value),
        current_value=to_money(row.current_value),
        category=row.category,
        target_date=row.target_date,
        created_at=row.created_at,
    )


def _challenge_view(row: Challenge) -> ChallengeView:
    return ChallengeView(
        id=row.id,
        challenge_id=row.challenge_id,
        title=row.title,
        description=row.description,
        target=to_money(row.target),
        current=to_money(row.current),
        reward=int(row.reward),
        status=row.status,
        accepted_at=row.accepted_at,
        completed_at=row.completed_at,
        abandoned_at=row.abandoned_at,
    )


def _achievement_view(row: Achievement) -> AchievementView:
    return AchievementView(
        id=row.id,
        title=row.title,
        description=row.description,
        icon=row.icon,
        date=row.date,
    )


# ---------------------------
# Ledger
# ---------------------------


@dataclass(frozen=True, slots=True)
class LedgerRepository:
    session: Session

    def insert(self, user_id: str, data: TransactionInput) -> TransactionView:
        now = _utcnow()
        row = Transaction(
            user_id=user_id,
            name=data.name,
            value=data.value,
            type=data.type,
            category=data.category,
            date=data.date,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return _tx_view(row)

    def _active_row(self, user_id: str, transaction_id: str) -> Transaction:
        row = (
            self.session.execute(
                select(Transaction).where(
                    Transaction.id == transaction_id,
                    Transaction.user_id == user_id,
                    Transaction.deleted_at.is_(None),
                )
            )
            .scalars()
            .first()
        )
        if row is None:
            raise NotFoundError("transaction", transaction_id)
        return row

    def get(self, user_id: str, transaction_id: str) -> TransactionView:
        return _tx_view(self._active_row(user_id, transaction_id))

    def update(
        self, user_id: str, transaction_id: str, changes: Mapping[str, Any]
    ) -> TransactionView:
        row = self._active_row(user_id, transaction_id)
        for field, value in changes.items():
            setattr(row, field, value)
        row.updated_at = _utcnow()
        self.session.flush()
        return _tx_view(row)

    def soft_delete(self, user_id: str, transaction_id: str) -> TransactionView:
        row = self._active_row(user_id, transaction_id)
        now = _utcnow()
        row.deleted_at = now
        row.updated_at = now
        self.session.flush()
        return _tx_view(row)

    def list(self, user_id: str, *, include_deleted: bool = False) -> tuple[TransactionView, ...]:
        stmt = select(Transaction).where(Transaction.user_id == user_id)
        if not include_deleted:
            stmt = stmt.where(Transaction.deleted_at.is_(None))
        stmt = stmt.order_by(Transaction.date.desc(), Transaction.created_at.desc())
        rows = self.session.execute(stmt).scalars().all()
        return tuple(_tx_view(r) for r in rows)


# ---------------------------
# Goals
# ---------------------------


@dataclass(frozen=True, slots=True)
class GoalRepository:
    session: Session

    def insert(self, user_id: str, data: GoalInput) -> GoalView:
        now = _utcnow()
        row = Goal(
            user_id=user_id,
            title=data.title,
            target_value=data.target_value,
            current_value=data.current_value,
            category=data.category,
            target_date=data.target_date,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return _goal_view(row)

    def _active_row(self, user_id: str, goal_id: str) -> Goal | None:
        return (
            self.session.execute(
                select(Goal).where(
                    Goal.id == goal_id,
                    Goal.user_id == user_id,
                    Goal.deleted_at.is_(None),
                )
            )
            .scalars()
            .first()
        )

    def get(self, user_id: str, goal_id: str) -> GoalView | None:
        row = self._active_row(user_id, goal_id)
        return _goal_view(row) if row is not None else None

    def update(self, user_id: str, goal_id: str, changes: Mapping[str, Any]) -> GoalView:
        row = self._active_row(user_id, goal_id)
        if row is None:
            raise NotFoundError("goal", goal_id)
        target = changes.get("target_value")
        if target is not None and to_money(target) < to_money(row.current_value):
            raise ValidationError(
                f"target_value {to_money(target)} is below current_value "
                f"{to_money(row.current_value)}"
            )
        for field, value in changes.items():
            setattr(row, field, value)
        row.updated_at = _utcnow()
        self.session.flush()
        return _goal_view(row)

    def add_to_current(self, user_id: str, goal_id: str, amount: Decimal) -> GoalView:
        """Increase ``current_value`` by ``amount``, never past ``target_value``."""

        row = self._active_row(user_id, goal_id)
        if row is None:
            raise NotFoundError("goal", goal_id)
        target = to_money(row.target_value)
        row.current_value = min(to_money(row.current_value) + to_money(amount), target)
        row.updated_at = _utcnow()
        self.session.flush()
        return _goal_view(row)

    def soft_delete(self, user_id: str, goal_id: str) -> GoalView:
        row = self._active_row(user_id, goal_id)
        if row is None:
            raise NotFoundError("goal", goal_id)
        now = _utcnow()
        row.deleted_at = now
        row.updated_at = now
        self.session.flush()
        return _goal_view(row)

    def list(self, user_id: str) -> tuple[GoalView, ...]:
        rows = (
            self.session.execute(
                select(Goal)
                .where(Goal.user_id == user_id, Goal.deleted_at.is_(None))
                .order_by(Goal.created_at)
            )
            .scalars()
            .all()
        )
        return tuple(_goal_view(r) for r in rows)


# ---------------------------
# Challenges
# ---------------------------


@dataclass(frozen=True, slots=True)
class ChallengeRepository:
    session: Session

    def find_open(self, user_id: str, challenge_id: str) -> ChallengeView | None:
        """Return the ``active``/``completed`` instance of a catalog challenge."""

        row = (
            self.session.execute(
                select(Challenge).where(
                    Challenge.user_id == user_id,
                    Challenge.challenge_id == challenge_id,
                    Challenge.status.in_(OPEN_STATUSES),
                )
            )
            .scalars()
            .first()
        )
        return _challenge_view(row) if row is not None else None

    def insert(
        self,
        user_id: str,
        *,
        challenge_id: str,
        title: str,
        description: str | None,
        target: Decimal,
        reward: int,
    ) -> ChallengeView:
        row = Challenge(
            user_id=user_id,
            challenge_id=challenge_id,
            title=title,
            description=description,
            target=target,
            current=ZERO,
            reward=reward,
            status="active",
            accepted_at=_utcnow(),
        )
        self.session.add(row)
        self.session.flush()
        return _challenge_view(row)

    def get(self, user_id: str, instance_id: str) -> ChallengeView | None:
        row = self.session.get(Challenge, instance_id)
        if row is None or row.user_id != user_id:
            return None
        return _challenge_view(row)

    def list(
        self, user_id: str, statuses: Iterable[str] | None = None
    ) -> tuple[ChallengeView, ...]:
        stmt = select(Challenge).where(Challenge.user_id == user_id)
        if statuses is not None:
            stmt = stmt.where(Challenge.status.in_(tuple(statuses)))
        stmt = stmt.order_by(Challenge.accepted_at, Challenge.challenge_id)
        rows = self.session.execute(stmt).scalars().all()
        return tuple(_challenge_view(r) for r in rows)

    def _locked_active_row(self, user_id: str, instance_id: str) -> Challenge | None:
        return (
            self.session.execute(
                select(Challenge)
                .where(
                    Challenge.id == instance_id,
                    Challenge.user_id == user_id,
                    Challenge.status == "active",
                )
                .with_for_update()
            )
            .scalars()
            .first()
        )

    def advance(
        self, user_id: str, instance_id: str, new_current: Decimal, *, complete: bool
    ) -> tuple[ChallengeView, bool] | None:
        """Move an ``active`` instance forward.

        Returns ``None`` when the row is no longer active. Progress never
        decreases. The boolean is True only when this call performed the
        ``active -> completed`` transition.
        """

        row = self._locked_active_row(user_id, instance_id)
        if row is None:
            return None
        target = to_money(row.target)
        value = min(to_money(new_current), target)
        if value > to_money(row.current):
            row.current = value
        completed_now = False
        if complete and to_money(row.current) >= target:
            row.status = "completed"
            row.completed_at = _utcnow()
            completed_now = True
        self.session.flush()
        return _challenge_view(row), completed_now

    def abandon(self, user_id: str, instance_id: str) -> ChallengeView:
        row = self._locked_active_row(user_id, instance_id)
        if row is None:
            raise NotFoundError("active challenge", instance_id)
        row.status = "abandoned"
        row.abandoned_at = _utcnow()
        self.session.flush()
        return _challenge_view(row)


# ---------------------------
# Rewards
# ---------------------------


@dataclass(frozen=True, slots=True)
class RewardsRepository:
    session: Session

    def get_or_create_profile(self, user_id: str) -> UserProfile:
        row = (
            self.session.execute(select(UserProfile).where(UserProfile.user_id == user_id))
            .scalars()
            .first()
        )
        if row is None:
            now = _utcnow()
            row = UserProfile(
                user_id=user_id,
                points=0,
                balance=ZERO,
                preferences={},
                created_at=now,
                updated_at=now,
            )
            self.session.add(row)
            self.session.flush()
        return row

    def add_points(self, user_id: str, amount: int) -> int:
        row = self.get_or_create_profile(user_id)
        row.points = int(row.points) + int(amount)
        row.updated_at = _utcnow()
        self.session.flush()
        return row.points

    def set_cached_balance(self, user_id: str, balance: Decimal) -> Decimal:
        """Overwrite the cached balance; returns the previous cached value."""

        row = self.get_or_create_profile(user_id)
        previous = to_money(row.balance)
        if previous != balance:
            row.balance = balance
            row.updated_at = _utcnow()
            self.session.flush()
        return previous

    def insert_achievement(
        self,
        user_id: str,
        *,
        title: str,
        description: str | None,
        icon: str | None,
        on: date,
    ) -> AchievementView:
        row = Achievement(
            user_id=user_id,
            title=title,
            description=description,
            icon=icon,
            date=on,
            created_at=_utcnow(),
        )
        self.session.add(row)
        self.session.flush()
        return _achievement_view(row)

    def list_achievements(self, user_id: str) -> tuple[AchievementView, ...]:
        rows = (
            self.session.execute(
                select(Achievement)
                .where(Achievement.user_id == user_id)
                .order_by(Achievement.date.desc(), Achievement.created_at.desc())
            )
            .scalars()
            .all()
        )
        return tuple(_achievement_view(r) for r in rows)

    def profile(self, user_id: str) -> ProfileView:
        row = self.get_or_create_profile(user_id)
        return ProfileView(
            user_id=user_id,
            points=int(row.points),
            balance=to_money(row.balance),
            achievements=self.list_achievements(user_id),
        )


# ---------------------------
# Aggregate
# ---------------------------


@dataclass(frozen=True, slots=True)
class Repositories:
    """All repositories bound to one session (one unit of work)."""

    session: Session
    ledger: LedgerRepository
    goals: GoalRepository
    challenges: ChallengeRepository
    rewards: RewardsRepository

    @classmethod
    def from_session(cls, session: Session) -> Repositories:
        return cls(
            session=session,
            ledger=LedgerRepository(session),
            goals=GoalRepository(session),
            challenges=ChallengeRepository(session),
            rewards=RewardsRepository(session),
        )

    def load_snapshot(self, user_id: str, today: date) -> LedgerSnapshot:
        return LedgerSnapshot(
            user_id=user_id,
            today=today,
            transactions=self.ledger.list(user_id),
            goals=self.goals.list(user_id),
            achievements=self.rewards.list_achievements(user_id),
        )


__all__ = [
    "OPEN_STATUSES",
    "LedgerRepository",
    "GoalRepository",
    "ChallengeRepository",
    "RewardsRepository",
    "Repositories",
]
