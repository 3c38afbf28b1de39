"""Data models for ``finquest``.

Two families live here:

- Pydantic input models (``TransactionInput``, ``GoalInput``, ...) that
  validate caller payloads before anything is written. Validation failures
  surface as :class:`finquest.errors.ValidationError` via :func:`parse_input`.
- Frozen dataclass views (``TransactionView``, ``GoalView``, ...) returned by
  the services and consumed by the pure stages. They are detached from any
  SQLAlchemy session, so they can be passed around freely.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError
from .money import ZERO, to_money

TransactionType = Literal["income", "expense"]
ChallengeStatus = Literal["active", "completed", "abandoned"]
LedgerEventKind = Literal[
    "transaction_added",
    "transaction_updated",
    "transaction_removed",
    "goal_funded",
    "reconcile",
]

TRANSACTION_TYPES: tuple[str, ...] = ("income", "expense")


def parse_date(raw: Any) -> dt.date:
    """Parse a date, dropping any time-of-day component.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings, either
    ``YYYY-MM-DD`` or a full timestamp (``2025-08-10T14:03:00Z``).
    """

    if isinstance(raw, dt.datetime):
        return raw.date()
    if isinstance(raw, dt.date):
        return raw
    s = str(raw).strip() if raw is not None else ""
    if not s:
        raise ValueError("date is required")
    head = s.split("T", 1)[0].split(" ", 1)[0]
    try:
        return dt.date.fromisoformat(head)
    except ValueError as e:
        raise ValueError(f"unparseable date: {raw!r}") from e


def _positive_money(raw: Any, field: str) -> Decimal:
    if raw is None:
        raise ValueError(f"{field} is required")
    amount = to_money(raw)
    if amount <= 0:
        raise ValueError(f"{field} must be greater than 0")
    return amount


def _non_empty(v: str | None, field: str) -> str:
    if v is None or not v.strip():
        raise ValueError(f"{field} must be non-empty")
    return v.strip()


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


class TransactionInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    name: str = ""
    value: Decimal
    type: TransactionType
    category: str
    date: dt.date

    @field_validator("value", mode="before")
    @classmethod
    def _value_positive(cls, v: Any) -> Decimal:
        return _positive_money(v, "value")

    @field_validator("category")
    @classmethod
    def _category_present(cls, v: str) -> str:
        return _non_empty(v, "category")

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, v: Any) -> dt.date:
        return parse_date(v)


class TransactionPatch(BaseModel):
    """Partial edit of a ledger entry; only fields explicitly set are written."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    name: str | None = None
    value: Decimal | None = None
    type: TransactionType | None = None
    category: str | None = None
    date: dt.date | None = None

    # Only fields that were sent reach the validators, so an explicit None is
    # a request to blank a NOT NULL column.
    @field_validator("name", mode="before")
    @classmethod
    def _name_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("name cannot be null")
        return v

    @field_validator("type", mode="before")
    @classmethod
    def _type_not_null(cls, v: Any) -> Any:
        if v is None:
            raise ValueError("type cannot be null")
        return v

    @field_validator("value", mode="before")
    @classmethod
    def _value_positive(cls, v: Any) -> Decimal:
        return _positive_money(v, "value")

    @field_validator("category", mode="before")
    @classmethod
    def _category_present(cls, v: Any) -> str:
        return _non_empty(v if v is None else str(v), "category")

    @field_validator("date", mode="before")
    @classmethod
    def _date_only(cls, v: Any) -> dt.date:
        return parse_date(v)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class GoalInput(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    title: str
    target_value: Decimal
    current_value: Decimal = ZERO
    category: str | None = None
    target_date: dt.date | None = None

    @field_validator("title")
    @classmethod
    def _title_present(cls, v: str) -> str:
        return _non_empty(v, "title")

    @field_validator("target_value", mode="before")
    @classmethod
    def _target_positive(cls, v: Any) -> Decimal:
        return _positive_money(v, "target_value")

    @field_validator("current_value", mode="before")
    @classmethod
    def _current_money(cls, v: Any) -> Decimal:
        amount = to_money(v if v is not None else 0)
        if amount < 0:
            raise ValueError("current_value must be >= 0")
        return amount

    @field_validator("target_date", mode="before")
    @classmethod
    def _target_date(cls, v: Any) -> dt.date | None:
        return None if v in (None, "") else parse_date(v)

    @model_validator(mode="after")
    def _current_within_target(self) -> GoalInput:
        if self.current_value > self.target_value:
            raise ValueError("current_value cannot exceed target_value")
        return self


class GoalPatch(BaseModel):
    """Editable goal fields. ``current_value`` only moves through funding."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    title: str | None = None
    target_value: Decimal | None = None
    category: str | None = None
    target_date: dt.date | None = None

    @field_validator("title", mode="before")
    @classmethod
    def _title_present(cls, v: Any) -> str:
        return _non_empty(v if v is None else str(v), "title")

    @field_validator("target_value", mode="before")
    @classmethod
    def _target_positive(cls, v: Any) -> Decimal:
        return _positive_money(v, "target_value")

    @field_validator("target_date", mode="before")
    @classmethod
    def _target_date(cls, v: Any) -> dt.date:
        return parse_date(v)

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class ChallengeOverrides(BaseModel):
    """Per-acceptance overrides of a catalog entry.

    ``current`` seeds progress already accrued before acceptance (e.g. six
    transactions recorded before taking up "Transações Pro").
    """

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True, frozen=True)

    title: str | None = None
    description: str | None = None
    target: Decimal | None = None
    reward: int | None = None
    current: Decimal | None = None

    @field_validator("target", mode="before")
    @classmethod
    def _target_positive(cls, v: Any) -> Decimal:
        return _positive_money(v, "target")

    @field_validator("current", mode="before")
    @classmethod
    def _current_money(cls, v: Any) -> Decimal:
        amount = to_money(v)
        if amount < 0:
            raise ValueError("current must be >= 0")
        return amount

    @field_validator("reward")
    @classmethod
    def _reward_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("reward must be >= 0")
        return v


M = TypeVar("M", bound=BaseModel)


def parse_input(model: type[M], payload: M | Mapping[str, Any] | None) -> M:
    """Validate ``payload`` as ``model``, raising :class:`ValidationError`."""

    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload or {})
    except PydanticValidationError as e:
        details = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}"
            for err in e.errors()
        )
        raise ValidationError(f"invalid {model.__name__}: {details}") from e


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TransactionView:
    id: str
    name: str
    value: Decimal
    type: str
    category: str
    date: dt.date
    created_at: dt.datetime | None = None
    deleted_at: dt.datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


@dataclass(frozen=True, slots=True)
class GoalView:
    id: str
    title: str
    target_value: Decimal
    current_value: Decimal
    category: str | None = None
    target_date: dt.date | None = None
    created_at: dt.datetime | None = None

    @property
    def remaining(self) -> Decimal:
        return self.target_value - self.current_value

    @property
    def is_complete(self) -> bool:
        return self.current_value >= self.target_value


@dataclass(frozen=True, slots=True)
class ChallengeView:
    id: str
    challenge_id: str
    title: str
    description: str | None
    target: Decimal
    current: Decimal
    reward: int
    status: str
    accepted_at: dt.datetime | None = None
    completed_at: dt.datetime | None = None
    abandoned_at: dt.datetime | None = None


@dataclass(frozen=True, slots=True)
class AchievementView:
    id: str
    title: str
    description: str | None
    icon: str | None
    date: dt.date


@dataclass(frozen=True, slots=True)
class ProfileView:
    user_id: str
    points: int
    balance: Decimal
    achievements: tuple[AchievementView, ...] = ()


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    """Post-mutation state every derived computation reads from."""

    user_id: str
    today: dt.date
    transactions: tuple[TransactionView, ...]
    goals: tuple[GoalView, ...] = ()
    achievements: tuple[AchievementView, ...] = ()


@dataclass(frozen=True, slots=True)
class ProgressUpdate:
    """A pending forward move of one active challenge."""

    challenge: ChallengeView
    previous: Decimal
    new_current: Decimal
    metric_value: Decimal
    completes: bool

    @property
    def delta(self) -> Decimal:
        return self.new_current - self.previous


@dataclass(frozen=True, slots=True)
class AppliedProgress:
    update: ProgressUpdate
    challenge: ChallengeView
    # True only for the call that performed active -> completed
    completed_now: bool


@dataclass(frozen=True, slots=True)
class LedgerEvent:
    kind: LedgerEventKind
    user_id: str
    transaction: TransactionView | None = None
    goal_id: str | None = None


@dataclass(frozen=True, slots=True)
class CascadeResult:
    event: LedgerEvent
    balance: Decimal
    progress: tuple[AppliedProgress, ...] = ()
    granted: tuple[AchievementView, ...] = ()

    @property
    def transaction(self) -> TransactionView | None:
        return self.event.transaction


@dataclass(frozen=True, slots=True)
class FundGoalResult:
    success: bool
    message: str
    amount_added: Decimal | None = None
    new_value: Decimal | None = None
    cascade: CascadeResult | None = None


@dataclass(frozen=True, slots=True)
class AcceptChallengeResult:
    challenge: ChallengeView
    created: bool
    granted: tuple[AchievementView, ...] = ()


@dataclass(frozen=True, slots=True)
class TopUpResult:
    cascade: CascadeResult
    points_added: int
    message: str


__all__ = [
    "TransactionType",
    "ChallengeStatus",
    "LedgerEventKind",
    "TRANSACTION_TYPES",
    "parse_date",
    "parse_input",
    "TransactionInput",
    "TransactionPatch",
    "GoalInput",
    "GoalPatch",
    "ChallengeOverrides",
    "TransactionView",
    "GoalView",
    "ChallengeView",
    "AchievementView",
    "ProfileView",
    "LedgerSnapshot",
    "ProgressUpdate",
    "AppliedProgress",
    "LedgerEvent",
    "CascadeResult",
    "FundGoalResult",
    "AcceptChallengeResult",
    "TopUpResult",
]
