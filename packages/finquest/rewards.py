"""Points and achievements.

Points only grow through explicit grants (challenge payouts, balance
top-ups). Achievements are append-only.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal
from typing import Any

from .errors import ValidationError, backend_stage
from .logging_setup import get_logger
from .models import AchievementView, ProfileView, TopUpResult
from .money import format_amount, to_money
from .persistence import Repositories

_logger = get_logger("finquest.rewards")


def grant_points(repos: Repositories, user_id: str, amount: int) -> int:
    """Add ``amount`` points to the user's profile; returns the new total."""

    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"points must be an integer, got {amount!r}")
    if amount < 0:
        raise ValidationError("points cannot be negative")
    total = repos.rewards.add_points(user_id, amount)
    _logger.info("granted %d points to user %s (total %d)", amount, user_id, total)
    return total


def record_achievement(
    repos: Repositories,
    user_id: str,
    title: str,
    description: str | None = None,
    icon: str | None = None,
    *,
    today: date | None = None,
) -> AchievementView:
    if not title or not title.strip():
        raise ValidationError("achievement title must be non-empty")
    view = repos.rewards.insert_achievement(
        user_id,
        title=title.strip(),
        description=description,
        icon=icon,
        on=today or date.today(),
    )
    _logger.info("achievement %r recorded for user %s", view.title, user_id)
    return view


def top_up_balance(
    repos: Repositories, user_id: str, amount: Any, *, today: date | None = None
) -> TopUpResult:
    """Add money to the balance as an income entry and reward one point per whole unit."""

    from .ledger import add_transaction  # local import to avoid cycle

    try:
        value: Decimal = to_money(amount)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if value <= 0:
        raise ValidationError("top-up amount must be greater than 0")

    on = today or date.today()
    cascade = add_transaction(
        repos,
        user_id,
        {
            "name": "Saldo Adicionado",
            "value": value,
            "type": "income",
            "category": "Outros",
            "date": on,
        },
        today=on,
    )
    points = math.floor(value)
    with backend_stage("grant_points"):
        grant_points(repos, user_id, points)
    return TopUpResult(
        cascade=cascade,
        points_added=points,
        message=f"Saldo de R$ {format_amount(value)} adicionado com sucesso! +{points} pontos!",
    )


def get_profile(repos: Repositories, user_id: str) -> ProfileView:
    """Points, cached balance and achievements (newest first)."""

    return repos.rewards.profile(user_id)


__all__ = [
    "grant_points",
    "record_achievement",
    "top_up_balance",
    "get_profile",
]
