"""Savings goals and goal funding.

Funding moves money from the balance into a goal. The transfer is recorded
as a synthetic ``expense`` in category ``"Metas"`` so the balance (always a
ledger fold) drops by exactly the amount the goal gained. A goal never
exceeds its target; the amount applied is capped at what remains.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date
from decimal import Decimal
from typing import Any

from .balance import calculate_balance
from .cascade import apply_ledger_mutation, run_cascade
from .errors import NotFoundError, ValidationError, backend_stage
from .logging_setup import get_logger
from .models import (
    FundGoalResult,
    GoalInput,
    GoalPatch,
    GoalView,
    TransactionInput,
    parse_input,
)
from .money import ZERO, format_amount, round_percent, to_money
from .persistence import Repositories

_logger = get_logger("finquest.goals")

GOAL_CATEGORY = "Metas"
GOAL_NOT_FOUND = "Meta não encontrada"
GOAL_ALREADY_COMPLETE = "Esta meta já foi completada!"


def add_goal(
    repos: Repositories, user_id: str, payload: GoalInput | Mapping[str, Any]
) -> GoalView:
    data = parse_input(GoalInput, payload)
    with backend_stage("add_goal"):
        view = repos.goals.insert(user_id, data)
    _logger.info("user %s created goal %s (target %s)", user_id, view.id, view.target_value)
    return view


def update_goal(
    repos: Repositories,
    user_id: str,
    goal_id: str,
    patch: GoalPatch | Mapping[str, Any],
) -> GoalView:
    """Edit title/target/category/target date. ``current_value`` is left alone.

    Lowering the target below the amount already saved is a ValidationError.
    """

    changes = parse_input(GoalPatch, patch).changes()
    with backend_stage("update_goal"):
        view = repos.goals.update(user_id, goal_id, changes)
    _logger.info("user %s updated goal %s: %s", user_id, goal_id, sorted(changes))
    return view


def remove_goal(repos: Repositories, user_id: str, goal_id: str) -> GoalView:
    with backend_stage("remove_goal"):
        view = repos.goals.soft_delete(user_id, goal_id)
    _logger.info("user %s removed goal %s", user_id, goal_id)
    return view


def get_goal(repos: Repositories, user_id: str, goal_id: str) -> GoalView:
    view = repos.goals.get(user_id, goal_id)
    if view is None:
        raise NotFoundError("goal", goal_id)
    return view


def list_goals(repos: Repositories, user_id: str) -> tuple[GoalView, ...]:
    return repos.goals.list(user_id)


def fund_goal(
    repos: Repositories,
    user_id: str,
    goal_id: str,
    amount: Any,
    *,
    today: date | None = None,
) -> FundGoalResult:
    """Move up to ``amount`` from the balance into a goal.

    Failures the user can act on (unknown goal, insufficient balance, goal
    already complete) come back as ``success=False`` results; a non-positive
    amount raises :class:`ValidationError`.
    """

    try:
        requested = to_money(amount)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    if requested <= 0:
        raise ValidationError("amount must be greater than 0")

    goal = repos.goals.get(user_id, goal_id)
    if goal is None:
        return FundGoalResult(success=False, message=GOAL_NOT_FOUND)

    remaining = max(goal.remaining, ZERO)
    amount_to_add = min(requested, remaining)
    # A complete goal is checked against the full request
    needed = amount_to_add if remaining > 0 else requested
    balance = calculate_balance(repos.ledger.list(user_id))
    if balance < needed:
        _logger.info(
            "user %s cannot fund goal %s: balance %s < %s", user_id, goal_id, balance, needed
        )
        return FundGoalResult(
            success=False,
            message=(
                f"Saldo insuficiente! Você tem {format_amount(balance)} "
                f"mas precisa de {format_amount(needed)}"
            ),
        )
    if remaining <= 0:
        return FundGoalResult(success=False, message=GOAL_ALREADY_COMPLETE)

    on = today or date.today()
    with backend_stage("fund_goal"):
        updated = repos.goals.add_to_current(user_id, goal_id, amount_to_add)
    transfer = TransactionInput(
        name=f"Adicionado à meta: {goal.title}",
        value=amount_to_add,
        type="expense",
        category=GOAL_CATEGORY,
        date=on,
    )
    event = apply_ledger_mutation(
        "goal_funded",
        user_id,
        lambda: repos.ledger.insert(user_id, transfer),
        goal_id=goal_id,
    )
    cascade = run_cascade(repos, event, today=on)
    _logger.info(
        "user %s funded goal %s with %s (now %s/%s)",
        user_id,
        goal_id,
        amount_to_add,
        updated.current_value,
        updated.target_value,
    )
    return FundGoalResult(
        success=True,
        message=f"R$ {format_amount(amount_to_add)} adicionado à meta com sucesso!",
        amount_added=amount_to_add,
        new_value=updated.current_value,
        cascade=cascade,
    )


def goal_progress_percent(goal: GoalView) -> Decimal:
    if goal.target_value <= 0:
        return ZERO
    return goal.current_value / goal.target_value * 100


def calculate_overall_goal_progress(goals: Iterable[GoalView]) -> int:
    """Mean of per-goal completion percentages, rounded half-up; 0 without goals."""

    percents = [goal_progress_percent(g) for g in goals]
    if not percents:
        return 0
    return round_percent(sum(percents, ZERO) / len(percents))


__all__ = [
    "GOAL_CATEGORY",
    "add_goal",
    "update_goal",
    "remove_goal",
    "get_goal",
    "list_goals",
    "fund_goal",
    "goal_progress_percent",
    "calculate_overall_goal_progress",
]
