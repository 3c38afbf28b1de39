from decimal import Decimal

import pytest

from finquest.challenges import accept_challenge
from finquest.errors import NotFoundError, ValidationError
from finquest.goals import (
    add_goal,
    calculate_overall_goal_progress,
    fund_goal,
    get_goal,
    list_goals,
    remove_goal,
    update_goal,
)
from finquest.ledger import add_transaction

from tests.helpers.ledger import make_goal


def _deposit(repos, user_id, today, value):
    add_transaction(
        repos,
        user_id,
        {"name": "Salário", "value": value, "type": "income", "category": "Salário", "date": today},
        today=today,
    )


def test_fund_goal_caps_at_remaining(repos, user_id, today):
    _deposit(repos, user_id, today, "100")
    goal = add_goal(repos, user_id, {"title": "Viagem", "target_value": "50", "current_value": "40"})

    result = fund_goal(repos, user_id, goal.id, "1000", today=today)

    assert result.success
    assert result.amount_added == Decimal("10.00")
    assert result.new_value == Decimal("50.00")
    assert result.message == "R$ 10.00 adicionado à meta com sucesso!"
    assert get_goal(repos, user_id, goal.id).current_value == Decimal("50.00")
    assert result.cascade is not None and result.cascade.balance == Decimal("90.00")
    assert result.cascade.event.kind == "goal_funded"
    assert result.cascade.event.goal_id == goal.id
    assert result.cascade.transaction is not None
    assert result.cascade.transaction.category == "Metas"

    transfers = [t for t in repos.ledger.list(user_id) if t.category == "Metas"]
    assert len(transfers) == 1
    assert transfers[0].type == "expense"
    assert transfers[0].value == Decimal("10.00")
    assert transfers[0].name == "Adicionado à meta: Viagem"
    assert transfers[0].date == today


def test_fund_goal_insufficient_balance(repos, user_id, today):
    _deposit(repos, user_id, today, "5")
    goal = add_goal(repos, user_id, {"title": "Bike", "target_value": "50"})

    result = fund_goal(repos, user_id, goal.id, "20", today=today)

    assert not result.success
    assert result.message == "Saldo insuficiente! Você tem 5.00 mas precisa de 20.00"
    assert get_goal(repos, user_id, goal.id).current_value == Decimal("0.00")
    assert len(repos.ledger.list(user_id)) == 1


def test_fund_goal_already_complete(repos, user_id, today):
    _deposit(repos, user_id, today, "100")
    goal = add_goal(repos, user_id, {"title": "Feito", "target_value": "10", "current_value": "10"})

    result = fund_goal(repos, user_id, goal.id, "5", today=today)

    assert not result.success
    assert result.message == "Esta meta já foi completada!"


def test_fund_complete_goal_without_balance_reports_insufficient_funds(repos, user_id, today):
    add_transaction(
        repos,
        user_id,
        {"name": "Aluguel", "value": "20", "type": "expense", "category": "Casa", "date": today},
        today=today,
    )
    goal = add_goal(repos, user_id, {"title": "Feito", "target_value": "10", "current_value": "10"})

    result = fund_goal(repos, user_id, goal.id, "5", today=today)

    assert not result.success
    assert result.message == "Saldo insuficiente! Você tem -20.00 mas precisa de 5.00"


def test_fund_goal_missing_or_removed(repos, user_id, today):
    _deposit(repos, user_id, today, "100")
    assert fund_goal(repos, user_id, "nope", "5", today=today).message == "Meta não encontrada"

    goal = add_goal(repos, user_id, {"title": "Old", "target_value": "10"})
    remove_goal(repos, user_id, goal.id)
    result = fund_goal(repos, user_id, goal.id, "5", today=today)
    assert not result.success
    assert result.message == "Meta não encontrada"


@pytest.mark.parametrize("amount", ["0", "-1", "abc"])
def test_fund_goal_rejects_bad_amount(repos, user_id, today, amount):
    goal = add_goal(repos, user_id, {"title": "X", "target_value": "10"})
    with pytest.raises(ValidationError):
        fund_goal(repos, user_id, goal.id, amount, today=today)


def test_goal_never_exceeds_target_over_repeated_funding(repos, user_id, today):
    _deposit(repos, user_id, today, "500")
    goal = add_goal(repos, user_id, {"title": "Carro", "target_value": "100"})
    for amount in ("30", "30", "30", "30", "30"):
        fund_goal(repos, user_id, goal.id, amount, today=today)
        current = get_goal(repos, user_id, goal.id).current_value
        assert Decimal("0") <= current <= Decimal("100")
    assert get_goal(repos, user_id, goal.id).current_value == Decimal("100.00")
    spent = sum(t.value for t in repos.ledger.list(user_id) if t.category == "Metas")
    assert spent == Decimal("100.00")


def test_completing_goals_drives_meta_master(repos, user_id, today):
    accept_challenge(repos, user_id, "3", today=today)
    _deposit(repos, user_id, today, "100")
    goals = [add_goal(repos, user_id, {"title": f"G{i}", "target_value": "10"}) for i in range(3)]

    for goal in goals[:2]:
        fund_goal(repos, user_id, goal.id, "10", today=today)
    assert repos.challenges.find_open(user_id, "3").status == "active"

    result = fund_goal(repos, user_id, goals[2].id, "10", today=today)

    assert result.cascade is not None
    assert [a.description for a in result.cascade.granted] == ["Completou 3 metas!"]
    assert repos.challenges.find_open(user_id, "3").status == "completed"
    assert repos.rewards.profile(user_id).points == 300


def test_add_goal_validation(repos, user_id):
    with pytest.raises(ValidationError):
        add_goal(repos, user_id, {"title": "X", "target_value": "0"})
    with pytest.raises(ValidationError):
        add_goal(repos, user_id, {"title": "X", "target_value": "10", "current_value": "11"})
    with pytest.raises(ValidationError):
        add_goal(repos, user_id, {"title": "  ", "target_value": "10"})


def test_update_goal_fields_but_not_current(repos, user_id):
    goal = add_goal(repos, user_id, {"title": "Casa", "target_value": "100", "current_value": "60"})

    updated = update_goal(repos, user_id, goal.id, {"title": "Casa nova", "target_date": "2026-01-31"})
    assert updated.title == "Casa nova"
    assert updated.target_date is not None and updated.target_date.isoformat() == "2026-01-31"
    assert updated.current_value == Decimal("60.00")

    with pytest.raises(ValidationError):
        update_goal(repos, user_id, goal.id, {"target_value": "50"})
    with pytest.raises(ValidationError):
        update_goal(repos, user_id, goal.id, {"current_value": "100"})
    with pytest.raises(NotFoundError):
        update_goal(repos, user_id, "missing", {"title": "x"})


def test_remove_goal_hides_it(repos, user_id):
    keep = add_goal(repos, user_id, {"title": "A", "target_value": "10"})
    drop = add_goal(repos, user_id, {"title": "B", "target_value": "10"})
    remove_goal(repos, user_id, drop.id)

    assert [g.id for g in list_goals(repos, user_id)] == [keep.id]
    with pytest.raises(NotFoundError):
        remove_goal(repos, user_id, drop.id)
    with pytest.raises(NotFoundError):
        get_goal(repos, user_id, drop.id)


def test_overall_goal_progress_is_mean_of_percentages():
    assert calculate_overall_goal_progress([]) == 0
    goals = [make_goal(100, 50), make_goal(100, 25)]
    assert calculate_overall_goal_progress(goals) == 38
    assert calculate_overall_goal_progress([make_goal(30, 10)]) == 33
    assert calculate_overall_goal_progress([make_goal(10, 10), make_goal(10, 0)]) == 50
