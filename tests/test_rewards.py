from datetime import date
from decimal import Decimal

import pytest

from finquest.challenges import accept_challenge
from finquest.errors import ValidationError
from finquest.rewards import get_profile, grant_points, record_achievement, top_up_balance


def test_profile_is_created_on_first_use(repos, user_id):
    profile = get_profile(repos, user_id)
    assert profile.points == 0
    assert profile.balance == Decimal("0.00")
    assert profile.achievements == ()


def test_grant_points_accumulates(repos, user_id):
    assert grant_points(repos, user_id, 10) == 10
    assert grant_points(repos, user_id, 0) == 10
    assert grant_points(repos, user_id, 5) == 15


@pytest.mark.parametrize("amount", [-1, 1.5, True, "3"])
def test_grant_points_rejects_bad_amounts(repos, user_id, amount):
    with pytest.raises(ValidationError):
        grant_points(repos, user_id, amount)


def test_achievements_newest_first(repos, user_id):
    record_achievement(repos, user_id, "Antiga", "primeira", "star", today=date(2025, 1, 1))
    record_achievement(repos, user_id, "Nova", "segunda", "zap", today=date(2025, 3, 1))
    with pytest.raises(ValidationError):
        record_achievement(repos, user_id, " ")

    titles = [a.title for a in get_profile(repos, user_id).achievements]
    assert titles == ["Nova", "Antiga"]


def test_top_up_adds_income_and_floor_points(repos, user_id, today):
    result = top_up_balance(repos, user_id, "25.75", today=today)

    assert result.points_added == 25
    assert result.cascade.balance == Decimal("25.75")
    assert result.message == "Saldo de R$ 25.75 adicionado com sucesso! +25 pontos!"
    [tx] = repos.ledger.list(user_id)
    assert (tx.name, tx.type, tx.category, tx.date) == ("Saldo Adicionado", "income", "Outros", today)
    assert get_profile(repos, user_id).points == 25


def test_top_up_runs_challenge_cascade(repos, user_id, today):
    accept_challenge(repos, user_id, "6", today=today)
    result = top_up_balance(repos, user_id, "150", today=today)

    assert [a.title for a in result.cascade.granted] == ["Economia Bronze"]
    # 150 for the top-up plus the 200 challenge reward
    assert get_profile(repos, user_id).points == 350


@pytest.mark.parametrize("amount", ["0", "-10", "dez"])
def test_top_up_rejects_bad_amounts(repos, user_id, today, amount):
    with pytest.raises(ValidationError):
        top_up_balance(repos, user_id, amount, today=today)
