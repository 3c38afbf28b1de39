from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from finquest.challenges import accept_challenge
from finquest.dashboard import dashboard_summary, reconcile, weekly_challenge_card
from finquest.errors import BackendFailure
from finquest.goals import add_goal
from finquest.ledger import add_transaction
from finquest.models import TransactionInput
from finquest.persistence import ChallengeRepository, RewardsRepository

from tests.helpers.ledger import make_tx, snapshot


def _add(repos, user_id, today, value, type_="income", on=None):
    return add_transaction(
        repos,
        user_id,
        {"name": "x", "value": value, "type": type_, "category": "Outros", "date": on or today},
        today=today,
    )


def test_weekly_card_caps_at_fifty():
    card = weekly_challenge_card(snapshot([make_tx("80"), make_tx("10", "expense")]))
    assert card.title == "Poupador da Semana"
    assert card.current == Decimal("50.00")
    assert card.progress == 100

    partial = weekly_challenge_card(snapshot([make_tx("12.5")]))
    assert partial.current == Decimal("12.50")
    assert partial.progress == 25


def test_dashboard_summary(repos, user_id, today):
    _add(repos, user_id, today, "100")
    _add(repos, user_id, today, "70", on=today - timedelta(days=30))
    _add(repos, user_id, today, "30", "expense")
    add_goal(repos, user_id, {"title": "A", "target_value": "100", "current_value": "50"})
    add_goal(repos, user_id, {"title": "B", "target_value": "100"})
    accept_challenge(repos, user_id, "2", today=today)

    s = dashboard_summary(repos, user_id, today=today)

    assert s.balance == Decimal("140.00")
    assert s.transactions_count == 3
    assert s.goals_progress == 25
    assert s.points == 0
    assert s.active_challenges == 1
    assert s.weekly.current == Decimal("50.00")


def test_reconcile_rewrites_stale_cache(repos, user_id, today):
    _add(repos, user_id, today, "100")
    profile = repos.rewards.get_or_create_profile(user_id)
    profile.balance = Decimal("999.00")
    repos.session.flush()

    result = reconcile(repos, user_id, today=today)

    assert result.stale
    assert result.cached_balance == Decimal("999.00")
    assert result.balance == Decimal("100.00")
    assert repos.rewards.profile(user_id).balance == Decimal("100.00")
    assert not reconcile(repos, user_id, today=today).stale


def test_reconcile_catches_up_missed_challenge_progress(repos, user_id, today):
    accept_challenge(repos, user_id, "5", today=today)
    # Written without the cascade, as if the follow-up stages had failed
    repos.ledger.insert(
        user_id,
        TransactionInput(name="x", value=Decimal("5"), type="income", category="Outros", date=today),
    )

    result = reconcile(repos, user_id, today=today)

    assert [a.title for a in result.cascade.granted] == ["Primeiro Passo"]
    assert repos.rewards.profile(user_id).points == 50
    assert reconcile(repos, user_id, today=today).cascade.granted == ()


def test_stage_failure_names_the_stage(repos, user_id, today, monkeypatch):
    def boom(self, *args, **kwargs):
        raise OperationalError("UPDATE user_profiles", {}, Exception("disk I/O error"))

    monkeypatch.setattr(RewardsRepository, "set_cached_balance", boom)
    with pytest.raises(BackendFailure) as exc:
        _add(repos, user_id, today, "10")
    assert exc.value.stage == "recompute_balance"
    assert isinstance(exc.value.cause, OperationalError)


def test_challenge_stage_failure(repos, user_id, today, monkeypatch):
    accept_challenge(repos, user_id, "5", today=today)

    def boom(self, *args, **kwargs):
        raise OperationalError("UPDATE challenges", {}, Exception("locked"))

    monkeypatch.setattr(ChallengeRepository, "advance", boom)
    with pytest.raises(BackendFailure) as exc:
        _add(repos, user_id, today, "10")
    assert exc.value.stage == "reevaluate_challenges"
