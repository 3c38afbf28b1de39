from datetime import date
from decimal import Decimal

import pytest

from finquest.errors import NotFoundError, ValidationError
from finquest.ledger import (
    add_transaction,
    get_by_period,
    get_categories,
    get_filtered_transactions,
    list_transactions,
    remove_transaction,
    update_transaction,
)

from tests.helpers.ledger import make_tx


def _income(value, on, category="Salário"):
    return {"name": "entrada", "value": value, "type": "income", "category": category, "date": on}


def _expense(value, on, category="Alimentação"):
    return {"name": "saida", "value": value, "type": "expense", "category": category, "date": on}


# ---- Persisted ledger --------------------------------------------------------


def test_add_income_then_expense_updates_balance(repos, user_id, today):
    add_transaction(repos, user_id, _income("100.00", today), today=today)
    result = add_transaction(repos, user_id, _expense("30.00", today), today=today)

    assert result.balance == Decimal("70.00")
    assert repos.rewards.profile(user_id).balance == Decimal("70.00")


def test_add_transaction_truncates_timestamp_to_date(repos, user_id, today):
    payload = _income("10", "2025-06-14T23:59:00Z")
    result = add_transaction(repos, user_id, payload, today=today)
    assert result.transaction is not None
    assert result.transaction.date == date(2025, 6, 14)
    assert result.transaction.value == Decimal("10.00")


@pytest.mark.parametrize(
    "patch",
    [
        {"value": "0"},
        {"value": "-5"},
        {"type": "transfer"},
        {"category": "   "},
        {"date": "not-a-date"},
    ],
)
def test_add_transaction_rejects_invalid_payload(repos, user_id, today, patch):
    payload = {**_income("10", today), **patch}
    with pytest.raises(ValidationError):
        add_transaction(repos, user_id, payload, today=today)
    assert repos.ledger.list(user_id) == ()


def test_update_transaction_recomputes_balance(repos, user_id, today):
    tx = add_transaction(repos, user_id, _income("100", today), today=today).transaction
    assert tx is not None

    result = update_transaction(
        repos, user_id, tx.id, {"value": "60", "category": "Freelance"}, today=today
    )

    assert result.balance == Decimal("60.00")
    stored = repos.ledger.get(user_id, tx.id)
    assert stored.value == Decimal("60.00")
    assert stored.category == "Freelance"
    assert stored.type == "income"


@pytest.mark.parametrize(
    "patch",
    [
        {"value": "0"},
        {"name": None},
        {"type": None},
        {"value": None},
        {"category": None},
        {"date": None},
        {"type": "transfer"},
    ],
)
def test_update_transaction_revalidates(repos, user_id, today, patch):
    tx = add_transaction(repos, user_id, _income("100", today), today=today).transaction
    assert tx is not None
    with pytest.raises(ValidationError):
        update_transaction(repos, user_id, tx.id, patch, today=today)

    [kept] = repos.ledger.list(user_id)
    assert (kept.name, kept.type, kept.value) == ("entrada", "income", Decimal("100.00"))


def test_remove_is_soft_and_excluded_from_balance(repos, user_id, today):
    add_transaction(repos, user_id, _income("100", today), today=today)
    spent = add_transaction(repos, user_id, _expense("40", today), today=today).transaction
    assert spent is not None

    result = remove_transaction(repos, user_id, spent.id, today=today)

    assert result.balance == Decimal("100.00")
    assert spent.id not in {t.id for t in repos.ledger.list(user_id)}
    history = repos.ledger.list(user_id, include_deleted=True)
    removed = next(t for t in history if t.id == spent.id)
    assert removed.deleted_at is not None


def test_remove_twice_is_not_found(repos, user_id, today):
    tx = add_transaction(repos, user_id, _income("5", today), today=today).transaction
    assert tx is not None
    remove_transaction(repos, user_id, tx.id, today=today)
    with pytest.raises(NotFoundError):
        remove_transaction(repos, user_id, tx.id, today=today)
    with pytest.raises(NotFoundError):
        update_transaction(repos, user_id, tx.id, {"value": "1"}, today=today)


def test_other_users_entries_are_invisible(repos, user_id, today):
    tx = add_transaction(repos, "someone-else", _income("5", today), today=today).transaction
    assert tx is not None
    with pytest.raises(NotFoundError):
        remove_transaction(repos, user_id, tx.id, today=today)
    assert list_transactions(repos, user_id) == []


def test_list_transactions_filters_by_period_and_type(repos, user_id, today):
    add_transaction(repos, user_id, _income("100", date(2025, 6, 1)), today=today)
    add_transaction(repos, user_id, _expense("20", date(2025, 6, 10)), today=today)
    add_transaction(repos, user_id, _expense("5", date(2025, 5, 31)), today=today)

    june = list_transactions(repos, user_id, start="2025-06-01", end="2025-06-30")
    assert [t.value for t in june] == [Decimal("20.00"), Decimal("100.00")]

    expenses = list_transactions(repos, user_id, type_filter="expense")
    assert [t.date for t in expenses] == [date(2025, 6, 10), date(2025, 5, 31)]


# ---- Pure queries ------------------------------------------------------------


def test_get_by_period_is_inclusive_and_newest_first():
    a = make_tx("1", on=date(2025, 6, 1), created_offset=10)
    b = make_tx("2", on=date(2025, 6, 30), created_offset=20)
    c = make_tx("3", on=date(2025, 6, 30), created_offset=30)
    d = make_tx("4", on=date(2025, 7, 1))
    out = get_by_period([a, b, c, d], date(2025, 6, 1), date(2025, 6, 30))
    assert [t.id for t in out] == [c.id, b.id, a.id]


def test_get_by_period_accepts_iso_strings_and_open_bounds():
    a = make_tx("1", on=date(2025, 6, 1))
    b = make_tx("2", on=date(2025, 6, 20))
    assert [t.id for t in get_by_period([a, b], start="2025-06-10T08:00:00")] == [b.id]
    assert [t.id for t in get_by_period([a, b], end="2025-06-10")] == [a.id]
    assert len(get_by_period([a, b])) == 2


def test_get_by_period_skips_deleted_and_applies_filters():
    keep = make_tx("10", "expense", category="Lazer")
    gone = make_tx("10", "expense", category="Lazer", deleted=True)
    other = make_tx("10", "income", category="Salário")
    assert get_by_period([keep, gone, other], type_filter="expense") == [keep]
    assert get_by_period([keep, gone, other], category_filter="Salário") == [other]


def test_get_by_period_rejects_unknown_type_filter():
    with pytest.raises(ValidationError):
        get_by_period([], type_filter="transfers")


def test_get_filtered_transactions_without_period():
    x = make_tx("1", "income", category="A", on=date(2024, 1, 1))
    y = make_tx("2", "expense", category="B", on=date(2025, 1, 1))
    assert get_filtered_transactions([x, y]) == [y, x]
    assert get_filtered_transactions([x, y], "income", "all") == [x]


def test_get_categories_sorted_unique_live_only():
    ledger = [
        make_tx("1", category="Transporte"),
        make_tx("1", category="Alimentação"),
        make_tx("1", category="Transporte"),
        make_tx("1", category="Lazer", deleted=True),
    ]
    assert get_categories(ledger) == ["Alimentação", "Transporte"]
