"""CLI for the ``finquest`` package.

A thin Typer interface over the service modules. Environment variables
(``DATABASE_URL``, ``FINQUEST_USER_ID``, ``FINQUEST_LOG_LEVEL``,
``FINQUEST_DB_TIMEOUT``) are loaded from a local ``.env`` with
``python-dotenv`` before any command runs. Every command opens one session
scope, so a failure anywhere rolls the whole operation back.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Annotated, Any, TypeVar

import typer
from dotenv import load_dotenv

from .errors import FinquestError
from .logging_setup import configure_logging
from .money import format_amount

T = TypeVar("T")


@dataclass(slots=True)
class _CliState:
    user_id: str | None
    database_url: str | None


def _fail(message: str) -> typer.Exit:
    print(f"Error: {message}", file=sys.stderr)
    return typer.Exit(1)


def _run(ctx: typer.Context, op: Callable[[Any, str], T]) -> T:
    """Run ``op(repos, user_id)`` inside a session scope, reporting errors."""

    # Deferred imports keep ``--help`` fast and free of DB side effects
    from db.client import session_scope

    from .persistence import Repositories

    state: _CliState = ctx.obj
    if not state.user_id:
        raise _fail("no user id; pass --user-id or set FINQUEST_USER_ID")
    try:
        with session_scope(database_url=state.database_url) as session:
            return op(Repositories.from_session(session), state.user_id)
    except FinquestError as e:
        raise _fail(str(e)) from e
    except RuntimeError as e:
        # db.client raises RuntimeError when DATABASE_URL is missing
        raise _fail(str(e)) from e


def _print_cascade(result: Any) -> None:
    print(f"Balance: {format_amount(result.balance)}")
    for item in result.progress:
        ch = item.challenge
        print(f"Challenge {ch.title}: {format_amount(ch.current)}/{format_amount(ch.target)}")
    for ach in result.granted:
        print(f"Achievement unlocked: {ach.title} ({ach.description})")


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Track income and expenses, fund savings goals and complete challenges.",
)


@app.callback()
def _root(
    ctx: typer.Context,
    *,
    user_id: str | None = typer.Option(
        None, "--user-id", help="User to act on (falls back to FINQUEST_USER_ID)."
    ),
    database_url: str | None = typer.Option(
        None, help="Override DATABASE_URL (falls back to env var)."
    ),
) -> None:
    """Root command: load ``.env`` and configure logging once."""

    # override=False keeps already-set environment variables
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()
    # Resolved after load_dotenv; FINQUEST_USER_ID may live in .env
    ctx.obj = _CliState(
        user_id=user_id or os.getenv("FINQUEST_USER_ID"), database_url=database_url
    )


# ---- Ledger ------------------------------------------------------------------


@app.command("add-transaction")
def add_transaction_cmd(
    ctx: typer.Context,
    value: Annotated[str, typer.Option(help="Amount, e.g. 100.00")],
    type_: Annotated[str, typer.Option("--type", help="income or expense")],
    category: Annotated[str, typer.Option(help="Category label")],
    name: Annotated[str, typer.Option(help="Description")] = "",
    on: Annotated[str | None, typer.Option("--date", help="YYYY-MM-DD (default today)")] = None,
) -> None:
    from .ledger import add_transaction

    payload = {
        "name": name,
        "value": value,
        "type": type_,
        "category": category,
        "date": on or date.today(),
    }
    result = _run(ctx, lambda repos, uid: add_transaction(repos, uid, payload))
    assert result.transaction is not None
    print(f"Added {result.transaction.id}")
    _print_cascade(result)


@app.command("update-transaction")
def update_transaction_cmd(
    ctx: typer.Context,
    transaction_id: str,
    value: Annotated[str | None, typer.Option()] = None,
    type_: Annotated[str | None, typer.Option("--type")] = None,
    category: Annotated[str | None, typer.Option()] = None,
    name: Annotated[str | None, typer.Option()] = None,
    on: Annotated[str | None, typer.Option("--date")] = None,
) -> None:
    from .ledger import update_transaction

    patch = {
        k: v
        for k, v in {
            "name": name,
            "value": value,
            "type": type_,
            "category": category,
            "date": on,
        }.items()
        if v is not None
    }
    result = _run(
        ctx, lambda repos, uid: update_transaction(repos, uid, transaction_id, patch)
    )
    print(f"Updated {transaction_id}")
    _print_cascade(result)


@app.command("remove-transaction")
def remove_transaction_cmd(ctx: typer.Context, transaction_id: str) -> None:
    from .ledger import remove_transaction

    result = _run(ctx, lambda repos, uid: remove_transaction(repos, uid, transaction_id))
    print(f"Removed {transaction_id}")
    _print_cascade(result)


@app.command("list-transactions")
def list_transactions_cmd(
    ctx: typer.Context,
    start: Annotated[str | None, typer.Option(help="First date (inclusive)")] = None,
    end: Annotated[str | None, typer.Option(help="Last date (inclusive)")] = None,
    type_: Annotated[str, typer.Option("--type", help="all, income or expense")] = "all",
    category: Annotated[str, typer.Option(help="Category or 'all'")] = "all",
) -> None:
    from .ledger import list_transactions

    rows = _run(
        ctx,
        lambda repos, uid: list_transactions(
            repos, uid, start=start, end=end, type_filter=type_, category_filter=category
        ),
    )
    for t in rows:
        print(
            f"{t.id}\t{t.date.isoformat()}\t{t.type}\t{format_amount(t.value)}"
            f"\t{t.category}\t{t.name}"
        )


@app.command("balance")
def balance_cmd(ctx: typer.Context) -> None:
    from .balance import calculate_balance

    balance = _run(ctx, lambda repos, uid: calculate_balance(repos.ledger.list(uid)))
    print(format_amount(balance))


# ---- Goals -------------------------------------------------------------------


@app.command("add-goal")
def add_goal_cmd(
    ctx: typer.Context,
    title: Annotated[str, typer.Option()],
    target: Annotated[str, typer.Option(help="Target amount")],
    current: Annotated[str, typer.Option(help="Amount already saved")] = "0",
    category: Annotated[str | None, typer.Option()] = None,
    target_date: Annotated[str | None, typer.Option(help="YYYY-MM-DD")] = None,
) -> None:
    from .goals import add_goal

    payload = {
        "title": title,
        "target_value": target,
        "current_value": current,
        "category": category,
        "target_date": target_date,
    }
    goal = _run(ctx, lambda repos, uid: add_goal(repos, uid, payload))
    print(f"Added goal {goal.id}")


@app.command("remove-goal")
def remove_goal_cmd(ctx: typer.Context, goal_id: str) -> None:
    from .goals import remove_goal

    _run(ctx, lambda repos, uid: remove_goal(repos, uid, goal_id))
    print(f"Removed goal {goal_id}")


@app.command("fund-goal")
def fund_goal_cmd(ctx: typer.Context, goal_id: str, amount: str) -> None:
    from .goals import fund_goal

    result = _run(ctx, lambda repos, uid: fund_goal(repos, uid, goal_id, amount))
    if not result.success:
        raise _fail(result.message)
    print(result.message)
    if result.cascade is not None:
        _print_cascade(result.cascade)


@app.command("list-goals")
def list_goals_cmd(ctx: typer.Context) -> None:
    from .goals import calculate_overall_goal_progress, goal_progress_percent, list_goals
    from .money import round_percent

    goals = _run(ctx, lambda repos, uid: list_goals(repos, uid))
    for g in goals:
        pct = round_percent(goal_progress_percent(g))
        print(
            f"{g.id}\t{g.title}\t{format_amount(g.current_value)}/"
            f"{format_amount(g.target_value)}\t{pct}%"
        )
    print(f"Overall: {calculate_overall_goal_progress(goals)}%")


# ---- Challenges --------------------------------------------------------------


@app.command("accept-challenge")
def accept_challenge_cmd(
    ctx: typer.Context,
    challenge_id: str,
    seed_progress: Annotated[
        bool, typer.Option(help="Start from the progress already in the ledger.")
    ] = False,
) -> None:
    from .challenges import accept_challenge, initial_progress

    def op(repos, uid):
        overrides = None
        if seed_progress:
            snapshot = repos.load_snapshot(uid, date.today())
            overrides = {"current": initial_progress(challenge_id, snapshot)}
        return accept_challenge(repos, uid, challenge_id, overrides)

    result = _run(ctx, op)
    ch = result.challenge
    verb = "Accepted" if result.created else "Already accepted"
    print(f"{verb} {ch.title} ({ch.id}) [{ch.status}]")
    for ach in result.granted:
        print(f"Achievement unlocked: {ach.title} ({ach.description})")


@app.command("abandon-challenge")
def abandon_challenge_cmd(ctx: typer.Context, instance_id: str) -> None:
    from .challenges import abandon_challenge

    ch = _run(ctx, lambda repos, uid: abandon_challenge(repos, uid, instance_id))
    print(f"Abandoned {ch.title} ({ch.id})")


@app.command("list-challenges")
def list_challenges_cmd(
    ctx: typer.Context,
    available: Annotated[bool, typer.Option(help="Show catalog entries you can accept.")] = False,
    include_abandoned: Annotated[bool, typer.Option("--all", help="Include abandoned.")] = False,
) -> None:
    from .challenges import available_challenges, list_challenges
    from .persistence import OPEN_STATUSES

    if available:
        defs = _run(ctx, lambda repos, uid: available_challenges(repos, uid))
        for d in defs:
            print(f"{d.challenge_id}\t{d.title}\t{d.description}\t+{d.reward}")
        return
    statuses = None if include_abandoned else OPEN_STATUSES
    rows = _run(ctx, lambda repos, uid: list_challenges(repos, uid, statuses))
    for c in rows:
        print(
            f"{c.id}\t{c.challenge_id}\t{c.title}\t{c.status}\t"
            f"{format_amount(c.current)}/{format_amount(c.target)}"
        )


# ---- Rewards and overview ----------------------------------------------------


@app.command("top-up")
def top_up_cmd(ctx: typer.Context, amount: str) -> None:
    from .rewards import top_up_balance

    result = _run(ctx, lambda repos, uid: top_up_balance(repos, uid, amount))
    print(result.message)
    _print_cascade(result.cascade)


@app.command("dashboard")
def dashboard_cmd(ctx: typer.Context) -> None:
    from .dashboard import dashboard_summary

    s = _run(ctx, lambda repos, uid: dashboard_summary(repos, uid))
    print(f"Balance: {format_amount(s.balance)}")
    print(f"Points: {s.points}")
    print(f"Transactions: {s.transactions_count}")
    print(f"Goals: {s.goals_progress}%")
    print(f"Active challenges: {s.active_challenges}")
    w = s.weekly
    print(f"{w.title}: {format_amount(w.current)}/{format_amount(w.target)} ({w.progress}%)")


@app.command("reconcile")
def reconcile_cmd(ctx: typer.Context) -> None:
    from .dashboard import reconcile

    r = _run(ctx, lambda repos, uid: reconcile(repos, uid))
    state = "stale, rewritten" if r.stale else "up to date"
    print(f"Balance: {format_amount(r.balance)} (cache {state})")
    for ach in r.cascade.granted:
        print(f"Achievement unlocked: {ach.title} ({ach.description})")


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m finquest.cli`
    app()
