"""Pytest configuration for test isolation.

Each test gets its own file-backed SQLite database under ``tmp_path``. The
shared engine in ``db.client`` refuses to rebind to a different URL, so it
is reset before and after every test that touches the database.

Environment variables that the CLI and the engine read are cleared so a
developer's ``.env`` or shell cannot leak into the tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import date
from pathlib import Path

import pytest
from db.client import get_session, reset_engine
from sqlalchemy.orm import Session

from finquest.persistence import Repositories
from tests.helpers.db import bootstrap_sqlite_db

USER_ID = "00000000-0000-4000-8000-000000000001"
TODAY = date(2025, 6, 15)


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DATABASE_URL",
        "FINQUEST_USER_ID",
        "FINQUEST_LOG_LEVEL",
        "FINQUEST_LOG_FORMAT",
        "FINQUEST_DB_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_url(tmp_path: Path) -> Iterator[str]:
    reset_engine()
    url = bootstrap_sqlite_db(tmp_path / "finquest.sqlite3")
    yield url
    reset_engine()


@pytest.fixture
def session(db_url: str) -> Iterator[Session]:
    s = get_session(database_url=db_url)
    try:
        yield s
    finally:
        s.rollback()
        s.close()


@pytest.fixture
def repos(session: Session) -> Repositories:
    return Repositories.from_session(session)


@pytest.fixture
def user_id() -> str:
    return USER_ID


@pytest.fixture
def today() -> date:
    return TODAY
