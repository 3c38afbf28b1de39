"""DB helpers for tests: bootstrap a temporary SQLite database from the ORM."""

from __future__ import annotations

import os
from datetime import UTC, datetime
from pathlib import Path

from db import Base
from db.client import get_engine, session_scope
from sqlalchemy import event
from sqlalchemy import text as sql_text


def _sqlite_now() -> str:
    return datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S.%f")


def bootstrap_sqlite_db(db_file: Path, *, set_default_env: bool = False) -> str:
    """Create a SQLite database file, initialize schema, and return the URL.

    Using a file-backed SQLite DB ensures multiple SQLAlchemy connections share
    the same state (in-memory DBs are per-connection by default).
    """

    url = f"sqlite+pysqlite:///{db_file}"
    db_file.parent.mkdir(parents=True, exist_ok=True)
    engine = get_engine(database_url=url)

    # Provide a `now()` shim so server_default=now() works like on Postgres
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _):  # pragma: no cover - tiny bridge
        dbapi_conn.create_function("now", 0, _sqlite_now)

    Base.metadata.create_all(bind=engine)
    _assert_schema_in_sync(url)

    if set_default_env:
        os.environ.setdefault("DATABASE_URL", url)
    return url


def _assert_schema_in_sync(database_url: str) -> None:
    """Every ORM table exists in SQLite with exactly the mapped columns."""

    with session_scope(database_url=database_url) as session:
        for table in Base.metadata.sorted_tables:
            rows = session.execute(sql_text(f"PRAGMA table_info('{table.name}')")).fetchall()
            got = {row[1] for row in rows}  # (cid, name, type, notnull, dflt_value, pk)
            expected = {c.name for c in table.columns}
            missing = expected - got
            extra = got - expected
            assert not missing and not extra, (
                f"{table.name} schema drift: missing={missing or '∅'}, extra={extra or '∅'}"
            )
