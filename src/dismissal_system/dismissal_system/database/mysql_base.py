from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from mysql.connector import errorcode
from mysql.connector.errors import IntegrityError

from .connection import DatabaseConnection


@contextmanager
def db_cursor(conn_factory: DatabaseConnection, *, dictionary: bool = True):
    """One connection, one transaction.

    Commits when the block exits normally, rolls back on any exception, so every
    statement issued inside the block lands as a unit.
    """
    conn = conn_factory.connect()
    try:
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


def fetchone(cur) -> Optional[Dict[str, Any]]:
    row = cur.fetchone()
    return row if row else None


def fetchall(cur) -> List[Dict[str, Any]]:
    rows = cur.fetchall()
    return list(rows or [])


def is_duplicate_key(exc: IntegrityError, *, index_name: str | None = None) -> bool:
    """True when ``exc`` is a unique-key violation (optionally on a given index)."""
    if getattr(exc, "errno", None) != errorcode.ER_DUP_ENTRY:
        return False
    if index_name is None:
        return True
    return index_name in str(getattr(exc, "msg", "") or exc)


def in_clause(values) -> str:
    """Placeholder list for ``IN (...)``; callers pass the values separately."""
    return ", ".join(["%s"] * len(values))
