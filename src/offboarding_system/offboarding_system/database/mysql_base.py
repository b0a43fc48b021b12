from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

import mysql.connector

from ..core.constants import MYSQL_DEADLOCK, MYSQL_LOCK_WAIT_TIMEOUT
from ..core.exceptions import TransientStorageError
from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

TRANSIENT_ERRNOS = frozenset({MYSQL_DEADLOCK, MYSQL_LOCK_WAIT_TIMEOUT})


@contextmanager
def transaction(conn_factory: DatabaseConnection, *, dictionary: bool = True) -> Iterator[tuple[Any, Any]]:
    """One connection, one transaction: commit on success, rollback on any error.

    Lock conflicts reported by MySQL are re-raised as TransientStorageError.
    """
    conn = conn_factory.connect()
    try:
        conn.start_transaction(isolation_level="REPEATABLE READ")
        cur = conn.cursor(dictionary=dictionary)
        try:
            yield conn, cur
            conn.commit()
        finally:
            cur.close()
    except mysql.connector.Error as exc:
        conn.rollback()
        if getattr(exc, "errno", None) in TRANSIENT_ERRNOS:
            logger.warning("Transaction aborted by MySQL (errno=%s), safe to retry", exc.errno)
            raise TransientStorageError(str(exc)) from exc
        raise
    except BaseException:
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


def placeholders(values: Sequence[Any]) -> str:
    """Return '%s,%s,...' for an IN (...) clause."""
    return ",".join(["%s"] * len(values))
