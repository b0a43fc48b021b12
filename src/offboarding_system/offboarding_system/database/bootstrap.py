"""Apply database/schema.sql and database/seed.sql to the configured MySQL server."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Iterator, Optional

from .connection import DatabaseConnection, DBConfig

logger = logging.getLogger(__name__)

_CREATE_DB_RE = re.compile(r"(?im)^\s*CREATE\s+DATABASE\b.*?;\s*$")
_USE_RE = re.compile(r"(?im)^\s*USE\b.*?;\s*$")


def _connect(config: DBConfig, *, with_database: bool = True):
    return DatabaseConnection(config).connect(with_database=with_database)


def _without_database_selection(sql: str) -> str:
    # The target database comes from DB_CONFIG, not from the script.
    return _USE_RE.sub("", _CREATE_DB_RE.sub("", sql))


def split_sql_statements(sql: str) -> Iterator[str]:
    """Split a script on ';' outside of quoted strings."""
    buf: list[str] = []
    quote: Optional[str] = None
    escaped = False

    for ch in sql:
        buf.append(ch)
        if escaped:
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = None
        elif ch in ("'", '"'):
            quote = ch
        elif ch == ";":
            stmt = "".join(buf[:-1]).strip()
            buf.clear()
            if stmt:
                yield stmt

    tail = "".join(buf).strip()
    if tail:
        yield tail


def _run_script(config: DBConfig, path: Path) -> int:
    sql = _without_database_selection(Path(path).read_text(encoding="utf-8"))
    conn = _connect(config)
    count = 0
    try:
        cur = conn.cursor()
        for stmt in split_sql_statements(sql):
            cur.execute(stmt)
            count += 1
        conn.commit()
    finally:
        conn.close()
    return count


def ensure_database_exists(db_config: dict) -> None:
    config = DBConfig.from_dict(db_config)
    conn = _connect(config, with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{config.database}` CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(db_config: dict, *, schema_path: str | Path) -> None:
    ensure_database_exists(db_config)
    count = _run_script(DBConfig.from_dict(db_config), Path(schema_path))
    logger.info("Applied %s (%s statements)", schema_path, count)


def apply_seed_sql(db_config: dict, *, seed_path: str | Path) -> None:
    count = _run_script(DBConfig.from_dict(db_config), Path(seed_path))
    logger.info("Applied %s (%s statements)", seed_path, count)


def list_tables(db_config: dict) -> list[str]:
    conn = _connect(DBConfig.from_dict(db_config))
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()
