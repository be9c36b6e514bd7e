from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import List

from .connection import CHARSET, COLLATION, DatabaseConnection

logger = logging.getLogger(__name__)

# Tables the MySQL backends read and write.
REQUIRED_TABLES = ("identities", "records")

_COMMENT = re.compile(r"(?m)^\s*--.*$")
_DB_PREAMBLE = re.compile(r"(?im)^\s*(CREATE\s+DATABASE|USE)\b.*?;\s*$")


def schema_statements(sql: str) -> List[str]:
    """Split a schema file into statements.

    ``CREATE DATABASE`` / ``USE`` lines are dropped so the configured database
    name wins. The schema holds only DDL, so splitting on ``;`` is enough.
    """
    sql = _DB_PREAMBLE.sub("", _COMMENT.sub("", sql))
    return [s.strip() for s in sql.split(";") if s.strip()]


def ensure_database_exists(conn_factory: DatabaseConnection) -> None:
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        cur.execute(
            f"CREATE DATABASE IF NOT EXISTS `{conn_factory.config.database}` CHARACTER SET {CHARSET} COLLATE {COLLATION}"
        )
        conn.commit()
    finally:
        conn.close()


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: str | Path) -> None:
    ensure_database_exists(conn_factory)
    statements = schema_statements(Path(schema_path).read_text(encoding="utf-8"))

    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        for stmt in statements:
            cur.execute(stmt)
        conn.commit()
    finally:
        conn.close()

    missing = missing_tables(conn_factory)
    if missing:
        logger.warning("schema applied from %s but tables are missing: %s", schema_path, ", ".join(missing))
    else:
        logger.info("schema applied from %s (%s statements)", schema_path, len(statements))


def list_tables(conn_factory: DatabaseConnection) -> List[str]:
    conn = conn_factory.connect()
    try:
        cur = conn.cursor()
        cur.execute("SHOW TABLES")
        return [row[0] for row in cur.fetchall()]
    finally:
        conn.close()


def missing_tables(conn_factory: DatabaseConnection) -> List[str]:
    present = {t.lower() for t in list_tables(conn_factory)}
    return [t for t in REQUIRED_TABLES if t not in present]
