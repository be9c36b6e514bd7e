from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Optional

from ..core.exceptions import ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, dump_json, fetchall, fetchone, load_json
from .base import ErrorHandler, Path, PushIdGenerator, SnapshotHandler, SubscriptionHub, Unsubscribe, split_path

logger = logging.getLogger(__name__)


def _get_in(body: Any, parts: Path) -> Any:
    node = body
    for p in parts:
        if not isinstance(node, dict) or p not in node:
            return None
        node = node[p]
    return node


def _set_in(body: Dict[str, Any], parts: Path, value: Any) -> None:
    node = body
    for p in parts[:-1]:
        child = node.get(p)
        if not isinstance(child, dict):
            child = {}
            node[p] = child
        node = child
    if value is None:
        node.pop(parts[-1], None)
    else:
        node[parts[-1]] = value


class MySQLRecordStore:
    """Record store over the ``records`` table.

    One row per ``/{collection}/{record_key}``; deeper paths address fields inside
    the JSON body and are applied as read-modify-write of that row. Change
    notifications only cover writes made through this process.
    """

    def __init__(self, conn_factory: DatabaseConnection, *, push_ids: Optional[PushIdGenerator] = None):
        self._conn_factory = conn_factory
        self._hub = SubscriptionHub()
        self._push_ids = push_ids or PushIdGenerator()

    # -------- async surface --------
    async def read(self, path: str) -> Any:
        return await self._read(split_path(path))

    async def _read(self, parts: Path) -> Any:
        return await asyncio.to_thread(self._read_sync, parts)

    async def write(self, path: str, value: Any) -> None:
        parts = split_path(path)
        await asyncio.to_thread(self._write_sync, parts, value)
        await self._hub.publish(parts, self._read)

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        parts = split_path(path)
        await asyncio.to_thread(self._update_sync, parts, partial)
        await self._hub.publish(parts, self._read)

    async def remove(self, path: str) -> None:
        parts = split_path(path)
        await asyncio.to_thread(self._write_sync, parts, None)
        await self._hub.publish(parts, self._read)

    async def push(self, collection: str, value: Any) -> str:
        parts = split_path(collection)
        if len(parts) != 1:
            raise ValidationError(f"push() expects a collection path, got {collection!r}")
        key = self._push_ids()
        await asyncio.to_thread(self._write_sync, parts + (key,), value)
        await self._hub.publish(parts + (key,), self._read)
        return key

    async def subscribe(
        self,
        path: str,
        handler: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        parts = split_path(path)
        unsubscribe = self._hub.add(parts, handler, on_error)
        await self._hub.deliver_initial(parts, handler, self._read, on_error)
        return unsubscribe

    # -------- blocking helpers (run in worker threads) --------
    def _read_sync(self, parts: Path) -> Any:
        with db_cursor(self._conn_factory) as (_, cur):
            if not parts:
                cur.execute("SELECT collection, record_key, body FROM records ORDER BY collection, record_key")
                tree: Dict[str, Dict[str, Any]] = {}
                for r in fetchall(cur):
                    tree.setdefault(r["collection"], {})[r["record_key"]] = load_json(r["body"])
                return tree or None

            if len(parts) == 1:
                cur.execute(
                    "SELECT record_key, body FROM records WHERE collection=%s ORDER BY record_key",
                    (parts[0],),
                )
                rows = fetchall(cur)
                return {r["record_key"]: load_json(r["body"]) for r in rows} or None

            cur.execute(
                "SELECT body FROM records WHERE collection=%s AND record_key=%s",
                (parts[0], parts[1]),
            )
            r = fetchone(cur)
            if not r:
                return None
            return _get_in(load_json(r["body"]), parts[2:])

    def _write_sync(self, parts: Path, value: Any) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            if not parts:
                cur.execute("DELETE FROM records")
                for collection, records in (value or {}).items():
                    for key, body in (records or {}).items():
                        self._upsert(cur, collection, key, body)
                return

            if len(parts) == 1:
                cur.execute("DELETE FROM records WHERE collection=%s", (parts[0],))
                for key, body in (value or {}).items():
                    self._upsert(cur, parts[0], key, body)
                return

            if len(parts) == 2:
                if value is None:
                    cur.execute(
                        "DELETE FROM records WHERE collection=%s AND record_key=%s",
                        (parts[0], parts[1]),
                    )
                else:
                    self._upsert(cur, parts[0], parts[1], value)
                return

            self._modify_body(cur, parts[0], parts[1], lambda body: _set_in(body, parts[2:], value))

    def _update_sync(self, parts: Path, partial: Dict[str, Any]) -> None:
        if len(parts) < 2:
            # Merge at collection/root level overwrites each named child.
            for key, value in partial.items():
                self._write_sync(parts + split_path(key), value)
            return

        def merge(body: Dict[str, Any]) -> None:
            for key, value in partial.items():
                _set_in(body, parts[2:] + split_path(key), value)

        with db_cursor(self._conn_factory) as (_, cur):
            self._modify_body(cur, parts[0], parts[1], merge)

    def _modify_body(self, cur, collection: str, key: str, mutate) -> None:
        cur.execute(
            "SELECT body FROM records WHERE collection=%s AND record_key=%s FOR UPDATE",
            (collection, key),
        )
        r = fetchone(cur)
        body = load_json(r["body"]) if r else {}
        if not isinstance(body, dict):
            body = {}
        mutate(body)
        if body:
            self._upsert(cur, collection, key, body)
        elif r:
            cur.execute("DELETE FROM records WHERE collection=%s AND record_key=%s", (collection, key))

    @staticmethod
    def _upsert(cur, collection: str, key: str, body: Any) -> None:
        cur.execute(
            """
            INSERT INTO records(collection, record_key, body)
            VALUES(%s,%s,%s)
            ON DUPLICATE KEY UPDATE body=VALUES(body)
            """,
            (collection, key, dump_json(body)),
        )
