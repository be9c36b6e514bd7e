from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Optional

from .base import ErrorHandler, Path, PushIdGenerator, SnapshotHandler, SubscriptionHub, Unsubscribe, split_path


class InMemoryRecordStore:
    """Record store kept in a nested dict; used by the ``memory`` backend and in tests."""

    def __init__(self, initial: Optional[Dict[str, Any]] = None, *, push_ids: Optional[PushIdGenerator] = None):
        self._root: Dict[str, Any] = copy.deepcopy(initial) if initial else {}
        self._lock = threading.Lock()
        self._hub = SubscriptionHub()
        self._push_ids = push_ids or PushIdGenerator()

    @property
    def subscriber_count(self) -> int:
        return len(self._hub)

    async def read(self, path: str) -> Any:
        return await self._read(split_path(path))

    async def _read(self, parts: Path) -> Any:
        with self._lock:
            node: Any = self._root
            for p in parts:
                if not isinstance(node, dict) or p not in node:
                    return None
                node = node[p]
            if node == {}:
                return None
            return copy.deepcopy(node)

    async def write(self, path: str, value: Any) -> None:
        parts = split_path(path)
        with self._lock:
            self._set(parts, copy.deepcopy(value))
        await self._hub.publish(parts, self._read)

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        parts = split_path(path)
        with self._lock:
            for key, value in partial.items():
                self._set(parts + split_path(key), copy.deepcopy(value))
        await self._hub.publish(parts, self._read)

    async def remove(self, path: str) -> None:
        parts = split_path(path)
        with self._lock:
            self._set(parts, None)
        await self._hub.publish(parts, self._read)

    async def push(self, collection: str, value: Any) -> str:
        key = self._push_ids()
        parts = split_path(collection) + (key,)
        with self._lock:
            self._set(parts, copy.deepcopy(value))
        await self._hub.publish(parts, self._read)
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

    def _set(self, parts: Path, value: Any) -> None:
        if not parts:
            self._root = value if isinstance(value, dict) else {}
            return

        if value is None:
            chain = [self._root]
            node: Any = self._root
            for p in parts[:-1]:
                if not isinstance(node, dict) or p not in node:
                    return
                node = node[p]
                chain.append(node)
            if isinstance(node, dict):
                node.pop(parts[-1], None)
            # Prune parents left empty, like a tree store that has no empty nodes.
            for depth in range(len(parts) - 1, 0, -1):
                if chain[depth] == {}:
                    chain[depth - 1].pop(parts[depth - 1], None)
            return

        node = self._root
        for p in parts[:-1]:
            child = node.get(p)
            if not isinstance(child, dict):
                child = {}
                node[p] = child
            node = child
        node[parts[-1]] = value
