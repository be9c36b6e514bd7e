"""Record store port and the pieces shared by its implementations.

The store is addressed by slash-separated paths (``/perizinan/<key>/status``).
Collections are plain mappings of key -> record; keys created by ``push`` sort
in creation order within one process, but callers must not read "most recent"
out of that order.
"""
from __future__ import annotations

import copy
import itertools
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from ..core.exceptions import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

Path = Tuple[str, ...]
SnapshotHandler = Callable[[Any], None]
ErrorHandler = Callable[[StoreUnavailable], None]
Unsubscribe = Callable[[], None]


class RecordStore(Protocol):
    async def read(self, path: str) -> Any:
        raise NotImplementedError

    async def write(self, path: str, value: Any) -> None:
        """Overwrite the value at ``path`` (no merge)."""

        raise NotImplementedError

    async def update(self, path: str, partial: Dict[str, Any]) -> None:
        """Merge ``partial`` into the mapping at ``path`` field by field."""

        raise NotImplementedError

    async def remove(self, path: str) -> None:
        """Delete ``path``; deleting a missing path is not an error."""

        raise NotImplementedError

    async def push(self, collection: str, value: Any) -> str:
        """Store ``value`` under a new key of ``collection`` and return the key."""

        raise NotImplementedError

    async def subscribe(
        self,
        path: str,
        handler: SnapshotHandler,
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        """Deliver the current value now and again after every change under ``path``."""

        raise NotImplementedError


def split_path(path: str) -> Path:
    parts = tuple(p for p in (path or "").strip().strip("/").split("/") if p)
    for p in parts:
        if p in {".", ".."}:
            raise ValidationError(f"Invalid store path: {path!r}")
    return parts


def join_path(*parts: str) -> str:
    return "/" + "/".join(p.strip("/") for p in parts if p)


def sorted_items(snapshot: Any) -> List[Tuple[str, Any]]:
    """Turn a collection snapshot into (key, value) pairs in key order."""

    if not isinstance(snapshot, dict):
        return []
    return [(k, snapshot[k]) for k in sorted(snapshot)]


class PushIdGenerator:
    """Time-prefixed keys: millisecond clock + per-millisecond sequence + random tail."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = 0
        self._seq = 0

    def __call__(self) -> str:
        ms = int(self._clock() * 1000)
        with self._lock:
            if ms <= self._last_ms:
                ms = self._last_ms
                self._seq += 1
            else:
                self._last_ms = ms
                self._seq = 0
            seq = self._seq
        return f"{ms:013d}{seq:04d}{secrets.token_hex(2)}"


@dataclass
class _Subscription:
    sub_id: int
    path: Path
    handler: SnapshotHandler
    on_error: Optional[ErrorHandler]


def _overlaps(a: Path, b: Path) -> bool:
    n = min(len(a), len(b))
    return a[:n] == b[:n]


class SubscriptionHub:
    """In-process fan-out of snapshots to path subscribers.

    Registration happens from Flask worker threads while publishes run inside
    request coroutines, so the registry is guarded by a lock. Handlers are
    called synchronously and must not block.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subs: Dict[int, _Subscription] = {}
        self._ids = itertools.count(1)

    def add(self, path: Path, handler: SnapshotHandler, on_error: Optional[ErrorHandler] = None) -> Unsubscribe:
        with self._lock:
            sub = _Subscription(next(self._ids), path, handler, on_error)
            self._subs[sub.sub_id] = sub

        def unsubscribe() -> None:
            with self._lock:
                self._subs.pop(sub.sub_id, None)

        return unsubscribe

    def __len__(self) -> int:
        with self._lock:
            return len(self._subs)

    async def publish(self, changed: Path, reader: Callable[[Path], Awaitable[Any]]) -> None:
        with self._lock:
            affected = [s for s in self._subs.values() if _overlaps(s.path, changed)]

        by_path: Dict[Path, List[_Subscription]] = {}
        for sub in affected:
            by_path.setdefault(sub.path, []).append(sub)

        for path, subs in by_path.items():
            try:
                snapshot = await reader(path)
            except Exception as e:
                logger.exception("snapshot read failed for /%s", "/".join(path))
                self._fail(subs, e)
                continue
            for sub in subs:
                self._deliver(sub, snapshot)

    async def deliver_initial(self, sub_path: Path, handler: SnapshotHandler, reader, on_error=None) -> None:
        try:
            snapshot = await reader(sub_path)
        except Exception as e:
            logger.exception("initial snapshot read failed for /%s", "/".join(sub_path))
            self._fail([_Subscription(0, sub_path, handler, on_error)], e)
            return
        self._deliver(_Subscription(0, sub_path, handler, on_error), snapshot)

    @staticmethod
    def _deliver(sub: _Subscription, snapshot: Any) -> None:
        try:
            sub.handler(copy.deepcopy(snapshot))
        except Exception:
            # One broken listener must not starve the others.
            logger.exception("subscriber %s failed on /%s", sub.sub_id, "/".join(sub.path))

    @staticmethod
    def _fail(subs: List[_Subscription], cause: Exception) -> None:
        err = StoreUnavailable(f"Record store unavailable: {cause}")
        for sub in subs:
            if sub.on_error is not None:
                sub.on_error(err)
