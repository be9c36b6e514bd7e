"""
Per-browser session contexts for the web layer.

Cookies carry only an opaque client id; the gateway and session store of each
signed-in browser stay server-side in this registry. Anonymous requests get a
throwaway signed-out store that is never registered, and registered stores
are dropped after ``idle_timeout`` seconds without a request.
"""
from __future__ import annotations

import logging
import secrets
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple

from ..core.constants import DEFAULT_CLIENT_IDLE_SECONDS
from ..identity.gateway import IdentityGateway
from ..identity.provider import IdentityProvider
from .roles import RoleResolver
from .session import SessionStore

logger = logging.getLogger(__name__)


@dataclass
class _Client:
    store: SessionStore
    last_seen: float


class ClientSessions:
    def __init__(
        self,
        provider: IdentityProvider,
        resolver: RoleResolver,
        *,
        idle_timeout: float = DEFAULT_CLIENT_IDLE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        if idle_timeout <= 0:
            raise ValueError("idle_timeout must be positive")
        self._provider = provider
        self._resolver = resolver
        self._idle_timeout = idle_timeout
        self._clock = clock
        self._lock = threading.Lock()
        self._data: Dict[str, _Client] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)

    def get(self, client_id: Optional[str]) -> Optional[SessionStore]:
        if not client_id:
            return None
        with self._lock:
            client = self._data.get(client_id)
        return client.store if client is not None else None

    async def open(self) -> SessionStore:
        """A started, signed-out store that is not registered yet."""
        store = SessionStore(IdentityGateway(self._provider), self._resolver)
        await store.start()
        return store

    async def ensure(self, client_id: Optional[str]) -> Tuple[Optional[str], SessionStore]:
        """Return the registered store for ``client_id``, or ``(None, anonymous store)``."""
        self.sweep()
        if client_id:
            with self._lock:
                client = self._data.get(client_id)
                if client is not None:
                    client.last_seen = self._clock()
                    return client_id, client.store
        return None, await self.open()

    def register(self, store: SessionStore) -> str:
        client_id = secrets.token_urlsafe(24)
        with self._lock:
            self._data[client_id] = _Client(store, self._clock())
        logger.debug("client session %s registered", client_id[:6])
        return client_id

    def close(self, client_id: Optional[str]) -> None:
        if not client_id:
            return
        with self._lock:
            client = self._data.pop(client_id, None)
        if client is not None:
            client.store.close()
            logger.debug("client session %s closed", client_id[:6])

    def sweep(self) -> int:
        """Close stores idle for longer than the timeout; returns how many were dropped."""
        deadline = self._clock() - self._idle_timeout
        with self._lock:
            expired: List[Tuple[str, _Client]] = [(k, c) for k, c in self._data.items() if c.last_seen < deadline]
            for client_id, _ in expired:
                del self._data[client_id]
        for client_id, client in expired:
            client.store.close()
            logger.info("client session %s expired", client_id[:6])
        return len(expired)
