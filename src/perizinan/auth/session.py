from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..core.enums import Role
from ..core.exceptions import AccountNotProvisioned
from ..identity.gateway import IdentityGateway
from ..identity.provider import Identity
from .roles import RoleResolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """The signed-in user as the application sees it."""

    identity_id: str
    email: str
    role: Role


SessionListener = Callable[[Optional[Session]], None]


class SessionStore:
    """Session context of one client.

    Lifecycle: constructed with ``loading=True`` and no session, ``start()``
    subscribes once to the gateway and processes the current identity state,
    ``close()`` tears the subscription down. The session is only mutated by
    the identity-change handler, plus the eager clear in ``logout()``.
    """

    def __init__(self, gateway: IdentityGateway, resolver: RoleResolver):
        self._gateway = gateway
        self._resolver = resolver
        self._session: Optional[Session] = None
        self._loading = True
        self._listeners: List[SessionListener] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        # Identity whose role was freshly resolved by the latest event.
        self._verified_id: Optional[str] = None

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def gateway(self) -> IdentityGateway:
        return self._gateway

    @property
    def started(self) -> bool:
        return self._unsubscribe is not None

    async def start(self) -> None:
        if self._unsubscribe is not None:
            return
        self._unsubscribe = self._gateway.on_identity_change(self._on_identity_change)
        await self._on_identity_change(self._gateway.current_identity)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def add_listener(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    async def login(self, email: str, password: str) -> Session:
        identity = await self._gateway.sign_in(email, password)

        session = self._session
        if session is not None and session.identity_id == identity.identity_id and self._verified_id != identity.identity_id:
            # The handler kept an existing session without reading the role record.
            resolution = await self._resolver.resolve(identity.identity_id)
            if not resolution.resolved:
                session = None

        if session is None or session.identity_id != identity.identity_id:
            logger.warning("sign-in reversed for %s: no role record", identity.email)
            await self._gateway.sign_out()
            raise AccountNotProvisioned("Account is not registered in the system")
        return session

    async def logout(self) -> None:
        self._set_session(None)
        await self._gateway.sign_out()

    async def reauthenticate(self, password: str) -> None:
        await self._gateway.reauthenticate(password)

    async def _on_identity_change(self, identity: Optional[Identity]) -> None:
        self._verified_id = None

        if identity is None:
            self._loading = False
            self._set_session(None)
            return

        if self._session is not None and self._session.identity_id == identity.identity_id:
            self._loading = False
            return

        resolution = await self._resolver.resolve(identity.identity_id)

        current = self._gateway.current_identity
        if current is None or current.identity_id != identity.identity_id:
            logger.info("discarding stale role resolution for %s", identity.identity_id)
            return

        if resolution.resolved:
            self._verified_id = identity.identity_id
            self._loading = False
            self._set_session(Session(identity_id=identity.identity_id, email=identity.email, role=resolution.role))
            return

        # Keep whatever session we had; a late role record must not log anybody out.
        self._loading = False

    def _set_session(self, session: Optional[Session]) -> None:
        if session == self._session:
            return
        self._session = session
        for listener in list(self._listeners):
            try:
                listener(session)
            except Exception:
                logger.exception("session listener failed")
