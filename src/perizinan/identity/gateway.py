from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional

from ..core.exceptions import NotSignedIn
from .provider import Identity, IdentityProvider

logger = logging.getLogger(__name__)

IdentityChangeHandler = Callable[[Optional[Identity]], Awaitable[None]]


class IdentityGateway:
    """Tracks who is signed in for one client and fans out identity changes.

    Handlers receive the new ``Identity`` on sign-in and ``None`` on sign-out.
    They are awaited in registration order before the triggering call returns,
    so a successful ``sign_in`` has already been observed by every handler.
    """

    def __init__(self, provider: IdentityProvider):
        self._provider = provider
        self._current: Optional[Identity] = None
        self._handlers: List[IdentityChangeHandler] = []

    @property
    def current_identity(self) -> Optional[Identity]:
        return self._current

    def on_identity_change(self, handler: IdentityChangeHandler) -> Callable[[], None]:
        self._handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers:
                self._handlers.remove(handler)

        return unsubscribe

    async def sign_in(self, email: str, password: str) -> Identity:
        identity = await self._provider.sign_in(email, password)
        self._current = identity
        logger.info("signed in: %s", identity.email)
        await self._emit(identity)
        return identity

    async def sign_out(self) -> None:
        identity = self._current
        if identity is None:
            return
        self._current = None
        await self._provider.sign_out(identity.identity_id)
        logger.info("signed out: %s", identity.email)
        await self._emit(None)

    async def reauthenticate(self, password: str) -> None:
        if self._current is None:
            raise NotSignedIn("No user is currently signed in")
        await self._provider.reauthenticate(self._current.identity_id, password)

    async def create_account(self, email: str, password: str) -> Identity:
        return await self._provider.create_account(email, password)

    async def delete_account(self, identity_id: str) -> None:
        await self._provider.delete_account(identity_id)

    async def _emit(self, identity: Optional[Identity]) -> None:
        for handler in list(self._handlers):
            await handler(identity)
