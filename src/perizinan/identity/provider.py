from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class Identity:
    """An authenticated principal issued by the identity provider."""

    identity_id: str
    email: str


class IdentityProvider(Protocol):
    """Interface of the external authentication service.

    The provider is stateless towards callers: "who is signed in" is tracked by
    the per-client IdentityGateway, not here.
    """

    async def sign_in(self, email: str, password: str) -> Identity:
        raise NotImplementedError

    async def sign_out(self, identity_id: str) -> None:
        raise NotImplementedError

    async def reauthenticate(self, identity_id: str, password: str) -> None:
        raise NotImplementedError

    async def create_account(self, email: str, password: str) -> Identity:
        raise NotImplementedError

    async def delete_account(self, identity_id: str) -> None:
        raise NotImplementedError
