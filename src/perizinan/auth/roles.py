from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from ..core.constants import DEFAULT_ROLE_RETRY_SECONDS, USERS_PATH
from ..core.enums import Role
from ..storage.base import RecordStore, join_path

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class RoleResolution:
    """Outcome of a role lookup; ``role`` and ``email`` are set only when resolved."""

    identity_id: str
    state: ResolutionState
    role: Optional[Role] = None
    email: Optional[str] = None
    attempts: int = 1

    @property
    def resolved(self) -> bool:
        return self.state == ResolutionState.RESOLVED


class RoleResolver:
    """Map an identity to its role record at ``/users/{identity_id}``.

    A freshly provisioned identity can exist before its role record, so a miss
    is retried exactly once after ``retry_delay`` seconds. A second miss is the
    terminal UNRESOLVED result, never an exception.
    """

    def __init__(
        self,
        store: RecordStore,
        *,
        retry_delay: float = DEFAULT_ROLE_RETRY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        if retry_delay < 0:
            raise ValueError("retry_delay must be >= 0")
        self._store = store
        self._retry_delay = retry_delay
        self._sleep = sleep

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    async def _attempt(self, identity_id: str, attempt: int) -> Optional[RoleResolution]:
        record = await self._store.read(join_path(USERS_PATH, identity_id))
        if not isinstance(record, dict):
            return None
        role = Role.parse(record.get("role"))
        if role is None:
            return None
        return RoleResolution(
            identity_id=identity_id,
            state=ResolutionState.RESOLVED,
            role=role,
            email=record.get("email"),
            attempts=attempt,
        )

    async def resolve(self, identity_id: str) -> RoleResolution:
        found = await self._attempt(identity_id, 1)
        if found:
            return found

        logger.info("role record for %s not found, retrying in %.1fs", identity_id, self._retry_delay)
        await self._sleep(self._retry_delay)

        found = await self._attempt(identity_id, 2)
        if found:
            return found

        logger.warning("role record missing for identity %s", identity_id)
        return RoleResolution(identity_id=identity_id, state=ResolutionState.UNRESOLVED, attempts=2)
