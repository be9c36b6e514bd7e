from __future__ import annotations

import logging
from typing import Any, Callable, List, Optional

from ..common.validators import require_email, require_min_length, require_non_empty
from ..core.constants import MIN_PASSWORD_LENGTH, TEACHERS_PATH, USERS_PATH
from ..core.enums import Role
from ..core.exceptions import RecordNotFound, Unauthorized, ValidationError
from ..identity.gateway import IdentityGateway
from ..identity.provider import IdentityProvider
from ..storage.base import ErrorHandler, RecordStore, Unsubscribe, join_path, sorted_items
from .model import NewStaff, StaffAccount
from .provisioning import ProvisioningCoordinator

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = {"name", "email", "role"}


def to_accounts(snapshot: Any) -> List[StaffAccount]:
    return [StaffAccount.from_record(k, v) for k, v in sorted_items(snapshot) if isinstance(v, dict)]


def _parse_role(value: Any) -> Role:
    role = value if isinstance(value, Role) else Role.parse(str(value or "").strip().lower())
    if role is None:
        raise ValidationError("Invalid role")
    return role


class StaffService:
    """Use case: administrators manage staff accounts (``/teachers`` + ``/users``)."""

    def __init__(self, store: RecordStore, provider: IdentityProvider):
        self._store = store
        self._provider = provider

    @staticmethod
    def _require_admin(acting_role: Role) -> None:
        if Role.parse(acting_role) != Role.ADMIN:
            raise Unauthorized("Only admins can manage teachers")

    @staticmethod
    def _path(account_id: str) -> str:
        account_id = require_non_empty(account_id, "Teacher id")
        if "/" in account_id:
            raise ValidationError("Invalid teacher id")
        return join_path(TEACHERS_PATH, account_id)

    async def list_staff(self) -> List[StaffAccount]:
        return to_accounts(await self._store.read(join_path(TEACHERS_PATH)))

    async def get(self, account_id: str) -> Optional[StaffAccount]:
        record = await self._store.read(self._path(account_id))
        if not isinstance(record, dict):
            return None
        return StaffAccount.from_record(account_id, record)

    async def listen(self, callback: Callable[[List[StaffAccount]], None], on_error: Optional[ErrorHandler] = None) -> Unsubscribe:
        return await self._store.subscribe(join_path(TEACHERS_PATH), lambda s: callback(to_accounts(s)), on_error)

    async def create(self, *, acting_role: Role, gateway: IdentityGateway, data: NewStaff) -> StaffAccount:
        """Provision a new staff member through the acting admin's gateway.

        Creating the account never changes who is signed in on ``gateway``.
        """
        self._require_admin(acting_role)

        name = require_non_empty(data.name, "Name")
        email = require_email(data.email)
        password = require_min_length(data.password or "", "Password", MIN_PASSWORD_LENGTH)
        role = _parse_role(data.role)

        return await ProvisioningCoordinator(self._store, gateway).provision(
            name=name, email=email, password=password, role=role
        )

    async def update_field(self, *, acting_role: Role, account_id: str, field: str, value: Any) -> None:
        self._require_admin(acting_role)

        if field not in EDITABLE_FIELDS:
            raise ValidationError(f"Unknown field: {field}")
        if field == "name":
            text = require_non_empty(str(value or ""), "Name")
        elif field == "email":
            text = require_email(str(value or ""))
        else:
            text = _parse_role(value).value

        account = await self.get(account_id)
        if account is None:
            raise RecordNotFound("Teacher not found")

        await self._store.update(self._path(account_id), {field: text})
        if field == "role" and account.identity_id:
            await self._store.update(join_path(USERS_PATH, account.identity_id), {"role": text})
            logger.info("role of %s changed to %s", account.email, text)

    async def delete(self, *, acting_role: Role, gateway: IdentityGateway, account_id: str, password: str) -> None:
        """Remove the account and role records after the acting admin re-enters a password.

        The identity itself stays with the provider; without a role record it
        can no longer sign in.
        """
        self._require_admin(acting_role)
        if not password:
            raise ValidationError("Password is required to delete a teacher")

        await gateway.reauthenticate(password)

        account = await self.get(account_id)
        await self._store.remove(self._path(account_id))
        if account is not None and account.identity_id:
            await self._store.remove(join_path(USERS_PATH, account.identity_id))
        logger.info("teacher %s deleted", account_id)

    async def ensure_admin_account(self, *, email: str, password: str, name: str = "Administrator") -> Optional[StaffAccount]:
        """Seed the first administrator when no account uses ``email`` yet."""
        email = require_email(email)
        for account in await self.list_staff():
            if account.email.lower() == email.lower():
                return None
        account = await ProvisioningCoordinator(self._store, self._provider).provision(
            name=name, email=email, password=password, role=Role.ADMIN
        )
        logger.info("seeded admin account %s", email)
        return account
