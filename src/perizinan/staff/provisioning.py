from __future__ import annotations

import logging
from typing import List, Optional, Protocol

from ..core.constants import TEACHERS_PATH, USERS_PATH
from ..core.enums import Role
from ..core.exceptions import PartialProvisioning
from ..identity.provider import Identity
from ..storage.base import RecordStore, join_path
from .model import StaffAccount

logger = logging.getLogger(__name__)

STEP_IDENTITY = "identity"
STEP_ROLE_RECORD = "role record"
STEP_ACCOUNT_RECORD = "account record"


class AccountIssuer(Protocol):
    async def create_account(self, email: str, password: str) -> Identity:
        raise NotImplementedError

    async def delete_account(self, identity_id: str) -> None:
        raise NotImplementedError


class ProvisioningCoordinator:
    """Create identity, role record and account record as one unit.

    The steps are not atomic. When the role record or the account record
    cannot be written, whatever was created is deleted again and the original
    error is re-raised. If that cleanup fails too, ``PartialProvisioning``
    names the identity left behind.
    """

    def __init__(self, store: RecordStore, accounts: AccountIssuer):
        self._store = store
        self._accounts = accounts

    async def provision(self, *, name: str, email: str, password: str, role: Role) -> StaffAccount:
        identity = await self._accounts.create_account(email, password)

        role_path = join_path(USERS_PATH, identity.identity_id)
        step = STEP_ROLE_RECORD
        try:
            await self._store.write(role_path, {"email": identity.email, "role": role.value})
            step = STEP_ACCOUNT_RECORD
            account = StaffAccount(
                account_id="",
                identity_id=identity.identity_id,
                name=name,
                email=email,
                role=role,
            )
            key = await self._store.push(join_path(TEACHERS_PATH), account.to_record())
        except Exception as e:
            logger.error("provisioning of %s failed at %s: %s", email, step, e)
            await self._compensate(identity, role_path if step == STEP_ACCOUNT_RECORD else None, step, e)
            raise

        logger.info("provisioned %s as %s", email, role.value)
        return StaffAccount.from_record(key, account.to_record())

    async def _compensate(self, identity: Identity, role_path: Optional[str], failed_step: str, cause: Exception) -> None:
        errors: List[Exception] = []
        if role_path is not None:
            try:
                await self._store.remove(role_path)
            except Exception as e:
                logger.exception("could not remove role record %s", role_path)
                errors.append(e)
        try:
            await self._accounts.delete_account(identity.identity_id)
        except Exception as e:
            logger.exception("could not delete identity %s", identity.identity_id)
            errors.append(e)

        if errors:
            raise PartialProvisioning(
                f"Account for {identity.email} was only partly created; identity {identity.identity_id} needs manual cleanup",
                identity_id=identity.identity_id,
                failed_step=failed_step,
                cause=cause,
            ) from errors[0]
