from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..core.exceptions import InvalidCredentials, ValidationError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .provider import Identity

logger = logging.getLogger(__name__)


def _password_ok(password_hash: str, password: str) -> bool:
    try:
        return check_password_hash(password_hash, password or "")
    except ValueError:
        # e.g. placeholder hashes like 'CHANGE_ME' or corrupted values
        return False


class MySQLIdentityProvider:
    """Identity provider backed by the ``identities`` table."""

    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def _get_by_email(self, email: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT identity_id, email, password_hash FROM identities WHERE email=%s",
                ((email or "").strip(),),
            )
            return fetchone(cur)

    def _get_by_id(self, identity_id: str) -> Optional[dict]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT identity_id, email, password_hash FROM identities WHERE identity_id=%s",
                (identity_id,),
            )
            return fetchone(cur)

    async def sign_in(self, email: str, password: str) -> Identity:
        r = await asyncio.to_thread(self._get_by_email, email)
        if not r or not _password_ok(r["password_hash"], password):
            raise InvalidCredentials("Invalid email or password")
        return Identity(identity_id=r["identity_id"], email=r["email"])

    async def sign_out(self, identity_id: str) -> None:
        # Sessions are tracked per client; nothing to revoke server-side.
        logger.debug("identity %s signed out", identity_id)

    async def reauthenticate(self, identity_id: str, password: str) -> None:
        r = await asyncio.to_thread(self._get_by_id, identity_id)
        if not r or not _password_ok(r["password_hash"], password):
            raise InvalidCredentials("Password is not correct")

    async def create_account(self, email: str, password: str) -> Identity:
        identity = Identity(identity_id=uuid.uuid4().hex, email=(email or "").strip())
        await asyncio.to_thread(self._insert, identity, generate_password_hash(password))
        return identity

    def _insert(self, identity: Identity, password_hash: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT identity_id FROM identities WHERE email=%s", (identity.email,))
            if fetchone(cur):
                raise ValidationError("Email is already registered")
            cur.execute(
                "INSERT INTO identities(identity_id, email, password_hash) VALUES(%s,%s,%s)",
                (identity.identity_id, identity.email, password_hash),
            )

    async def delete_account(self, identity_id: str) -> None:
        await asyncio.to_thread(self._delete, identity_id)

    def _delete(self, identity_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM identities WHERE identity_id=%s", (identity_id,))
