from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass
from typing import Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from ..core.exceptions import InvalidCredentials, ValidationError
from .provider import Identity


@dataclass
class _Account:
    identity: Identity
    password_hash: str


class InMemoryIdentityProvider:
    """Identity provider for development and tests; accounts live in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_id: Dict[str, _Account] = {}

    def _find_by_email(self, email: str) -> Optional[_Account]:
        email = (email or "").strip().lower()
        for acc in self._by_id.values():
            if acc.identity.email.lower() == email:
                return acc
        return None

    async def sign_in(self, email: str, password: str) -> Identity:
        with self._lock:
            acc = self._find_by_email(email)
        if not acc or not check_password_hash(acc.password_hash, password or ""):
            raise InvalidCredentials("Invalid email or password")
        return acc.identity

    async def sign_out(self, identity_id: str) -> None:
        return None

    async def reauthenticate(self, identity_id: str, password: str) -> None:
        with self._lock:
            acc = self._by_id.get(identity_id)
        if not acc or not check_password_hash(acc.password_hash, password or ""):
            raise InvalidCredentials("Password is not correct")

    async def create_account(self, email: str, password: str) -> Identity:
        with self._lock:
            if self._find_by_email(email):
                raise ValidationError("Email is already registered")
            identity = Identity(identity_id=uuid.uuid4().hex, email=email.strip())
            self._by_id[identity.identity_id] = _Account(identity, generate_password_hash(password))
        return identity

    async def delete_account(self, identity_id: str) -> None:
        with self._lock:
            self._by_id.pop(identity_id, None)

    def has_account(self, identity_id: str) -> bool:
        with self._lock:
            return identity_id in self._by_id
