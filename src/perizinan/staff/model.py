from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..core.enums import Role


@dataclass(frozen=True)
class StaffAccount:
    """Account record of a staff member, linked to an identity through ``identity_id``."""

    account_id: str
    identity_id: str
    name: str
    email: str
    role: Role

    @classmethod
    def from_record(cls, account_id: str, record: Mapping[str, Any]) -> "StaffAccount":
        return cls(
            account_id=account_id,
            identity_id=str(record.get("uid") or ""),
            name=str(record.get("name") or ""),
            email=str(record.get("email") or ""),
            role=Role.parse(record.get("role")) or Role.SUBMITTER,
        )

    def to_record(self) -> Dict[str, Any]:
        return {"name": self.name, "email": self.email, "role": self.role.value, "uid": self.identity_id}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.account_id,
            "uid": self.identity_id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value,
        }


@dataclass(frozen=True)
class NewStaff:
    name: str
    email: str
    password: str
    role: str
