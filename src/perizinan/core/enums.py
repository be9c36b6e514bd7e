from __future__ import annotations

from enum import Enum
from typing import Optional


class Role(str, Enum):
    """Application roles, stored verbatim in the role records."""

    ADMIN = "admin"
    APPROVER = "wakil"
    SUBMITTER = "gurupiket"

    @classmethod
    def parse(cls, value: object) -> Optional["Role"]:
        """Return the matching role, or None for a missing/unrecognized value."""
        try:
            return cls(value)
        except ValueError:
            return None


class RequestStatus(str, Enum):
    """Lifecycle status of a permission request."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

    @classmethod
    def parse(cls, value: object) -> Optional["RequestStatus"]:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return None


class Gender(str, Enum):
    MALE = "male"
    FEMALE = "female"
