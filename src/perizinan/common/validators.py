from __future__ import annotations

import re
from datetime import datetime

from ..core.constants import TIMESTAMP_FORMAT
from ..core.exceptions import ValidationError

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def require_non_empty(value: str, field_name: str) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} is required")
    return str(value).strip()


def require_min_length(value: str, field_name: str, min_len: int) -> str:
    if value is None or len(value) < min_len:
        raise ValidationError(f"{field_name} must be at least {min_len} characters")
    return value


def require_email(value: str) -> str:
    value = (value or "").strip()
    if not _EMAIL_RE.fullmatch(value):
        raise ValidationError("Valid email is required")
    return value


def require_timestamp(value: str, field_name: str) -> str:
    """Check the fixed-width ``YYYY-MM-DDTHH:MM`` format used for depart/return times."""
    value = require_non_empty(value, field_name)
    try:
        datetime.strptime(value, TIMESTAMP_FORMAT)
    except ValueError:
        raise ValidationError(f"{field_name} must use the YYYY-MM-DDTHH:MM format")
    return value
