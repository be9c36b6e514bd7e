from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Generic, List, Mapping, Optional, Sequence, TypeVar

from ..core.constants import DEFAULT_ITEMS_PER_PAGE
from ..core.enums import RequestStatus
from ..core.exceptions import ValidationError
from .model import PermissionRequest, attribute_name

T = TypeVar("T")

ALL_STATUSES = "all"


@dataclass(frozen=True)
class RequestFilter:
    """Search text, status ("all" or a status value) and an inclusive depart-time range.

    ``start``/``end`` are compared lexically against the stored depart time,
    which is valid because timestamps are fixed-width ``YYYY-MM-DDTHH:MM``.
    """

    search: str = ""
    status: str = ALL_STATUSES
    start: str = ""
    end: str = ""

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "RequestFilter":
        status = (args.get("status") or ALL_STATUSES).strip().lower()
        if status != ALL_STATUSES and RequestStatus.parse(status) is None:
            raise ValidationError("Invalid status filter")
        return cls(
            search=(args.get("search") or "").strip(),
            status=status,
            start=(args.get("start") or "").strip(),
            end=(args.get("end") or "").strip(),
        )

    def matches(self, r: PermissionRequest) -> bool:
        term = self.search.lower()
        if term and not any(term in v.lower() for v in (r.subject_name, r.class_name, r.dormitory)):
            return False
        if self.status != ALL_STATUSES and r.status.value != self.status:
            return False
        if self.start and not (r.depart_time and r.depart_time >= self.start):
            return False
        if self.end and not (r.depart_time and r.depart_time <= self.end):
            return False
        return True


def apply_filter(requests: Sequence[PermissionRequest], f: RequestFilter) -> List[PermissionRequest]:
    return [r for r in requests if f.matches(r)]


def _sort_value(r: PermissionRequest, attr: str) -> str:
    value = getattr(r, attr)
    if isinstance(value, RequestStatus):
        return value.value
    return value or ""


def sort_requests(requests: Sequence[PermissionRequest], field: str, direction: str = "asc") -> List[PermissionRequest]:
    """One-shot stable sort; ties keep their current relative order in both directions."""
    direction = (direction or "asc").lower()
    if direction not in {"asc", "desc"}:
        raise ValidationError("Sort direction must be 'asc' or 'desc'")
    attr = attribute_name(field)
    return sorted(requests, key=lambda r: _sort_value(r, attr), reverse=direction == "desc")


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    page: int
    per_page: int
    total_items: int
    total_pages: int


def paginate(items: Sequence[T], page: int = 1, per_page: int = DEFAULT_ITEMS_PER_PAGE) -> Page[T]:
    if per_page <= 0:
        raise ValidationError("per_page must be positive")
    total_pages = math.ceil(len(items) / per_page)
    page = max(1, int(page or 1))
    start = (page - 1) * per_page
    return Page(
        items=list(items[start : start + per_page]),
        page=page,
        per_page=per_page,
        total_items=len(items),
        total_pages=total_pages,
    )


def parse_page(value: Optional[str]) -> int:
    try:
        return max(1, int(value or 1))
    except ValueError:
        raise ValidationError("Invalid page number")
