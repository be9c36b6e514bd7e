from __future__ import annotations

import logging
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

from ..common.validators import require_non_empty, require_timestamp
from ..core.constants import REQUESTS_PATH, UNKNOWN_LABEL
from ..core.enums import RequestStatus, Role
from ..core.exceptions import RecordNotFound, Unauthorized, ValidationError
from ..roster.model import Student
from ..storage.base import ErrorHandler, RecordStore, Unsubscribe, join_path, sorted_items
from .model import PermissionRequest, RequestDraft, stored_key

logger = logging.getLogger(__name__)

# Transitions offered to approvers. The store itself accepts any status.
FORWARD_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.REJECTED: frozenset(),
}

ALLOWED_ROLES: Dict[str, FrozenSet[Role]] = {
    "create": frozenset({Role.SUBMITTER}),
    "set_field": frozenset({Role.SUBMITTER, Role.APPROVER}),
    "set_status": frozenset({Role.APPROVER}),
    "remove": frozenset({Role.SUBMITTER, Role.ADMIN}),
}

_TIMESTAMP_KEYS = {"keluar": "Depart time", "kembali": "Return time"}
_REQUIRED_KEYS = {"namasiswa": "Student name", "alasan": "Reason"}


def to_requests(snapshot: Any) -> List[PermissionRequest]:
    """Rebuild the collection snapshot into a list in key order.

    Key order follows push order, but it is not a reliable "most recent" order.
    """
    return [PermissionRequest.from_record(k, v) for k, v in sorted_items(snapshot) if isinstance(v, dict)]


def available_transitions(status: RequestStatus) -> FrozenSet[RequestStatus]:
    return FORWARD_TRANSITIONS.get(status, frozenset())


def enrich(requests: Iterable[PermissionRequest], roster: Iterable[Student]) -> List[PermissionRequest]:
    """Refresh class and dormitory from the roster, matched by student name.

    Matching by display name breaks under renames and duplicate names; the
    first roster entry with the name wins.
    """
    by_name: Dict[str, Student] = {}
    for s in roster:
        by_name.setdefault(s.name, s)

    out: List[PermissionRequest] = []
    for r in requests:
        s = by_name.get(r.subject_name)
        out.append(
            PermissionRequest(
                request_id=r.request_id,
                subject_name=r.subject_name,
                class_name=(s.class_name if s else "") or r.class_name or UNKNOWN_LABEL,
                dormitory=(s.dormitory if s else "") or r.dormitory or UNKNOWN_LABEL,
                reason=r.reason,
                depart_time=r.depart_time,
                return_time=r.return_time,
                status=r.status,
                document_url=r.document_url,
            )
        )
    return out


class RequestLifecycleManager:
    """Create, edit, decide and delete permission requests.

    Every mutation takes the acting role and raises ``Unauthorized`` when that
    role may not perform it.
    """

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def _authorize(action: str, acting_role: Any) -> Role:
        role = Role.parse(acting_role)
        if role not in ALLOWED_ROLES[action]:
            logger.warning("%s denied for role %r", action, acting_role)
            raise Unauthorized("You are not allowed to perform this action")
        return role

    @staticmethod
    def _path(request_id: str) -> str:
        request_id = require_non_empty(request_id, "Request id")
        if "/" in request_id:
            raise ValidationError("Invalid request id")
        return join_path(REQUESTS_PATH, request_id)

    async def _require_exists(self, path: str) -> None:
        if not isinstance(await self._store.read(path), dict):
            raise RecordNotFound("Permission request not found")

    async def create(self, acting_role: Role, draft: RequestDraft) -> PermissionRequest:
        self._authorize("create", acting_role)

        require_non_empty(draft.subject_name, "Student name")
        require_non_empty(draft.reason, "Reason")
        require_timestamp(draft.depart_time, "Depart time")
        require_timestamp(draft.return_time, "Return time")

        record = draft.to_record()
        key = await self._store.push(join_path(REQUESTS_PATH), record)
        logger.info("permission request %s created for %s", key, draft.subject_name)
        return PermissionRequest.from_record(key, record)

    async def list_all(self) -> List[PermissionRequest]:
        return to_requests(await self._store.read(join_path(REQUESTS_PATH)))

    async def get(self, request_id: str) -> Optional[PermissionRequest]:
        record = await self._store.read(self._path(request_id))
        if not isinstance(record, dict):
            return None
        return PermissionRequest.from_record(request_id, record)

    async def listen(
        self,
        callback: Callable[[List[PermissionRequest]], None],
        on_error: Optional[ErrorHandler] = None,
    ) -> Unsubscribe:
        """Deliver the whole request list now and after every change to the collection."""

        def handler(snapshot: Any) -> None:
            callback(to_requests(snapshot))

        return await self._store.subscribe(join_path(REQUESTS_PATH), handler, on_error)

    async def set_field(self, acting_role: Role, request_id: str, field: str, value: Any) -> None:
        self._authorize("set_field", acting_role)

        key = stored_key(field)
        if key == "status":
            raise ValidationError("Status changes go through set_status")

        text = "" if value is None else str(value).strip()
        if key in _TIMESTAMP_KEYS:
            text = require_timestamp(text, _TIMESTAMP_KEYS[key])
        elif key in _REQUIRED_KEYS:
            text = require_non_empty(text, _REQUIRED_KEYS[key])

        path = self._path(request_id)
        await self._require_exists(path)
        # Empty optional values delete the field.
        await self._store.update(path, {key: text or None})

    async def set_status(self, acting_role: Role, request_id: str, status: Any) -> None:
        self._authorize("set_status", acting_role)

        new_status = RequestStatus.parse(status)
        if new_status is None:
            raise ValidationError("Invalid status")

        path = self._path(request_id)
        await self._require_exists(path)
        await self._store.update(path, {"status": new_status.value})
        logger.info("permission request %s set to %s", request_id, new_status.value)

    async def remove(self, acting_role: Role, request_id: str) -> None:
        self._authorize("remove", acting_role)
        await self._store.remove(self._path(request_id))
        logger.info("permission request %s removed", request_id)
