from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, List, Optional

from ..common.validators import require_non_empty
from ..core.constants import SCHEDULES_PATH
from ..core.enums import Role
from ..core.exceptions import RecordNotFound, Unauthorized, ValidationError
from ..storage.base import RecordStore, join_path, sorted_items
from .model import DutySchedule


def _parse_date(value: str) -> str:
    value = require_non_empty(value, "Date")
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        raise ValidationError("Date must use the YYYY-MM-DD format")
    return value


def _ids(values: Any) -> List[str]:
    if isinstance(values, str):
        values = values.split(",")
    return [str(v).strip() for v in (values or []) if str(v).strip()]


def to_schedules(snapshot: Any) -> List[DutySchedule]:
    return [DutySchedule.from_record(k, v) for k, v in sorted_items(snapshot) if isinstance(v, dict)]


class ScheduleService:
    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def _require_admin(acting_role: Role) -> None:
        if Role.parse(acting_role) != Role.ADMIN:
            raise Unauthorized("Only admins can manage schedules")

    @staticmethod
    def _path(schedule_id: str) -> str:
        schedule_id = require_non_empty(schedule_id, "Schedule id")
        if "/" in schedule_id:
            raise ValidationError("Invalid schedule id")
        return join_path(SCHEDULES_PATH, schedule_id)

    async def list_schedules(self) -> List[DutySchedule]:
        return to_schedules(await self._store.read(join_path(SCHEDULES_PATH)))

    async def for_date(self, day: str) -> List[DutySchedule]:
        return [s for s in await self.list_schedules() if s.date == day]

    async def create(
        self,
        *,
        acting_role: Role,
        date: str,
        submitter_ids: Iterable[str],
        approver_id: str,
    ) -> DutySchedule:
        self._require_admin(acting_role)

        submitters = _ids(submitter_ids)
        if not submitters:
            raise ValidationError("At least one Guru Piket must be selected")
        schedule = DutySchedule(
            schedule_id="",
            date=_parse_date(date),
            submitter_ids=submitters,
            approver_id=require_non_empty(approver_id, "Wakil"),
        )
        key = await self._store.push(join_path(SCHEDULES_PATH), schedule.to_record())
        return DutySchedule.from_record(key, schedule.to_record())

    async def update_field(self, *, acting_role: Role, schedule_id: str, field: str, value: Any) -> None:
        self._require_admin(acting_role)

        if field == "date":
            update = {"date": _parse_date(str(value or ""))}
        elif field in {"guruPiket", "submitter_ids"}:
            submitters = _ids(value)
            if not submitters:
                raise ValidationError("At least one Guru Piket must be selected")
            update = {"guruPiket": submitters}
        elif field in {"wakil", "approver_id"}:
            update = {"wakil": require_non_empty(str(value or ""), "Wakil")}
        else:
            raise ValidationError(f"Unknown field: {field}")

        path = self._path(schedule_id)
        if not isinstance(await self._store.read(path), dict):
            raise RecordNotFound("Schedule not found")
        await self._store.update(path, update)

    async def remove(self, *, acting_role: Role, schedule_id: str) -> None:
        self._require_admin(acting_role)
        await self._store.remove(self._path(schedule_id))

    async def get(self, schedule_id: str) -> Optional[DutySchedule]:
        record = await self._store.read(self._path(schedule_id))
        if not isinstance(record, dict):
            return None
        return DutySchedule.from_record(schedule_id, record)
