from __future__ import annotations

import csv
import io
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Optional

from ..common.validators import require_non_empty
from ..core.constants import STUDENTS_PATH
from ..core.enums import Gender, Role
from ..core.exceptions import RecordNotFound, Unauthorized, ValidationError
from ..storage.base import ErrorHandler, RecordStore, Unsubscribe, join_path, sorted_items
from .model import STUDENT_KEYS, Student

logger = logging.getLogger(__name__)

CSV_HEADER = ["nisn", "namasiswa", "kelas", "gender", "asrama"]

_LABELS = {"nisn": "NISN", "namasiswa": "Student name", "kelas": "Class", "asrama": "Dormitory"}


@dataclass(frozen=True)
class NewStudent:
    nisn: str
    name: str
    class_name: str
    gender: str
    dormitory: str


@dataclass(frozen=True)
class ImportResult:
    imported: int
    skipped: int


def to_students(snapshot: Any) -> List[Student]:
    return [Student.from_record(k, v) for k, v in sorted_items(snapshot) if isinstance(v, dict)]


def _parse_gender(value: str) -> Gender:
    try:
        return Gender((value or "").strip().lower())
    except ValueError:
        raise ValidationError("Invalid gender")


class RosterService:
    """Student roster kept at ``/students``; only administrators change it."""

    def __init__(self, store: RecordStore):
        self._store = store

    @staticmethod
    def _require_admin(acting_role: Role) -> None:
        if Role.parse(acting_role) != Role.ADMIN:
            raise Unauthorized("Only administrators can manage students")

    @staticmethod
    def _path(student_id: str) -> str:
        student_id = require_non_empty(student_id, "Student id")
        if "/" in student_id:
            raise ValidationError("Invalid student id")
        return join_path(STUDENTS_PATH, student_id)

    async def list_students(self) -> List[Student]:
        return to_students(await self._store.read(join_path(STUDENTS_PATH)))

    async def get(self, student_id: str) -> Optional[Student]:
        record = await self._store.read(self._path(student_id))
        if not isinstance(record, dict):
            return None
        return Student.from_record(student_id, record)

    async def listen(self, callback: Callable[[List[Student]], None], on_error: Optional[ErrorHandler] = None) -> Unsubscribe:
        return await self._store.subscribe(join_path(STUDENTS_PATH), lambda s: callback(to_students(s)), on_error)

    async def create(self, *, acting_role: Role, data: NewStudent) -> Student:
        self._require_admin(acting_role)
        student = Student(
            student_id="",
            nisn=require_non_empty(data.nisn, "NISN"),
            name=require_non_empty(data.name, "Student name"),
            class_name=require_non_empty(data.class_name, "Class"),
            gender=_parse_gender(data.gender),
            dormitory=require_non_empty(data.dormitory, "Dormitory"),
        )
        key = await self._store.push(join_path(STUDENTS_PATH), student.to_record())
        logger.info("student %s added", key)
        return Student.from_record(key, student.to_record())

    async def update_field(self, *, acting_role: Role, student_id: str, field: str, value: Any) -> None:
        self._require_admin(acting_role)

        key = STUDENT_KEYS.get(field, field)
        if key not in CSV_HEADER:
            raise ValidationError(f"Unknown field: {field}")
        if key == "gender":
            text = _parse_gender(str(value or "")).value
        else:
            text = require_non_empty(str(value or ""), _LABELS[key])

        path = self._path(student_id)
        if not isinstance(await self._store.read(path), dict):
            raise RecordNotFound("Student not found")
        await self._store.update(path, {key: text})

    async def remove(self, *, acting_role: Role, student_id: str) -> None:
        self._require_admin(acting_role)
        await self._store.remove(self._path(student_id))

    async def import_csv(self, *, acting_role: Role, text: str) -> ImportResult:
        """Add students from CSV text with the header ``nisn,namasiswa,kelas,gender,asrama``.

        Rows with a different column count or an invalid gender are skipped.
        """
        self._require_admin(acting_role)

        lines = (text or "").lstrip("\ufeff").splitlines()
        if not lines or [h.strip() for h in lines[0].split(",")] != CSV_HEADER:
            raise ValidationError(
                "Invalid CSV format. Please ensure the CSV has the following headers: " + ",".join(CSV_HEADER)
            )

        imported = skipped = 0
        for row in csv.reader(io.StringIO("\n".join(lines[1:]))):
            if not row or not any(v.strip() for v in row):
                continue
            if len(row) != len(CSV_HEADER):
                skipped += 1
                continue
            nisn, name, class_name, gender, dormitory = (v.strip() for v in row)
            try:
                record = {"nisn": nisn, "namasiswa": name, "kelas": class_name, "gender": _parse_gender(gender).value, "asrama": dormitory}
            except ValidationError:
                skipped += 1
                continue
            await self._store.push(join_path(STUDENTS_PATH), record)
            imported += 1

        logger.info("CSV import: %s students added, %s rows skipped", imported, skipped)
        return ImportResult(imported=imported, skipped=skipped)
