from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

from ..core.enums import Gender

# attribute -> stored key
STUDENT_KEYS: Dict[str, str] = {
    "nisn": "nisn",
    "name": "namasiswa",
    "class_name": "kelas",
    "gender": "gender",
    "dormitory": "asrama",
}


@dataclass(frozen=True)
class Student:
    student_id: str
    nisn: str
    name: str
    class_name: str
    gender: Gender
    dormitory: str

    @classmethod
    def from_record(cls, student_id: str, record: Mapping[str, Any]) -> "Student":
        return cls(
            student_id=student_id,
            nisn=str(record.get("nisn") or ""),
            name=str(record.get("namasiswa") or ""),
            class_name=str(record.get("kelas") or ""),
            gender=Gender(record["gender"]) if record.get("gender") in {"male", "female"} else Gender.MALE,
            dormitory=str(record.get("asrama") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return {
            "nisn": self.nisn,
            "namasiswa": self.name,
            "kelas": self.class_name,
            "gender": self.gender.value,
            "asrama": self.dormitory,
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.student_id,
            "nisn": self.nisn,
            "name": self.name,
            "class_name": self.class_name,
            "gender": self.gender.value,
            "dormitory": self.dormitory,
        }
