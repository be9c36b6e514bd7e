from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping


@dataclass(frozen=True)
class DutySchedule:
    """Duty day: the submitting staff on duty and the approver in charge (staff account ids)."""

    schedule_id: str
    date: str
    submitter_ids: List[str]
    approver_id: str

    @classmethod
    def from_record(cls, schedule_id: str, record: Mapping[str, Any]) -> "DutySchedule":
        submitters = record.get("guruPiket") or []
        if isinstance(submitters, dict):
            # Lists may come back as index-keyed mappings.
            submitters = [submitters[k] for k in sorted(submitters, key=str)]
        return cls(
            schedule_id=schedule_id,
            date=str(record.get("date") or ""),
            submitter_ids=[str(s) for s in submitters],
            approver_id=str(record.get("wakil") or ""),
        )

    def to_record(self) -> Dict[str, Any]:
        return {"date": self.date, "guruPiket": list(self.submitter_ids), "wakil": self.approver_id}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.schedule_id,
            "date": self.date,
            "submitter_ids": list(self.submitter_ids),
            "approver_id": self.approver_id,
        }
