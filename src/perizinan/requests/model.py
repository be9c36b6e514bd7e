from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..core.enums import RequestStatus
from ..core.exceptions import ValidationError
from ..roster.model import Student

# attribute -> stored key
REQUEST_KEYS: Dict[str, str] = {
    "subject_name": "namasiswa",
    "class_name": "kelas",
    "dormitory": "asrama",
    "reason": "alasan",
    "depart_time": "keluar",
    "return_time": "kembali",
    "status": "status",
    "document_url": "documentUrl",
}

_ATTR_BY_KEY = {v: k for k, v in REQUEST_KEYS.items()}


def stored_key(field: str) -> str:
    """Accept either the attribute name or the stored key of a request field."""
    name = (field or "").strip()
    if name in REQUEST_KEYS:
        return REQUEST_KEYS[name]
    if name in _ATTR_BY_KEY:
        return name
    raise ValidationError(f"Unknown field: {field}")


def attribute_name(field: str) -> str:
    return _ATTR_BY_KEY[stored_key(field)]


@dataclass(frozen=True)
class PermissionRequest:
    request_id: str
    subject_name: str
    class_name: str
    dormitory: str
    reason: str
    depart_time: str
    return_time: str
    status: RequestStatus
    document_url: Optional[str] = None

    @classmethod
    def from_record(cls, request_id: str, record: Mapping[str, Any]) -> "PermissionRequest":
        return cls(
            request_id=request_id,
            subject_name=str(record.get("namasiswa") or ""),
            class_name=str(record.get("kelas") or ""),
            dormitory=str(record.get("asrama") or ""),
            reason=str(record.get("alasan") or ""),
            depart_time=str(record.get("keluar") or ""),
            return_time=str(record.get("kembali") or ""),
            status=RequestStatus.parse(record.get("status")) or RequestStatus.PENDING,
            document_url=record.get("documentUrl") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.request_id,
            "subject_name": self.subject_name,
            "class_name": self.class_name,
            "dormitory": self.dormitory,
            "reason": self.reason,
            "depart_time": self.depart_time,
            "return_time": self.return_time,
            "status": self.status.value,
            "document_url": self.document_url,
        }


@dataclass(frozen=True)
class RequestDraft:
    """Input of ``create``; any status supplied here is ignored."""

    subject_name: str
    class_name: str
    dormitory: str
    reason: str
    depart_time: str
    return_time: str
    document_url: Optional[str] = None
    status: Optional[str] = None

    @classmethod
    def for_student(
        cls,
        student: Student,
        *,
        reason: str,
        depart_time: str,
        return_time: str,
        document_url: Optional[str] = None,
    ) -> "RequestDraft":
        # Name, class and dormitory are copied once at submission time.
        return cls(
            subject_name=student.name,
            class_name=student.class_name,
            dormitory=student.dormitory,
            reason=reason,
            depart_time=depart_time,
            return_time=return_time,
            document_url=document_url,
        )

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "RequestDraft":
        def pick(attr: str) -> str:
            value = data.get(attr)
            if value is None:
                value = data.get(REQUEST_KEYS[attr])
            return str(value or "").strip()

        return cls(
            subject_name=pick("subject_name"),
            class_name=pick("class_name"),
            dormitory=pick("dormitory"),
            reason=pick("reason"),
            depart_time=pick("depart_time"),
            return_time=pick("return_time"),
            document_url=pick("document_url") or None,
            status=pick("status") or None,
        )

    def to_record(self) -> Dict[str, Any]:
        record = {
            "namasiswa": self.subject_name,
            "kelas": self.class_name,
            "asrama": self.dormitory,
            "alasan": self.reason,
            "keluar": self.depart_time,
            "kembali": self.return_time,
            "status": RequestStatus.PENDING.value,
        }
        if self.document_url:
            record["documentUrl"] = self.document_url
        return record
