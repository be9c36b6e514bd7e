from __future__ import annotations

import io
import math
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Sequence

import pandas as pd

from ..core.constants import REPORT_ROWS_PER_PAGE
from ..requests.model import PermissionRequest
from ..requests.query import RequestFilter, apply_filter
from ..requests.service import RequestLifecycleManager, enrich
from ..roster.service import RosterService

CSV_COLUMNS = ["Nama Siswa", "Kelas", "Asrama", "Alasan", "Keluar", "Kembali", "Status"]
MONTH_LABELS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

REPORT_TITLE = "Perizinan Report"


def _row(r: PermissionRequest) -> List[str]:
    return [r.subject_name, r.class_name, r.dormitory, r.reason, r.depart_time, r.return_time, r.status.value]


def to_frame(requests: Sequence[PermissionRequest]) -> pd.DataFrame:
    return pd.DataFrame([_row(r) for r in requests], columns=CSV_COLUMNS)


def export_csv(requests: Sequence[PermissionRequest]) -> str:
    return to_frame(requests).to_csv(index=False)


def export_excel(requests: Sequence[PermissionRequest]) -> bytes:
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        to_frame(requests).to_excel(writer, index=False, sheet_name="Perizinan")
    return output.getvalue()


def analytics(requests: Sequence[PermissionRequest]) -> Dict[str, Dict[str, int]]:
    """Request counts per month of departure (all twelve months) and per class."""
    df = to_frame(requests)

    months = pd.to_datetime(df["Keluar"], format="%Y-%m-%dT%H:%M", errors="coerce").dt.month.dropna().astype(int)
    month_counts = months.value_counts()
    per_month = {label: int(month_counts.get(i + 1, 0)) for i, label in enumerate(MONTH_LABELS)}

    class_counts = df.groupby("Kelas", sort=True).size()
    per_class = {str(k): int(v) for k, v in class_counts.items()}

    return {"per_month": per_month, "per_class": per_class}


@dataclass(frozen=True)
class ReportPage:
    number: int
    total: int
    rows: List[List[str]]

    @property
    def footer(self) -> str:
        return f"Page {self.number} of {self.total}"


@dataclass(frozen=True)
class ReportLayout:
    school_name: str
    title: str
    generated_on: str
    columns: List[str]
    pages: List[ReportPage]


def build_report_layout(
    requests: Sequence[PermissionRequest],
    *,
    school_name: str,
    generated_on: date,
    rows_per_page: int = REPORT_ROWS_PER_PAGE,
) -> ReportLayout:
    """Split the rows into fixed-size pages; an empty list still yields one page."""
    rows = [_row(r) for r in requests]
    total = max(1, math.ceil(len(rows) / rows_per_page))
    pages = [
        ReportPage(number=i + 1, total=total, rows=rows[i * rows_per_page : (i + 1) * rows_per_page])
        for i in range(total)
    ]
    return ReportLayout(
        school_name=school_name,
        title=REPORT_TITLE,
        generated_on=generated_on.strftime("%Y-%m-%d"),
        columns=list(CSV_COLUMNS),
        pages=pages,
    )


def render_text(layout: ReportLayout) -> str:
    """Plain-text rendering of a report layout, one block per page."""
    out = io.StringIO()
    for page in layout.pages:
        if page.number > 1:
            out.write("\f")
        out.write(f"{layout.school_name}\n{layout.title}\nGenerated on: {layout.generated_on}\n\n")
        frame = pd.DataFrame(page.rows, columns=layout.columns)
        out.write(frame.to_string(index=False) if page.rows else "(no data)")
        out.write(f"\n\n{page.footer}\n")
    return out.getvalue()


class ReportService:
    """Use case: admin reporting over the enriched, filtered request list."""

    def __init__(self, requests: RequestLifecycleManager, roster: RosterService, *, school_name: str = "School"):
        self._requests = requests
        self._roster = roster
        self._school_name = school_name

    async def filtered(self, f: RequestFilter) -> List[PermissionRequest]:
        requests = enrich(await self._requests.list_all(), await self._roster.list_students())
        return apply_filter(requests, f)

    async def csv_report(self, f: RequestFilter) -> str:
        return export_csv(await self.filtered(f))

    async def excel_report(self, f: RequestFilter) -> bytes:
        return export_excel(await self.filtered(f))

    async def analytics(self, f: RequestFilter) -> Dict[str, Dict[str, int]]:
        return analytics(await self.filtered(f))

    async def layout(self, f: RequestFilter, *, today: date) -> ReportLayout:
        return build_report_layout(await self.filtered(f), school_name=self._school_name, generated_on=today)
