from __future__ import annotations

from typing import List

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from .service import ReportLayout

# Landscape A4 leaves 277 mm between the 10 mm margins.
COLUMN_WIDTHS: List[float] = [50, 22, 35, 72, 34, 34, 30]
ROW_HEIGHT = 7.0


def _latin1(text: str) -> str:
    # The core PDF fonts only cover Latin-1.
    return str(text).encode("latin-1", "replace").decode("latin-1")


def _fit(pdf: FPDF, text: str, width: float) -> str:
    text = _latin1(text)
    limit = width - 2
    if pdf.get_string_width(text) <= limit:
        return text
    while text and pdf.get_string_width(text + "...") > limit:
        text = text[:-1]
    return text + "..."


def build_pdf(layout: ReportLayout) -> FPDF:
    """One PDF page per layout page: header, table, ``Page x of y`` footer."""
    pdf = FPDF(orientation="L", unit="mm", format="A4")
    pdf.set_margins(10, 10, 10)
    pdf.set_auto_page_break(False)
    pdf.set_title(_latin1(f"{layout.school_name} - {layout.title}"))

    for page in layout.pages:
        pdf.add_page()

        pdf.set_font("Helvetica", "B", 14)
        pdf.cell(0, 8, _latin1(layout.school_name), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
        pdf.set_font("Helvetica", "", 12)
        pdf.cell(0, 7, _latin1(layout.title), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align="C")
        pdf.set_font("Helvetica", "", 9)
        pdf.cell(0, 6, f"Generated on: {layout.generated_on}", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        pdf.ln(2)

        pdf.set_font("Helvetica", "B", 9)
        pdf.set_fill_color(230, 230, 230)
        for name, width in zip(layout.columns, COLUMN_WIDTHS):
            pdf.cell(width, ROW_HEIGHT, _fit(pdf, name, width), border=1, fill=True)
        pdf.ln(ROW_HEIGHT)

        pdf.set_font("Helvetica", "", 9)
        if not page.rows:
            pdf.cell(sum(COLUMN_WIDTHS), ROW_HEIGHT, "No data", border=1, align="C")
            pdf.ln(ROW_HEIGHT)
        for row in page.rows:
            for value, width in zip(row, COLUMN_WIDTHS):
                pdf.cell(width, ROW_HEIGHT, _fit(pdf, value, width), border=1)
            pdf.ln(ROW_HEIGHT)

        pdf.set_y(-15)
        pdf.set_font("Helvetica", "I", 8)
        pdf.cell(0, 10, page.footer, align="C")

    return pdf


def render_pdf(layout: ReportLayout) -> bytes:
    return bytes(build_pdf(layout).output())
