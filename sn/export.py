"""Export helpers for SN results."""

from __future__ import annotations

import csv
import io
import re
from typing import List

import docx
import openpyxl
from docx.shared import Pt
from fpdf import FPDF
from fpdf.enums import XPos, YPos
from openpyxl.styles import Alignment
from openpyxl.utils import get_column_letter

from .config import EXPORT_HEADERS
from .models import ChunkRow

CONTROL_CHAR_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F-\x9F]")

# Letter pages, measured in points.
PDF_MARGIN = 50
PDF_FONT_SIZE = 12
PDF_LINE_HEIGHT = PDF_FONT_SIZE * 1.2


def clean_text(text: str) -> str:
    return CONTROL_CHAR_RE.sub("", text.replace("\t", "    "))


def output_filename(source_names: List[str], extension: str) -> str:
    if len(source_names) == 1:
        stem = source_names[0].rsplit(".", 1)[0]
        return f"simplified_{stem}.{extension}"
    return f"simplified_notes.{extension}"


def to_txt(text: str) -> bytes:
    return clean_text(text).encode("utf-8")


def to_docx(text: str, title: str = "Simplified Notes") -> bytes:
    document = docx.Document()
    style = document.styles["Normal"]
    style.font.name = "Times New Roman"
    style.font.size = Pt(12)

    document.add_heading(title, level=1)
    for line in clean_text(text).splitlines():
        # Blank lines are kept as empty paragraphs to preserve paragraph breaks.
        document.add_paragraph(line.rstrip())

    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


def to_pdf(text: str) -> bytes:
    """Render the simplified text as a paginated Times 12pt document.

    The built-in PDF fonts cover Latin-1 only; other characters become ``?``.
    """
    pdf = FPDF(unit="pt", format="letter")
    pdf.set_margins(PDF_MARGIN, PDF_MARGIN, PDF_MARGIN)
    pdf.set_auto_page_break(auto=True, margin=PDF_MARGIN)
    pdf.add_page()
    pdf.set_font("Times", size=PDF_FONT_SIZE)

    for line in clean_text(text).splitlines():
        line = line.rstrip().encode("latin-1", "replace").decode("latin-1")
        if not line:
            pdf.ln(PDF_LINE_HEIGHT)
            continue
        pdf.multi_cell(0, PDF_LINE_HEIGHT, line, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    return bytes(pdf.output())


def to_csv(rows: List[ChunkRow]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for row in rows:
        writer.writerow([row.index, row.original, row.simplified])
    return buffer.getvalue().encode("utf-8-sig")


def to_xlsx(rows: List[ChunkRow]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Simplified Chunks"

    sheet.append(EXPORT_HEADERS)
    for row in rows:
        sheet.append([row.index, clean_text(row.original), clean_text(row.simplified)])

    widths = [10, 60, 60]
    for index, width in enumerate(widths, start=1):
        sheet.column_dimensions[get_column_letter(index)].width = width
    for cells in sheet.iter_rows(min_row=2):
        for cell in cells:
            cell.alignment = Alignment(wrap_text=True, vertical="top")

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def to_json(rows: List[ChunkRow]) -> List[dict]:
    return [
        {"chunk": row.index, "original": row.original, "simplified": row.simplified}
        for row in rows
    ]
