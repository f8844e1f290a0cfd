"""Unit tests for SN export helpers."""

from __future__ import annotations

import csv
import io

import docx
import openpyxl
from pypdf import PdfReader

from sn.export import clean_text, output_filename, to_csv, to_docx, to_json, to_pdf, to_txt, to_xlsx
from sn.models import ChunkRow

ROWS = [
    ChunkRow(index=1, original="Mitochondria synthesise ATP.", simplified="Mitochondria make energy."),
    ChunkRow(index=2, original="Osmosis is passive.", simplified="Osmosis needs no energy."),
]


class TestTextExports:
    """Tests for the simplified-text outputs."""

    def test_clean_text(self) -> None:
        """Tabs become spaces and control characters are removed."""
        assert clean_text("a\tb\x00c\x07\nd") == "a    bc\nd"

    def test_txt(self) -> None:
        """Plain text is UTF-8 encoded."""
        assert to_txt("Café notes.").decode("utf-8") == "Café notes."

    def test_docx_keeps_lines_and_breaks(self) -> None:
        """Each line is a paragraph; blank lines stay as empty paragraphs."""
        data = to_docx("First paragraph.\n\nSecond paragraph.", title="Biology")
        document = docx.Document(io.BytesIO(data))
        texts = [paragraph.text for paragraph in document.paragraphs]

        assert texts[-4:] == ["Biology", "First paragraph.", "", "Second paragraph."]

    def test_pdf_paginates(self) -> None:
        """Long text flows onto further pages."""
        text = "\n".join(f"Line {number} of the notes." for number in range(120))
        reader = PdfReader(io.BytesIO(to_pdf(text)))

        assert len(reader.pages) > 1
        assert "Line 0 of the notes." in reader.pages[0].extract_text()
        assert "Line 119 of the notes." in reader.pages[-1].extract_text()

    def test_pdf_replaces_unsupported_characters(self) -> None:
        """Characters outside Latin-1 are rendered as question marks."""
        reader = PdfReader(io.BytesIO(to_pdf("Caf\u00e9 \u2192 notes.\n\nDone.")))
        page_text = reader.pages[0].extract_text()

        assert "?" in page_text
        assert "Done." in page_text

    def test_output_filename(self) -> None:
        """Single sources keep their name; several share a generic one."""
        assert output_filename(["lecture1.pdf"], "docx") == "simplified_lecture1.docx"
        assert output_filename(["a.pdf", "b.pdf"], "txt") == "simplified_notes.txt"
        assert output_filename([], "txt") == "simplified_notes.txt"


class TestChunkTableExports:
    """Tests for the per-chunk comparison exports."""

    def test_csv(self) -> None:
        """CSV has a header row then one row per chunk."""
        text = to_csv(ROWS).decode("utf-8-sig")
        rows = list(csv.reader(io.StringIO(text)))

        assert rows[0] == ["Chunk", "Original", "Simplified"]
        assert rows[2] == ["2", "Osmosis is passive.", "Osmosis needs no energy."]

    def test_xlsx(self) -> None:
        """Workbook mirrors the CSV layout."""
        workbook = openpyxl.load_workbook(io.BytesIO(to_xlsx(ROWS)))
        sheet = workbook.active

        assert sheet.title == "Simplified Chunks"
        assert [cell.value for cell in sheet[1]] == ["Chunk", "Original", "Simplified"]
        assert sheet.cell(row=2, column=3).value == "Mitochondria make energy."
        assert sheet.max_row == 3

    def test_json(self) -> None:
        """JSON rows use chunk/original/simplified keys."""
        assert to_json(ROWS)[0] == {
            "chunk": 1,
            "original": "Mitochondria synthesise ATP.",
            "simplified": "Mitochondria make energy.",
        }
