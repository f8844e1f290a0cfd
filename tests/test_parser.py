"""Unit tests for SN document text extraction."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import docx
import pytest
from pptx import Presentation

from sn import parser
from sn.errors import DocumentError


@pytest.fixture
def docx_file(tmp_path):
    document = docx.Document()
    document.add_paragraph("Cell biology basics.")
    document.add_paragraph("The nucleus holds DNA.")
    table = document.add_table(rows=1, cols=2)
    table.cell(0, 0).text = "Organelle"
    table.cell(0, 1).text = "Role"
    path = tmp_path / "biology.docx"
    document.save(str(path))
    return path


@pytest.fixture
def pptx_file(tmp_path):
    presentation = Presentation()
    slide = presentation.slides.add_slide(presentation.slide_layouts[1])
    slide.shapes.title.text = "Newton's Laws"
    slide.placeholders[1].text = "An object at rest stays at rest."
    path = tmp_path / "physics.pptx"
    presentation.save(str(path))
    return path


class TestExtractText:
    """Tests for per-format extraction."""

    def test_txt(self, tmp_path) -> None:
        """Plain text files are read as UTF-8."""
        path = tmp_path / "notes.txt"
        path.write_text("  Plain notes.\n", encoding="utf-8")
        assert parser.extract_text(str(path)) == "Plain notes."

    def test_docx(self, docx_file) -> None:
        """Paragraphs and table rows are extracted."""
        text = parser.extract_text(str(docx_file))
        assert "Cell biology basics.\nThe nucleus holds DNA." in text
        assert "Organelle | Role" in text

    def test_pptx(self, pptx_file) -> None:
        """Slide titles and body placeholders are extracted."""
        text = parser.extract_text(str(pptx_file))
        assert "Newton's Laws" in text
        assert "An object at rest stays at rest." in text

    def test_pdf_pages_joined(self, tmp_path) -> None:
        """PDF pages are separated by blank lines, empty pages skipped."""
        pages = [MagicMock(), MagicMock(), MagicMock()]
        pages[0].extract_text.return_value = "Page one."
        pages[1].extract_text.return_value = None
        pages[2].extract_text.return_value = "Page three."

        with patch.object(parser, "PdfReader", return_value=MagicMock(pages=pages)):
            text = parser.extract_text(str(tmp_path / "lecture.pdf"))

        assert text == "Page one.\n\nPage three."

    def test_filename_overrides_path_extension(self, tmp_path) -> None:
        """Temp paths are dispatched on the original upload name."""
        path = tmp_path / "upload.tmp"
        path.write_text("Body.", encoding="utf-8")
        assert parser.extract_text(str(path), "notes.txt") == "Body."

    def test_unsupported_type(self, tmp_path) -> None:
        """Unknown extensions are rejected."""
        with pytest.raises(DocumentError):
            parser.extract_text(str(tmp_path / "image.png"))

    def test_corrupt_docx(self, tmp_path) -> None:
        """Unreadable documents raise DocumentError."""
        path = tmp_path / "broken.docx"
        path.write_bytes(b"not a zip archive")
        with pytest.raises(DocumentError):
            parser.extract_text(str(path))

    def test_is_supported(self) -> None:
        """Supported extensions are matched case-insensitively."""
        assert parser.is_supported("Notes.PDF")
        assert not parser.is_supported("notes.doc")


class TestExtractDocuments:
    """Tests for multi-document extraction."""

    def test_documents_marked_and_joined(self, tmp_path) -> None:
        """Each document is preceded by its name marker."""
        first = tmp_path / "a.txt"
        second = tmp_path / "b.txt"
        first.write_text("Alpha.", encoding="utf-8")
        second.write_text("Beta.", encoding="utf-8")
        progress = []

        text = parser.extract_documents(
            [(str(first), "a.txt"), (str(second), "b.txt")],
            progress_callback=lambda position, total, name: progress.append((position, total, name)),
        )

        assert text == "\n\n=== a.txt ===\n\nAlpha.\n\n=== b.txt ===\n\nBeta."
        assert progress == [(0, 2, "a.txt"), (1, 2, "b.txt")]

    def test_no_text_anywhere(self, tmp_path) -> None:
        """Documents with no text at all are an error."""
        empty = tmp_path / "empty.txt"
        empty.write_text("   ", encoding="utf-8")
        with pytest.raises(DocumentError):
            parser.extract_documents([(str(empty), "empty.txt")])
