"""Document text extraction for SN uploads."""

from __future__ import annotations

import logging
import os
import zipfile
from typing import Callable, List, Optional, Sequence, Tuple

import docx
from docx.opc.exceptions import PackageNotFoundError as DocxPackageError
from pptx import Presentation
from pptx.enum.shapes import MSO_SHAPE_TYPE
from pptx.exc import PackageNotFoundError as PptxPackageError
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .config import ALLOWED_EXTENSIONS, DOCUMENT_MARKER
from .errors import DocumentError

logger = logging.getLogger(__name__)

MAX_GROUP_DEPTH = 10


def _extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower().lstrip(".")


def is_supported(filename: str) -> bool:
    return _extension(filename) in ALLOWED_EXTENSIONS


def _extract_pdf(path: str) -> str:
    reader = PdfReader(path)
    pages = [(page.extract_text() or "").strip() for page in reader.pages]
    return "\n\n".join(page for page in pages if page)


def _extract_docx(path: str) -> str:
    document = docx.Document(path)
    lines = [paragraph.text for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
    return "\n".join(lines).strip()


def _shape_lines(shape, depth: int = 0) -> List[str]:
    if depth > MAX_GROUP_DEPTH:
        return []
    if getattr(shape, "has_text_frame", False) and shape.text_frame.text.strip():
        return [shape.text_frame.text.replace("\u000b", "\n").strip()]
    if getattr(shape, "has_table", False) and shape.has_table:
        lines = []
        for row in shape.table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                lines.append(" | ".join(cells))
        return lines
    if getattr(shape, "shape_type", None) == MSO_SHAPE_TYPE.GROUP:
        lines = []
        for child in shape.shapes:
            lines.extend(_shape_lines(child, depth + 1))
        return lines
    return []


def _extract_pptx(path: str) -> str:
    presentation = Presentation(path)
    slides = []
    for slide in presentation.slides:
        lines: List[str] = []
        for shape in slide.shapes:
            lines.extend(_shape_lines(shape))
        if lines:
            slides.append("\n".join(lines))
    return "\n\n".join(slides)


def _extract_txt(path: str) -> str:
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        return handle.read().strip()


EXTRACTORS = {
    "pdf": _extract_pdf,
    "docx": _extract_docx,
    "pptx": _extract_pptx,
    "txt": _extract_txt,
}


def extract_text(path: str, filename: Optional[str] = None) -> str:
    name = filename or os.path.basename(path)
    extractor = EXTRACTORS.get(_extension(name))
    if extractor is None:
        raise DocumentError(f"Unsupported file type: {name}")
    try:
        return extractor(path)
    except (
        OSError,
        ValueError,
        KeyError,
        zipfile.BadZipFile,
        PdfReadError,
        DocxPackageError,
        PptxPackageError,
    ) as exc:
        raise DocumentError(f"Failed to extract text from {name}: {exc}") from exc


def extract_documents(
    files: Sequence[Tuple[str, str]],
    progress_callback: Optional[Callable[[int, int, str], None]] = None,
) -> str:
    """Extract every ``(path, filename)`` pair and join them with a per-document marker."""
    parts = []
    extracted_any = False
    for position, (path, name) in enumerate(files):
        if progress_callback:
            progress_callback(position, len(files), name)
        text = extract_text(path, name)
        if text.strip():
            extracted_any = True
        else:
            logger.warning("No text extracted from %s", name)
        parts.append(DOCUMENT_MARKER.format(name=name) + text)

    if not extracted_any:
        raise DocumentError("No text could be extracted from the uploaded files")
    return "".join(parts)
