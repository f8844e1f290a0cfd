"""Prompt assembly utilities for SN."""

from __future__ import annotations

PROMPT_SIMPLIFY = (
    "Simplify the following academic notes while retaining all details, headings, "
    "examples, and structure. Explain complex terms in simpler language, do not "
    "shorten or remove any content. Use clear, student-friendly language while "
    "preserving completeness. Maintain all formatting and organization:"
)


def build_user_message(chunk_text: str) -> str:
    return f"{PROMPT_SIMPLIFY}\n\n{chunk_text}"
