"""Text helpers for splitting documents into pages."""

from __future__ import annotations

from typing import Iterable, Iterator


def chunk_text(text: str, *, max_chars: int = 2000, overlap: int = 0) -> Iterator[str]:
    """Split text into fixed-size character chunks.

    Consecutive chunks share ``overlap`` characters. A trailing chunk that
    would hold nothing but overlap is not produced.
    """
    if not text:
        return

    step = max(max_chars - overlap, 1)
    for start in range(0, len(text), step):
        if start and start + overlap >= len(text):
            break
        yield text[start : start + max_chars]


def normalize_newlines(text: str) -> str:
    """Convert Windows and old Mac line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")
