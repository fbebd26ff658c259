"""Keyword search and highlighting over the chunk store."""

from __future__ import annotations

import html
import logging
import re
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, List, Protocol, Sequence

from hitfinder.errors import BackendUnavailable, InvalidQuery
from hitfinder.index.storage import SQLiteChunkStore
from hitfinder.index.syntax import (
    FIELD_CONTENT,
    HL_ANALYZE_CHARS_UNLIMITED,
    ParsedQuery,
    parse_filter_query,
    parse_query,
)
from hitfinder.models import ContentHit, FilterType, KeywordFilter

LOGGER = logging.getLogger(__name__)

_WORD = re.compile(r"\w+")

Highlighting = Dict[str, Dict[str, List[str]]]


@dataclass(slots=True, frozen=True)
class HighlightRequest:
    """A highlighting query restricted by a filter query."""

    query: str
    filter_query: str
    highlight_fields: Sequence[str]
    pre: str
    post: str
    fragment_size: int = 0
    max_analyzed_chars: int = HL_ANALYZE_CHARS_UNLIMITED


class SearchBackend(Protocol):
    """What the navigator needs from a chunked text-search service."""

    def chunk_count(self, document_id: int) -> int:
        """Number of chunks of a document, 0 when it is indexed unchunked."""

    def query(self, request: HighlightRequest) -> Highlighting:
        """Map document key -> field -> highlighted fragments."""

    def search(self, query_text: str, keyword_filter: KeywordFilter) -> Dict[str, List[ContentHit]]:
        """Map matched term -> hits, in chunk order."""


def compile_matcher(parsed: ParsedQuery) -> re.Pattern[str]:
    """Build the regular expression a parsed query matches text with."""
    if parsed.field == FIELD_CONTENT:
        tokens = _WORD.findall(parsed.value)
        if not tokens:
            raise InvalidQuery(f"No searchable terms in {parsed.value!r}")
        phrase = r"\W+".join(re.escape(token) for token in tokens)
        return re.compile(rf"(?<!\w){phrase}(?!\w)", re.IGNORECASE)
    try:
        return re.compile(parsed.value)
    except re.error as exc:
        raise InvalidQuery(f"Invalid pattern {parsed.value!r}: {exc}") from exc


def find_spans(pattern: re.Pattern[str], text: str) -> List[tuple[int, int]]:
    """Non-overlapping, non-empty match spans in text order."""
    return [match.span() for match in pattern.finditer(text) if match.end() > match.start()]


def _fragment_windows(
    spans: Sequence[tuple[int, int]], size: int, length: int
) -> List[tuple[int, int]]:
    windows: List[tuple[int, int]] = []
    for start, end in spans:
        if windows and start < windows[-1][1]:
            windows[-1] = (windows[-1][0], max(windows[-1][1], end))
            continue
        frag_start = (start // size) * size
        if windows:
            frag_start = max(frag_start, windows[-1][1])
        windows.append((frag_start, max(frag_start + size, end)))
    return [(start, min(end, length)) for start, end in windows]


def _mark(
    text: str,
    window: tuple[int, int],
    spans: Sequence[tuple[int, int]],
    pre: str,
    post: str,
) -> str:
    start, end = window
    parts: List[str] = []
    pos = start
    for span_start, span_end in spans:
        if span_start < start or span_start >= end:
            continue
        parts.append(html.escape(text[pos:span_start]))
        parts.append(pre + html.escape(text[span_start:span_end]) + post)
        pos = span_end
    parts.append(html.escape(text[pos:end]))
    return "".join(parts)


def highlight(
    text: str,
    pattern: re.Pattern[str],
    *,
    pre: str,
    post: str,
    fragment_size: int = 0,
    max_analyzed_chars: int = HL_ANALYZE_CHARS_UNLIMITED,
) -> List[str]:
    """Return HTML-escaped fragments of text with every match wrapped in pre/post.

    A ``fragment_size`` of 0 returns the whole text as a single fragment.
    A non-negative ``max_analyzed_chars`` only considers that many leading
    characters.
    """
    if max_analyzed_chars >= 0:
        text = text[:max_analyzed_chars]
    spans = find_spans(pattern, text)
    if not spans:
        return []
    if fragment_size <= 0:
        windows = [(0, len(text))]
    else:
        windows = _fragment_windows(spans, fragment_size, len(text))
    return [_mark(text, window, spans, pre, post) for window in windows]


class SQLiteSearchBackend:
    """Search backend answering queries from a SQLiteChunkStore."""

    def __init__(self, store: SQLiteChunkStore) -> None:
        self.store = store

    @contextmanager
    def _storage_access(self) -> Iterator[None]:
        try:
            yield
        except sqlite3.Error as exc:
            raise BackendUnavailable(f"Chunk store unavailable: {exc}") from exc

    def chunk_count(self, document_id: int) -> int:
        with self._storage_access():
            return self.store.count_chunks(document_id)

    def query(self, request: HighlightRequest) -> Highlighting:
        parsed = parse_query(request.query)
        pattern = compile_matcher(parsed)
        document_id, chunk_id = parse_filter_query(request.filter_query)
        key = request.filter_query.partition(":")[2].strip()

        with self._storage_access():
            text = self.store.get_chunk_text(document_id, chunk_id)
        if text is None or not pattern.search(text):
            LOGGER.debug("No match for %r in %s", request.query, key)
            return {}

        entry: Dict[str, List[str]] = {}
        for field in request.highlight_fields:
            # Only the field the query targets carries highlights.
            if field != parsed.field:
                continue
            fragments = highlight(
                text,
                pattern,
                pre=request.pre,
                post=request.post,
                fragment_size=request.fragment_size,
                max_analyzed_chars=request.max_analyzed_chars,
            )
            if fragments:
                entry[field] = fragments
        return {key: entry}

    def search(self, query_text: str, keyword_filter: KeywordFilter) -> Dict[str, List[ContentHit]]:
        parsed = parse_query(query_text)
        pattern = compile_matcher(parsed)
        document_id = keyword_filter.document_id

        with self._storage_access():
            chunks = list(self.store.iter_chunks(document_id))

        hits = [
            ContentHit(document_id=document_id, chunk_id=chunk.chunk_id)
            for chunk in chunks
            if pattern.search(chunk.text)
        ]
        if not hits:
            return {}
        if keyword_filter.filter_type is FilterType.FILE:
            hits = [ContentHit(document_id=document_id, chunk_id=0)]
        return {parsed.value: hits}
