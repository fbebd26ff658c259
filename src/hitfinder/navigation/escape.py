"""Escaping rules for highlight and discovery queries."""

from __future__ import annotations

from hitfinder.index.syntax import FIELD_CONTENT, FIELD_CONTENT_WS, escape_reserved
from hitfinder.models import QueryKind

HIGHLIGHT_FIELD_LITERAL = FIELD_CONTENT
HIGHLIGHT_FIELD_PATTERN = FIELD_CONTENT_WS

# Present in a pattern query that already targets the pattern field.
_PATTERN_FIELD_QUALIFIER = HIGHLIGHT_FIELD_PATTERN + ":"


def escape_query(raw: str, kind: QueryKind) -> str:
    """Make a user query safe for the backend.

    Literal queries are always escaped. Pattern queries are escaped unless
    they are already qualified with the pattern field, which marks a compound
    query built elsewhere.
    """
    if kind is QueryKind.PATTERN and _PATTERN_FIELD_QUALIFIER in raw:
        return raw
    return escape_reserved(raw)


def highlight_field(kind: QueryKind) -> str:
    if kind is QueryKind.PATTERN:
        return HIGHLIGHT_FIELD_PATTERN
    return HIGHLIGHT_FIELD_LITERAL
