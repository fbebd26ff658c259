"""Query syntax understood by the search backend.

A query is an optional ``field:`` prefix followed by a value. A value wrapped
in unescaped double quotes is grouped. Reserved characters are escaped with a
backslash, the way Lucene query strings are.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from hitfinder.errors import InvalidQuery

FIELD_ID = "id"
# Tokenized text, matched case-insensitively word by word.
FIELD_CONTENT = "content"
# Whitespace-exact text, matched with regular expressions.
FIELD_CONTENT_WS = "content_ws"
DEFAULT_FIELD = FIELD_CONTENT
SEARCHABLE_FIELDS = frozenset({FIELD_CONTENT, FIELD_CONTENT_WS})

HL_ANALYZE_CHARS_UNLIMITED = -1

RESERVED_CHARS = frozenset('\\+-!():^[]"{}~*?|&/')

_FIELD_PREFIX = re.compile(r"^([A-Za-z_][A-Za-z0-9_]*):")
_ESCAPED = re.compile(r"\\(.)", re.DOTALL)


@dataclass(slots=True, frozen=True)
class ParsedQuery:
    field: str
    value: str
    grouped: bool = False


def escape_reserved(text: str) -> str:
    """Backslash-escape every reserved query character."""
    return "".join("\\" + ch if ch in RESERVED_CHARS else ch for ch in text)


def unescape(text: str) -> str:
    return _ESCAPED.sub(r"\1", text)


def field_query(field: str, value: str, *, group: bool = False) -> str:
    if group:
        return f'{field}:"{value}"'
    return f"{field}:{value}"


def _is_grouped(value: str) -> bool:
    if len(value) < 2 or not (value.startswith('"') and value.endswith('"')):
        return False
    # The closing quote is escaped when preceded by an odd run of backslashes.
    backslashes = len(value[:-1]) - len(value[:-1].rstrip("\\"))
    return backslashes % 2 == 0


def parse_query(text: str) -> ParsedQuery:
    """Split a query string into its target field and unescaped value."""
    text = text.strip()
    if not text:
        raise InvalidQuery("Empty query")

    match = _FIELD_PREFIX.match(text)
    if match:
        field, value = match.group(1), text[match.end() :]
    else:
        field, value = DEFAULT_FIELD, text

    if field not in SEARCHABLE_FIELDS:
        raise InvalidQuery(f"Unknown field: {field}")

    grouped = _is_grouped(value)
    if grouped:
        value = value[1:-1]
    value = unescape(value)
    if not value:
        raise InvalidQuery(f"Empty value for field {field}")
    return ParsedQuery(field=field, value=value, grouped=grouped)


def document_key(document_id: int, chunk_id: int = 0) -> str:
    """Key of a stored text: ``<doc>`` when unchunked, ``<doc>_<chunk>`` otherwise."""
    if chunk_id == 0:
        return str(document_id)
    return f"{document_id}_{chunk_id}"


def parse_document_key(key: str) -> tuple[int, int]:
    doc, sep, chunk = key.partition("_")
    try:
        return int(doc), int(chunk) if sep else 0
    except ValueError as exc:
        raise InvalidQuery(f"Malformed document key: {key!r}") from exc


def parse_filter_query(filter_query: str) -> tuple[int, int]:
    """Resolve an ``id:<key>`` filter to a (document id, chunk id) pair."""
    field, sep, key = filter_query.partition(":")
    if not sep or field.strip() != FIELD_ID:
        raise InvalidQuery(f"Unsupported filter: {filter_query!r}")
    return parse_document_key(key.strip())
