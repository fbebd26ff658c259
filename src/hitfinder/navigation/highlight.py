"""Highlighted, anchor-annotated markup of a page."""

from __future__ import annotations

import logging

from hitfinder.errors import BackendError
from hitfinder.index.backend import Highlighting, HighlightRequest, SearchBackend
from hitfinder.index.syntax import FIELD_ID, HL_ANALYZE_CHARS_UNLIMITED, document_key, field_query
from hitfinder.models import QueryKind, QuerySpec
from hitfinder.navigation.cursors import ItemCursor, NavigatorState, PageState
from hitfinder.navigation.escape import escape_query, highlight_field

LOGGER = logging.getLogger(__name__)

HIGHLIGHT_PRE = "<span style='background:yellow'>"
HIGHLIGHT_POST = "</span>"
ANCHOR_PREFIX = "HitNavigator_"
NO_MATCHES = "<span style='background:red'>No matches in content.</span>"


def anchor_tag(number: int, prefix: str = ANCHOR_PREFIX) -> str:
    return f"<a name='{prefix}{number}'></a>"


def insert_anchors(
    text: str, *, marker: str = HIGHLIGHT_PRE, prefix: str = ANCHOR_PREFIX
) -> tuple[str, int]:
    """Put a numbered anchor in front of every highlight marker.

    Scanning resumes after each marker, so inserted anchors are never
    rescanned. Returns the annotated text and the number of anchors.
    """
    parts: list[str] = []
    offset = 0
    count = 0
    while True:
        index = text.find(marker, offset)
        if index < 0:
            break
        count += 1
        parts.append(text[offset:index])
        parts.append(anchor_tag(count, prefix))
        parts.append(marker)
        offset = index + len(marker)
    parts.append(text[offset:])
    return "".join(parts), count


def highlight_query(query: QuerySpec) -> str:
    if query.kind is QueryKind.PATTERN:
        text = escape_query(query.text, QueryKind.PATTERN)
        return field_query(highlight_field(QueryKind.PATTERN), text, group=query.group)
    # Literal queries use the default field.
    return escape_query(query.text, QueryKind.LITERAL)


def first_fragment(response: Highlighting, key: str, field: str) -> str | None:
    fields = response.get(key)
    if fields is None:
        return None
    fragments = fields.get(field)
    if not fragments:
        return None
    return fragments[0].strip()


class HighlightRenderer:
    """Fetches the highlighted text of the current page and annotates it."""

    def __init__(self, backend: SearchBackend, document_id: int, query: QuerySpec) -> None:
        self.backend = backend
        self.document_id = document_id
        self.query = query

    def page_key(self, state: NavigatorState) -> str:
        chunk_id = state.current_page if state.has_chunks else 0
        return document_key(self.document_id, chunk_id)

    def build_request(self, state: NavigatorState) -> HighlightRequest:
        return HighlightRequest(
            query=highlight_query(self.query),
            filter_query=field_query(FIELD_ID, self.page_key(state)),
            highlight_fields=(highlight_field(self.query.kind),),
            pre=HIGHLIGHT_PRE,
            post=HIGHLIGHT_POST,
            fragment_size=0,
            max_analyzed_chars=HL_ANALYZE_CHARS_UNLIMITED,
        )

    def render(self, state: NavigatorState, pages: PageState) -> str:
        request = self.build_request(state)
        try:
            response = self.backend.query(request)
        except BackendError as exc:
            LOGGER.warning("Could not query markup for page %s: %s", state.current_page, exc)
            return NO_MATCHES

        fragment = first_fragment(response, self.page_key(state), request.highlight_fields[0])
        if fragment is None:
            return NO_MATCHES

        markup, count = insert_anchors(fragment)

        pages.hit_counts[state.current_page] = count
        items = ItemCursor(state, pages)
        if items.current() == 0 and items.has_next():
            items.next()

        return f"<pre>{markup}</pre>"
