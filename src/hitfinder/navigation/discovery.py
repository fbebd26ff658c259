"""Discovery of the pages of a document that hold hits."""

from __future__ import annotations

import logging
from typing import Iterable, Mapping, Sequence

from hitfinder.index.backend import SearchBackend
from hitfinder.index.syntax import FIELD_CONTENT_WS, field_query
from hitfinder.models import ContentHit, FilterType, KeywordFilter, QueryKind, QuerySpec
from hitfinder.navigation.cursors import WHOLE_DOCUMENT_PAGE, NavigatorState, PageState
from hitfinder.navigation.escape import escape_query

LOGGER = logging.getLogger(__name__)


def chunk_query(query: QuerySpec) -> str:
    """Query used to find which chunks of a document match.

    Pattern queries run against the whitespace-exact field so only exact
    matches of the pattern count.
    """
    text = escape_query(query.text, QueryKind.LITERAL)
    if query.is_pattern:
        text = field_query(FIELD_CONTENT_WS, text, group=True)
    return text


def pages_with_hits(
    hits: Mapping[str, Sequence[ContentHit]], document_id: int
) -> list[int]:
    """Sorted, unique chunk ids of the document's hits. Chunk 0 is ignored."""
    pages = {
        hit.chunk_id
        for hit_list in hits.values()
        for hit in hit_list
        if hit.chunk_id != 0 and hit.document_id == document_id
    }
    return sorted(pages)


def _seed(pages: Iterable[int]) -> PageState:
    page_state = PageState()
    for page in pages:
        page_state.add_page(page)
    return page_state


def discover_pages(
    backend: SearchBackend, document_id: int, query: QuerySpec
) -> tuple[NavigatorState, PageState]:
    """Find the pages of a document that hold hits for the query.

    Raises:
        BackendError: the backend failed to count chunks or to search.
    """
    total_chunks = backend.chunk_count(document_id)

    if total_chunks == 0:
        state = NavigatorState(
            total_chunks=1,
            has_chunks=False,
            current_page=WHOLE_DOCUMENT_PAGE,
            initialized=True,
        )
        return state, _seed([WHOLE_DOCUMENT_PAGE])

    hits = query.hits
    if hits is None:
        # Hits were not handed over; search the document again.
        query_text = chunk_query(query)
        LOGGER.debug("Searching chunks of document %s with %r", document_id, query_text)
        hits = backend.search(query_text, KeywordFilter(FilterType.CHUNK, document_id))

    pages = pages_with_hits(hits, document_id)
    state = NavigatorState(
        total_chunks=total_chunks,
        has_chunks=True,
        current_page=pages[0] if pages else 0,
        initialized=True,
    )
    return state, _seed(pages)
