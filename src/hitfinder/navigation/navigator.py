"""Navigator over the keyword hits of one document."""

from __future__ import annotations

import logging
from typing import Dict, Mapping, Sequence

from hitfinder.errors import BackendError
from hitfinder.index.backend import SearchBackend
from hitfinder.models import ContentHit, QueryKind, QuerySpec
from hitfinder.navigation.cursors import ItemCursor, NavigatorState, PageCursor, PageState
from hitfinder.navigation.discovery import discover_pages
from hitfinder.navigation.highlight import ANCHOR_PREFIX, NO_MATCHES, HighlightRenderer

LOGGER = logging.getLogger(__name__)


class HitNavigator:
    """Steps through the pages of a document and the hits on each page.

    Pages with hits are discovered on first navigation or render. The number
    of hits on a page is only known once that page has been rendered. After a
    failed discovery, navigation reports an empty document until ``render()``
    or ``init()`` tries again.
    """

    def __init__(self, backend: SearchBackend, document_id: int, query: QuerySpec) -> None:
        self.backend = backend
        self.document_id = document_id
        self.query = query
        self._state = NavigatorState()
        self._pages = PageState()
        self._renderer = HighlightRenderer(backend, document_id, query)
        self._discovery_failed = False

    def __str__(self) -> str:
        return "Search Matches"

    @property
    def initialized(self) -> bool:
        return self._state.initialized

    def init(self) -> None:
        """Discover the pages with hits. Runs once; later calls do nothing.

        A backend failure is logged and leaves the navigator without pages.
        """
        if self._state.initialized:
            return
        try:
            state, pages = discover_pages(self.backend, self.document_id, self.query)
        except BackendError as exc:
            LOGGER.info("Could not get pages for document %s: %s", self.document_id, exc)
            self._state = NavigatorState()
            self._pages = PageState()
            self._discovery_failed = True
            return
        self._state = state
        self._pages = pages
        self._discovery_failed = False

    def ensure_initialized(self) -> None:
        """Run discovery unless it already ran, successful or not."""
        if not self._discovery_failed:
            self.init()

    def _page_cursor(self) -> PageCursor:
        self.ensure_initialized()
        return PageCursor(self._state, self._pages)

    def _item_cursor(self) -> ItemCursor:
        self.ensure_initialized()
        return ItemCursor(self._state, self._pages)

    def get_number_pages(self) -> int:
        return self._state.total_chunks

    def get_current_page(self) -> int:
        return self._state.current_page

    def has_next_page(self) -> bool:
        return self._page_cursor().has_next()

    def has_previous_page(self) -> bool:
        return self._page_cursor().has_previous()

    def next_page(self) -> int:
        return self._page_cursor().next()

    def previous_page(self) -> int:
        return self._page_cursor().previous()

    def has_next_item(self) -> bool:
        return self._item_cursor().has_next()

    def has_previous_item(self) -> bool:
        return self._item_cursor().has_previous()

    def next_item(self) -> int:
        return self._item_cursor().next()

    def previous_item(self) -> int:
        return self._item_cursor().previous()

    def current_item(self) -> int:
        return self._item_cursor().current()

    def get_hits_pages(self) -> Dict[int, int]:
        """Known hit count per page with hits, in page order."""
        return self._pages.hit_counts

    def get_number_hits(self) -> int:
        return self._pages.hit_counts.get(self._state.current_page, 0)

    def render(self) -> str:
        """Markup of the current page with anchored highlights.

        Retries a failed discovery. Never raises for backend failures; returns
        ``NO_MATCHES`` instead.
        """
        self.init()
        if not self._state.initialized:
            return NO_MATCHES
        return self._renderer.render(self._state, self._pages)

    def get_anchor_prefix(self) -> str:
        return ANCHOR_PREFIX

    def is_searchable(self) -> bool:
        return True


def create_navigator(
    backend: SearchBackend,
    document_id: int,
    query: str,
    *,
    kind: QueryKind = QueryKind.LITERAL,
    group: bool = True,
    hits: Mapping[str, Sequence[ContentHit]] | None = None,
) -> HitNavigator:
    """Build a navigator for one document and one query."""
    return HitNavigator(
        backend,
        document_id,
        QuerySpec(text=query, kind=kind, group=group, hits=hits),
    )
