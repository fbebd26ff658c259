"""Page and hit cursors of a navigator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List

from hitfinder.errors import NoSuchTransition

# Chunk id standing for the whole text of an unchunked document.
WHOLE_DOCUMENT_PAGE = 1


@dataclass(slots=True)
class PageState:
    """Pages with hits and what is known about the hits on each.

    A hit count of 0 means either "no hits" or "not rendered yet"; the two
    are not told apart. A hit cursor of 0 means no hit is selected yet.
    """

    pages: List[int] = field(default_factory=list)
    hit_counts: Dict[int, int] = field(default_factory=dict)
    hit_cursors: Dict[int, int] = field(default_factory=dict)

    def add_page(self, page: int) -> None:
        self.pages.append(page)
        self.hit_counts[page] = 0
        self.hit_cursors[page] = 0


@dataclass(slots=True)
class NavigatorState:
    total_chunks: int = 0
    has_chunks: bool = False
    current_page: int = 0
    initialized: bool = False


class PageCursor:
    """Moves the current page along the ordered pages with hits.

    The position is looked up from the current page id on every call rather
    than kept as an index.
    """

    def __init__(self, state: NavigatorState, pages: PageState) -> None:
        self.state = state
        self.pages = pages

    def _position(self) -> int:
        try:
            return self.pages.pages.index(self.state.current_page)
        except ValueError:
            return -1

    def has_next(self) -> bool:
        return self._position() < len(self.pages.pages) - 1

    def has_previous(self) -> bool:
        return self._position() > 0

    def next(self) -> int:
        if not self.has_next():
            raise NoSuchTransition("No next page.")
        self.state.current_page = self.pages.pages[self._position() + 1]
        return self.state.current_page

    def previous(self) -> int:
        if not self.has_previous():
            raise NoSuchTransition("No previous page.")
        self.state.current_page = self.pages.pages[self._position() - 1]
        return self.state.current_page


class ItemCursor:
    """Moves the selected hit within the current page."""

    def __init__(self, state: NavigatorState, pages: PageState) -> None:
        self.state = state
        self.pages = pages

    def current(self) -> int:
        return self.pages.hit_cursors.get(self.state.current_page, 0)

    def has_next(self) -> bool:
        page = self.state.current_page
        if page not in self.pages.hit_cursors:
            return False
        return self.pages.hit_cursors[page] < self.pages.hit_counts.get(page, 0)

    def has_previous(self) -> bool:
        page = self.state.current_page
        if page not in self.pages.hit_cursors:
            return False
        return self.pages.hit_cursors[page] > 1

    def next(self) -> int:
        if not self.has_next():
            raise NoSuchTransition("No next item.")
        page = self.state.current_page
        self.pages.hit_cursors[page] += 1
        return self.pages.hit_cursors[page]

    def previous(self) -> int:
        if not self.has_previous():
            raise NoSuchTransition("No previous item.")
        page = self.state.current_page
        self.pages.hit_cursors[page] -= 1
        return self.pages.hit_cursors[page]
