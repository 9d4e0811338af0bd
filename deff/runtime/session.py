"""Interactive review session state and key dispatch.

``ReviewSession`` owns the navigation state, search prompt and reviewed
marks for one run. It turns key tokens into transitions and renders the
current frame; it performs no terminal I/O itself.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import replace

from ..model import DiffFileView, ResolvedComparison
from ..navigation.keys import event_for_key
from ..navigation.state import (
    JumpToRow,
    NavigationContext,
    NavigationState,
    Resize,
    initial_state,
    transition,
)
from ..render.engine import FrameChrome, render_frame
from ..render.frame import Frame
from ..review import ReviewStore
from ..search import (
    SearchState,
    begin_search,
    edit_search,
    first_match_index,
    matching_rows,
    next_match_index,
    search_status,
)
from ..syntax.themes import Theme

logger = logging.getLogger(__name__)

QUIT_KEYS = frozenset({"q", "CTRL_C"})


class ReviewSession:
    def __init__(
        self,
        views: Sequence[DiffFileView],
        theme: Theme,
        comparison: ResolvedComparison | None = None,
        review_store: ReviewStore | None = None,
        width: int = 80,
        height: int = 24,
        color: bool = True,
    ) -> None:
        self.views = tuple(views)
        self.theme = theme
        self.comparison = comparison
        self.review_store = review_store if review_store is not None else ReviewStore()
        self.width = width
        self.height = height
        self.color = color
        self.nav: NavigationState = initial_state(len(self.views))
        self.search = SearchState()
        self.status_message = ""

    def context(self) -> NavigationContext:
        return NavigationContext(views=self.views, width=self.width, height=self.height)

    @property
    def active_view(self) -> DiffFileView | None:
        if 0 <= self.nav.active_file_index < len(self.views):
            return self.views[self.nav.active_file_index]
        return None

    def apply(self, event: object) -> bool:
        """Run one navigation transition; return whether the state changed."""
        updated = transition(self.nav, event, self.context())
        if updated == self.nav:
            return False
        if updated.active_file_index != self.nav.active_file_index:
            # Match positions belong to the file they were found in.
            self.search = replace(self.search, match_index=None)
        self.nav = updated
        return True

    def resize(self, width: int, height: int) -> bool:
        if (width, height) == (self.width, self.height):
            return False
        self.width = width
        self.height = height
        self.apply(Resize(width, height))
        return True

    def reviewed_indices(self) -> frozenset[int]:
        return frozenset(
            index
            for index, view in enumerate(self.views)
            if self.review_store.is_reviewed(view.descriptor.review_key)
        )

    def _jump_to_match(self, direction: int, submitted: bool = False) -> None:
        query = self.search.query
        if not query:
            self.status_message = "no search query (press / to search)"
            return
        rows = matching_rows(self.active_view, query)
        if submitted:
            index = first_match_index(rows, self.nav.active_scroll.vertical)
        else:
            index = next_match_index(len(rows), self.search.match_index, direction)
        self.search = replace(self.search, match_index=index)
        if index is None:
            self.status_message = f"search: /{query} (no matches)"
            return
        self.apply(JumpToRow(rows[index]))

    def _jump_to_change(self, direction: int) -> None:
        view = self.active_view
        if view is None:
            return
        current = self.nav.active_scroll.vertical
        starts = view.change_starts
        if direction > 0:
            targets = [row for row in starts if row > current]
            target = targets[0] if targets else None
        else:
            targets = [row for row in starts if row < current]
            target = targets[-1] if targets else None
        if target is None:
            self.status_message = "no more changes" if direction > 0 else "no earlier changes"
            return
        self.apply(JumpToRow(target))

    def _toggle_reviewed(self) -> None:
        view = self.active_view
        if view is None:
            return
        reviewed = self.review_store.toggle(view.descriptor.review_key)
        state = "reviewed" if reviewed else "not reviewed"
        self.status_message = f"marked {view.descriptor.display_path} as {state}"
        logger.debug("review mark %s -> %s", view.descriptor.review_key, reviewed)

    def handle_key(self, key: str) -> bool:
        """Dispatch one key token; return ``True`` when the session should quit."""
        if self.search.editing:
            self.search, submitted = edit_search(self.search, key)
            if submitted:
                self._jump_to_match(1, submitted=True)
            return False

        self.status_message = ""
        if key in QUIT_KEYS:
            return True
        if key == "/":
            self.search = begin_search(self.search)
        elif key == "ESC":
            self.search = SearchState()
        elif key == "n":
            self._jump_to_match(1)
        elif key == "N":
            self._jump_to_match(-1)
        elif key == "}":
            self._jump_to_change(1)
        elif key == "{":
            self._jump_to_change(-1)
        elif key == "r":
            self._toggle_reviewed()
        else:
            event = event_for_key(key)
            if event is not None:
                self.apply(event)
        return False

    def chrome(self) -> FrameChrome:
        status = self.status_message
        if not status and self.search.query:
            status = search_status(self.active_view, self.search.query, self.search.match_index)
        return FrameChrome(
            views=self.views,
            comparison=self.comparison,
            reviewed=self.reviewed_indices(),
            search_query=self.search.query,
            prompt=self.search.draft if self.search.editing else None,
            status_message=status,
        )

    def render(self) -> Frame:
        return render_frame(self.width, self.height, self.active_view, self.nav, self.theme, self.chrome())
