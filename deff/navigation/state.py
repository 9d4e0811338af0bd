"""Navigation state and its pure transition function.

``transition(state, event, context)`` never mutates its inputs and is
total: every event yields a state, unhandled combinations return the
input unchanged. Scroll offsets are re-clamped on every transition.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace

from ..model import PANE_LEFT, PANE_RIGHT, DiffFileView, other_pane
from ..render.layout import FILE_STRIP_ROW, FrameLayout, file_at_strip_x, layout_for_view

KEY_SCROLL_STEP = 1
WHEEL_SCROLL_STEP = 3
HORIZONTAL_STEP = 8

MOUSE_WHEEL_UP = "wheel_up"
MOUSE_WHEEL_DOWN = "wheel_down"
MOUSE_WHEEL_LEFT = "wheel_left"
MOUSE_WHEEL_RIGHT = "wheel_right"
MOUSE_LEFT_DOWN = "left_down"
MOUSE_LEFT_UP = "left_up"
MOUSE_MOVE = "move"


@dataclass(frozen=True)
class ScrollState:
    vertical: int = 0
    left: int = 0
    right: int = 0

    def horizontal(self, pane: str) -> int:
        return self.left if pane == PANE_LEFT else self.right

    def with_horizontal(self, pane: str, value: int) -> ScrollState:
        if pane == PANE_LEFT:
            return replace(self, left=value)
        return replace(self, right=value)


ZERO_SCROLL = ScrollState()


@dataclass(frozen=True)
class NavigationState:
    """Active file, active pane and the scroll memory of every visited file."""

    active_file_index: int = 0
    active_pane: str = PANE_LEFT
    scrolls: Mapping[int, ScrollState] = field(default_factory=dict)

    def scroll_for(self, index: int) -> ScrollState:
        return self.scrolls.get(index, ZERO_SCROLL)

    @property
    def active_scroll(self) -> ScrollState:
        return self.scroll_for(self.active_file_index)

    def with_scroll(self, index: int, scroll: ScrollState) -> NavigationState:
        scrolls = dict(self.scrolls)
        scrolls[index] = scroll
        return replace(self, scrolls=scrolls)


@dataclass(frozen=True)
class NavigationContext:
    """Read-only inputs a transition needs besides the state itself."""

    views: Sequence[DiffFileView]
    width: int
    height: int

    def view(self, index: int) -> DiffFileView | None:
        if 0 <= index < len(self.views):
            return self.views[index]
        return None

    def layout(self, index: int) -> FrameLayout:
        return layout_for_view(self.width, self.height, self.view(index))


@dataclass(frozen=True)
class NextFile:
    pass


@dataclass(frozen=True)
class PrevFile:
    pass


@dataclass(frozen=True)
class SelectFile:
    index: int


@dataclass(frozen=True)
class ScrollVertical:
    delta: int


@dataclass(frozen=True)
class ScrollPage:
    direction: int


@dataclass(frozen=True)
class JumpTop:
    pass


@dataclass(frozen=True)
class JumpBottom:
    pass


@dataclass(frozen=True)
class JumpToRow:
    row: int


@dataclass(frozen=True)
class ScrollHorizontal:
    """Horizontal motion; ``pane=None`` targets the active pane."""

    delta: int
    pane: str | None = None


@dataclass(frozen=True)
class SwitchPane:
    pass


@dataclass(frozen=True)
class FocusPane:
    pane: str


@dataclass(frozen=True)
class MouseEvent:
    """Decoded mouse report; ``x``/``y`` are zero-based screen cells."""

    kind: str
    x: int
    y: int
    shift: bool = False


@dataclass(frozen=True)
class Resize:
    width: int
    height: int


def initial_state(file_count: int) -> NavigationState:
    scrolls = {0: ZERO_SCROLL} if file_count > 0 else {}
    return NavigationState(active_file_index=0, active_pane=PANE_LEFT, scrolls=scrolls)


def clamp_scroll(scroll: ScrollState, view: DiffFileView | None, layout: FrameLayout) -> ScrollState:
    """Clamp all three offsets of ``scroll`` against ``view`` shown in ``layout``."""
    if view is None:
        return ZERO_SCROLL
    max_vertical = max(0, view.row_count - layout.viewport_rows)
    max_left = max(0, view.max_left_width - layout.content_width)
    max_right = max(0, view.max_right_width - layout.content_width)
    clamped = ScrollState(
        vertical=max(0, min(scroll.vertical, max_vertical)),
        left=max(0, min(scroll.left, max_left)),
        right=max(0, min(scroll.right, max_right)),
    )
    return scroll if clamped == scroll else clamped


def _update_active(state: NavigationState, context: NavigationContext, scroll: ScrollState) -> NavigationState:
    index = state.active_file_index
    clamped = clamp_scroll(scroll, context.view(index), context.layout(index))
    if clamped == state.active_scroll and index in state.scrolls:
        return state
    return state.with_scroll(index, clamped)


def _select_file(state: NavigationState, context: NavigationContext, index: int) -> NavigationState:
    index = max(0, min(index, len(context.views) - 1))
    scroll = clamp_scroll(state.scroll_for(index), context.view(index), context.layout(index))
    scrolls = dict(state.scrolls)
    scrolls[index] = scroll
    return NavigationState(active_file_index=index, active_pane=PANE_LEFT, scrolls=scrolls)


def _scroll_horizontal(
    state: NavigationState, context: NavigationContext, pane: str, delta: int
) -> NavigationState:
    scroll = state.active_scroll
    moved = scroll.with_horizontal(pane, scroll.horizontal(pane) + delta)
    return _update_active(state, context, moved)


def _resize(state: NavigationState, context: NavigationContext) -> NavigationState:
    scrolls = {
        index: clamp_scroll(scroll, context.view(index), context.layout(index))
        for index, scroll in state.scrolls.items()
    }
    if scrolls == dict(state.scrolls):
        return state
    return replace(state, scrolls=scrolls)


def _mouse(state: NavigationState, event: MouseEvent, context: NavigationContext) -> NavigationState:
    layout = context.layout(state.active_file_index)
    hovered = layout.pane_at(event.x, event.y)

    if event.kind == MOUSE_LEFT_DOWN and event.y == FILE_STRIP_ROW:
        clicked = file_at_strip_x(context.views, state.active_file_index, context.width, event.x)
        if clicked is None:
            return state
        return _select_file(state, context, clicked)

    if event.kind in {MOUSE_WHEEL_UP, MOUSE_WHEEL_DOWN}:
        sign = -1 if event.kind == MOUSE_WHEEL_UP else 1
        if event.shift:
            pane = hovered or state.active_pane
            focused = replace(state, active_pane=pane) if pane != state.active_pane else state
            return _scroll_horizontal(focused, context, pane, sign * HORIZONTAL_STEP)
        scroll = state.active_scroll
        return _update_active(state, context, replace(scroll, vertical=scroll.vertical + sign * WHEEL_SCROLL_STEP))

    if event.kind in {MOUSE_WHEEL_LEFT, MOUSE_WHEEL_RIGHT}:
        sign = -1 if event.kind == MOUSE_WHEEL_LEFT else 1
        pane = hovered or state.active_pane
        focused = replace(state, active_pane=pane) if pane != state.active_pane else state
        return _scroll_horizontal(focused, context, pane, sign * HORIZONTAL_STEP)

    if event.kind in {MOUSE_MOVE, MOUSE_LEFT_DOWN}:
        if hovered is None or hovered == state.active_pane:
            return state
        return replace(state, active_pane=hovered)

    return state


def transition(state: NavigationState, event: object, context: NavigationContext) -> NavigationState:
    """Apply one navigation ``event`` and return the resulting state."""
    if isinstance(event, Resize):
        return _resize(state, replace(context, width=event.width, height=event.height))

    if not context.views:
        return state

    if isinstance(event, NextFile):
        if state.active_file_index + 1 >= len(context.views):
            return state
        return _select_file(state, context, state.active_file_index + 1)
    if isinstance(event, PrevFile):
        if state.active_file_index <= 0:
            return state
        return _select_file(state, context, state.active_file_index - 1)
    if isinstance(event, SelectFile):
        if not 0 <= event.index < len(context.views):
            return state
        return _select_file(state, context, event.index)

    scroll = state.active_scroll
    if isinstance(event, ScrollVertical):
        return _update_active(state, context, replace(scroll, vertical=scroll.vertical + event.delta))
    if isinstance(event, ScrollPage):
        step = max(1, context.layout(state.active_file_index).viewport_rows // 2)
        direction = 1 if event.direction > 0 else -1
        return _update_active(state, context, replace(scroll, vertical=scroll.vertical + direction * step))
    if isinstance(event, JumpTop):
        return _update_active(state, context, replace(scroll, vertical=0))
    if isinstance(event, JumpBottom):
        view = context.view(state.active_file_index)
        bottom = view.row_count if view is not None else 0
        return _update_active(state, context, replace(scroll, vertical=bottom))
    if isinstance(event, JumpToRow):
        return _update_active(state, context, replace(scroll, vertical=max(0, event.row)))
    if isinstance(event, ScrollHorizontal):
        pane = event.pane if event.pane in {PANE_LEFT, PANE_RIGHT} else state.active_pane
        return _scroll_horizontal(state, context, pane, event.delta)
    if isinstance(event, SwitchPane):
        return replace(state, active_pane=other_pane(state.active_pane))
    if isinstance(event, FocusPane):
        if event.pane not in {PANE_LEFT, PANE_RIGHT} or event.pane == state.active_pane:
            return state
        return replace(state, active_pane=event.pane)
    if isinstance(event, MouseEvent):
        return _mouse(state, event, context)
    return state
