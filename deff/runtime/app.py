"""Review bootstrap: resolve the comparison, build views, run the UI.

Everything that can fail fatally happens here before the terminal is
touched. The interactive loop only starts once every file view exists.
"""

from __future__ import annotations

import contextlib
import logging
import logging.handlers
import os
import shutil
import sys
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ..git import DEFAULT_CONTEXT_LINES, collect_comparison_result, resolve_comparison, resolve_repository
from ..model import STRATEGY_UPSTREAM_AHEAD, ComparisonResult, ComparisonSpec, DiffFileView, ResolvedComparison
from ..navigation.state import NavigationState
from ..render.engine import FrameChrome, render_frame
from ..render.layout import FOOTER_ROWS, HEADER_ROWS, MIN_HEIGHT, MIN_WIDTH
from ..review import ReviewStore
from ..syntax import GrammarRegistry, Theme, load_theme, load_user_grammars, syntax_search_dirs
from ..syntax.themes import THEME_AUTO
from ..view import build_file_views
from .config import USER_SYNTAX_DIR
from .loop import run_main_loop
from .session import ReviewSession
from .terminal import TerminalController

logger = logging.getLogger(__name__)

LOGGER_NAME = "deff"
LOG_BUFFER_CAPACITY = 10_000


@dataclass(frozen=True)
class ReviewOptions:
    """Validated options for one run, assembled by the CLI."""

    spec: ComparisonSpec = field(default_factory=ComparisonSpec)
    theme_mode: str = THEME_AUTO
    context_lines: int = DEFAULT_CONTEXT_LINES
    no_color: bool = False
    nopager: bool = False
    syntax_dirs: tuple[str, ...] = ()
    cwd: Path | None = None


def empty_comparison_message(comparison: ResolvedComparison) -> str:
    if (
        comparison.strategy == STRATEGY_UPSTREAM_AHEAD
        and comparison.ahead_count == 0
        and not comparison.include_uncommitted
    ):
        return f"No local commits ahead of {comparison.base_ref}."
    return f"No changed files found for {comparison.summary}."


def load_registry(
    repo_root: Path,
    extra_dirs: Sequence[str] = (),
    environ: Mapping[str, str] | None = None,
) -> GrammarRegistry:
    dirs = syntax_search_dirs(repo_root, environ, user_dir=USER_SYNTAX_DIR, extra_dirs=extra_dirs)
    return GrammarRegistry(load_user_grammars(dirs))


def render_static(
    views: Sequence[DiffFileView],
    theme: Theme,
    comparison: ResolvedComparison | None,
    width: int,
    color: bool,
    reviewed: frozenset[int] = frozenset(),
) -> str:
    """Render every file at full height, one after another, without key help."""
    width = max(MIN_WIDTH, width)
    chrome = FrameChrome(views=views, comparison=comparison, reviewed=reviewed)
    out: list[str] = []
    for index, view in enumerate(views):
        height = max(MIN_HEIGHT, HEADER_ROWS + max(1, view.row_count) + FOOTER_ROWS)
        frame = render_frame(width, height, view, NavigationState(active_file_index=index), theme, chrome)
        out.extend(frame.to_lines(color=color)[:-FOOTER_ROWS])
    return "".join(f"{line}\n" for line in out)


@contextlib.contextmanager
def buffered_log_output(logger_name: str = LOGGER_NAME):
    """Hold log records in memory while the alternate screen is active.

    Records go to the original handlers once the block exits.
    """
    log = logging.getLogger(logger_name)
    originals = list(log.handlers)
    buffers = [
        logging.handlers.MemoryHandler(
            LOG_BUFFER_CAPACITY, flushLevel=logging.CRITICAL + 1, target=handler, flushOnClose=True
        )
        for handler in originals
    ]
    for handler, buffer in zip(originals, buffers):
        buffer.setLevel(handler.level)
        log.removeHandler(handler)
        log.addHandler(buffer)
    try:
        yield
    finally:
        for handler, buffer in zip(originals, buffers):
            log.removeHandler(buffer)
            log.addHandler(handler)
            buffer.close()


def _terminal_width() -> int:
    return shutil.get_terminal_size((80, 24)).columns


def load_comparison(options: ReviewOptions) -> ComparisonResult:
    cwd = options.cwd if options.cwd is not None else Path.cwd()
    repo_root, git_dir = resolve_repository(cwd)
    comparison = resolve_comparison(repo_root, options.spec)
    logger.debug("comparing %s (%s)", comparison.summary, comparison.strategy)
    return collect_comparison_result(repo_root, git_dir, comparison, options.context_lines)


def run_review(options: ReviewOptions) -> None:
    """Resolve, build and show one review session.

    Fatal problems raise ``DeffError`` subclasses before any output. An
    empty comparison prints a one-line notice instead of opening the UI.
    """
    result = load_comparison(options)
    comparison = result.comparison
    if not result.file_descriptors:
        sys.stdout.write(empty_comparison_message(comparison) + "\n")
        return

    repo_root = Path(result.repo_root)
    theme = load_theme(options.theme_mode)
    registry = load_registry(repo_root, options.syntax_dirs)
    views = build_file_views(result, registry, theme)
    store = ReviewStore.load(Path(result.git_dir), comparison)

    if options.nopager or not os.isatty(sys.stdin.fileno()) or not os.isatty(sys.stdout.fileno()):
        color = not options.no_color and os.isatty(sys.stdout.fileno())
        reviewed = frozenset(
            index for index, view in enumerate(views) if store.is_reviewed(view.descriptor.review_key)
        )
        sys.stdout.write(render_static(views, theme, comparison, _terminal_width(), color, reviewed))
        return

    stdin_fd = sys.stdin.fileno()
    terminal = TerminalController(stdin_fd, sys.stdout.fileno())
    term = shutil.get_terminal_size((80, 24))
    session = ReviewSession(
        views,
        theme,
        comparison=comparison,
        review_store=store,
        width=term.columns,
        height=term.lines,
        color=not options.no_color,
    )
    with buffered_log_output():
        run_main_loop(session, terminal, stdin_fd)
