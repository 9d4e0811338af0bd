"""Command-line front door for deff.

Parses CLI options, validates the comparison request, and configures
logging. Then dispatches into the review runtime.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from collections.abc import Mapping, Sequence

from .errors import DeffError
from .git import DEFAULT_CONTEXT_LINES
from .model import STRATEGY_RANGE, STRATEGY_UPSTREAM_AHEAD, ComparisonSpec
from .runtime.app import LOGGER_NAME, ReviewOptions, run_review
from .runtime.config import MAX_CONTEXT_LINES, load_context_lines, load_syntax_dirs, load_theme_mode
from .syntax.themes import THEME_AUTO, THEME_ENV_VAR, THEME_MODES

LOG_FORMAT = "deff: %(message)s"


def _context_lines(value: str) -> int:
    """argparse type for a non-negative number of context lines."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed < 0 or parsed > MAX_CONTEXT_LINES:
        raise argparse.ArgumentTypeError(f"value must be between 0 and {MAX_CONTEXT_LINES}")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deff",
        description="Review git changes side by side in the terminal with syntax highlighting.",
    )
    parser.add_argument(
        "--strategy",
        choices=(STRATEGY_UPSTREAM_AHEAD, STRATEGY_RANGE),
        default=None,
        help="Comparison strategy (default: range when --base is given, else upstream-ahead).",
    )
    parser.add_argument("--base", default=None, help="Base git ref for --strategy range.")
    parser.add_argument("--head", default="HEAD", help="Head git ref (default: HEAD).")
    parser.add_argument(
        "--include-uncommitted",
        action="store_true",
        help="Compare against the working tree, including staged, unstaged and untracked files.",
    )
    parser.add_argument(
        "--theme",
        choices=THEME_MODES,
        default=None,
        help=f"Color theme (default: ${THEME_ENV_VAR}, then config, then auto).",
    )
    parser.add_argument(
        "--context",
        type=_context_lines,
        default=None,
        metavar="N",
        help=f"Lines of diff context around each change (default: {DEFAULT_CONTEXT_LINES}).",
    )
    parser.add_argument(
        "--syntax-dir",
        action="append",
        default=[],
        metavar="DIR",
        help="Extra directory of grammar files (repeatable).",
    )
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument("--nopager", action="store_true", help="Print the diff directly without the interactive UI.")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug details to stderr.")
    return parser


def _resolve_theme_mode(flag: str | None, environ: Mapping[str, str]) -> str:
    """Flag, then environment, then config, then auto."""
    if flag is not None:
        return flag
    if environ.get(THEME_ENV_VAR, "").strip().lower() in THEME_MODES:
        return THEME_AUTO
    return load_theme_mode() or THEME_AUTO


def parse_options(
    argv: Sequence[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> tuple[ReviewOptions, bool]:
    """Parse and validate ``argv``; returns the options and the verbose flag.

    Invalid combinations exit through ``parser.error`` with status 2.
    """
    env = os.environ if environ is None else environ
    parser = build_parser()
    args = parser.parse_args(argv)

    strategy = args.strategy
    if strategy is None:
        strategy = STRATEGY_RANGE if args.base is not None else STRATEGY_UPSTREAM_AHEAD
    if strategy == STRATEGY_RANGE and not args.base:
        parser.error("--strategy range requires --base <git-ref>")
    if strategy == STRATEGY_UPSTREAM_AHEAD and args.base is not None:
        parser.error("--base cannot be combined with --strategy upstream-ahead")
    if not args.head.strip():
        parser.error("--head must not be empty")
    if args.include_uncommitted and args.head != "HEAD":
        parser.error("--include-uncommitted requires --head HEAD")

    context_lines = args.context
    if context_lines is None:
        configured = load_context_lines()
        context_lines = DEFAULT_CONTEXT_LINES if configured is None else configured

    spec = ComparisonSpec(
        strategy=strategy,
        base_ref=args.base,
        head_ref=args.head,
        include_uncommitted=args.include_uncommitted,
    )
    options = ReviewOptions(
        spec=spec,
        theme_mode=_resolve_theme_mode(args.theme, env),
        context_lines=context_lines,
        no_color=args.no_color,
        nopager=args.nopager,
        syntax_dirs=tuple(args.syntax_dir) + tuple(load_syntax_dirs()),
    )
    return options, args.verbose


def configure_logging(verbose: bool = False) -> logging.Logger:
    """Send ``deff`` log records to stderr, warnings only unless ``verbose``."""
    log = logging.getLogger(LOGGER_NAME)
    for handler in list(log.handlers):
        log.removeHandler(handler)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if verbose else logging.WARNING)
    log.propagate = False
    return log


def main(argv: Sequence[str] | None = None) -> None:
    """Parse CLI arguments and run one review session.

    Fatal startup errors exit with status 1 and a ``deff: <message>`` line
    before anything is drawn.
    """
    options, verbose = parse_options(argv)
    configure_logging(verbose)
    try:
        run_review(options)
    except DeffError as exc:
        raise SystemExit(f"deff: {exc}") from exc
    except KeyboardInterrupt:
        raise SystemExit(130) from None


if __name__ == "__main__":
    main()
