"""Public runtime orchestration entry points.

This package groups the review bootstrap (`run_review`) and the lower-level
event loop used by tests and composition code.
"""

from __future__ import annotations


def run_review(*args, **kwargs):
    """Lazily import the review entrypoint to avoid heavy bootstrap on import."""
    from .app import run_review as _run_review

    return _run_review(*args, **kwargs)


def run_main_loop(*args, **kwargs):
    """Lazily import loop runner to avoid package-import cycles."""
    from .loop import run_main_loop as _run_main_loop

    return _run_main_loop(*args, **kwargs)


__all__ = [
    "run_review",
    "run_main_loop",
]
