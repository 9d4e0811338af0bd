"""Unified-diff parsing and two-column alignment."""

from __future__ import annotations

from .align import AlignedFile, align_hunks, compute_intraline_spans
from .parse import is_binary_diff, parse_unified_diff

__all__ = [
    "AlignedFile",
    "align_hunks",
    "compute_intraline_spans",
    "is_binary_diff",
    "parse_unified_diff",
]
