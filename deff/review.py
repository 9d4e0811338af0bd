"""Reviewed-file marks for one comparison scope.

Marks live in ``<git-dir>/deff/reviewed/<scope>.txt``, one hashed file
identity per line, so they follow the repository rather than the user.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path

from .model import ResolvedComparison

logger = logging.getLogger(__name__)

REVIEW_DIR_PARTS = ("deff", "reviewed")


def _digest(value: str) -> str:
    return hashlib.sha1(value.encode("utf-8", errors="surrogateescape")).hexdigest()


def review_store_path(git_dir: Path, comparison: ResolvedComparison) -> Path:
    return git_dir.joinpath(*REVIEW_DIR_PARTS, f"{_digest(comparison.scope_key)[:16]}.txt")


class ReviewStore:
    """Set of reviewed file identities, persisted after every toggle.

    With ``path=None`` (or after a write failure) marks are kept in memory
    only for the rest of the session.
    """

    def __init__(self, path: Path | None = None, digests: set[str] | None = None) -> None:
        self.path = path
        self._digests: set[str] = set(digests or ())

    @classmethod
    def load(cls, git_dir: Path, comparison: ResolvedComparison) -> ReviewStore:
        path = review_store_path(git_dir, comparison)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return cls(path)
        except OSError as exc:
            logger.warning("cannot read reviewed marks from %s: %s", path, exc)
            return cls(path)
        digests = {line.strip() for line in text.splitlines() if line.strip()}
        return cls(path, digests)

    def is_reviewed(self, review_key: str) -> bool:
        return _digest(review_key) in self._digests

    def toggle(self, review_key: str) -> bool:
        """Flip the mark for ``review_key`` and return the new reviewed state."""
        digest = _digest(review_key)
        if digest in self._digests:
            self._digests.discard(digest)
            reviewed = False
        else:
            self._digests.add(digest)
            reviewed = True
        self._save()
        return reviewed

    def _save(self) -> None:
        if self.path is None:
            return
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text("".join(f"{digest}\n" for digest in sorted(self._digests)), encoding="utf-8")
        except OSError as exc:
            logger.warning("cannot save reviewed marks to %s: %s", self.path, exc)
            self.path = None
