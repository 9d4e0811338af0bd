"""Exception hierarchy for fatal startup failures.

Everything here is raised before the first frame is drawn and surfaces to
the user as a one-line message from the CLI.
"""

from __future__ import annotations


class DeffError(Exception):
    """Base class for errors that abort a review session at startup."""


class ComparisonError(DeffError):
    """The comparison between two revisions could not be resolved."""


class NotARepositoryError(ComparisonError):
    """The working directory is not inside a git repository."""


class NoUpstreamError(ComparisonError):
    """The current branch has no upstream and no explicit base was given."""


class InvalidRangeError(ComparisonError):
    """A base or head reference does not resolve to a commit."""

    def __init__(self, ref: str, detail: str = "") -> None:
        self.ref = ref
        self.detail = detail
        message = f"Invalid revision range: cannot resolve {ref!r} to a commit"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class GitCommandError(ComparisonError):
    """A git invocation failed after the comparison itself was resolved."""

    def __init__(self, args: list[str], detail: str) -> None:
        self.args_list = list(args)
        self.detail = detail
        super().__init__(f"git {' '.join(args)} failed: {detail}")


class TerminalInitError(DeffError):
    """The controlling terminal cannot be put into interactive mode."""
