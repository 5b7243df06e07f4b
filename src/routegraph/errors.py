"""Exception hierarchy for routegraph.

Only :class:`GraphInvariantError` is meant to escape to callers of the query
surface; the others are raised at component boundaries and downgraded there
(storage failures become cache misses, bad configuration aborts the CLI).
"""

from __future__ import annotations

class RouteGraphError(Exception):
    """Base class for every error raised by routegraph."""

class GraphInvariantError(RouteGraphError):
    """The import graph violated one of its structural invariants.

    This signals a programming defect, not a runtime condition to recover from.
    """

class StorageError(RouteGraphError):
    """A byte store could not complete an upload, download, list or delete."""

    def __init__(self, operation: str, key: str, reason: str = "") -> None:
        self.operation = operation
        self.key = key
        self.reason = reason
        message = f"{operation} failed for {key!r}"
        if reason:
            message += f": {reason}"
        super().__init__(message)

class ConfigError(RouteGraphError):
    """Invalid analyzer configuration."""
