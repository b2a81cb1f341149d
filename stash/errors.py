"""Exception hierarchy shared by the store, the API and the CLI."""

from __future__ import annotations


class StashError(Exception):
    """Base class for all domain errors raised by Stash."""


class NotFoundError(StashError, LookupError):
    """A resource or folder id does not exist."""


class FolderRuleError(StashError, ValueError):
    """A move/copy/create would break a folder type or nesting rule."""


class LifecycleError(StashError, ValueError):
    """An archive/delete/restore transition is not valid from the current state."""
