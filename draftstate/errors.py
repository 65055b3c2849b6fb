"""
draftstate.errors — Exception hierarchy.

Every error raised by the engine derives from DraftStateError.  The
concrete classes also derive from the builtin exception a caller would
naturally expect, so ``except TypeError`` / ``except ValueError`` keep
working around code that does not know about this package.
"""

from typing import Any, Optional


class DraftStateError(Exception):
    """Base class for all draftstate errors."""


class ConfigurationError(DraftStateError, TypeError):
    """
    A tracked state was set up with something it cannot manage.

    Raised for double wrapping (building a tracked state over a handle or a
    wrapper), non-callable listeners or schedulers, and values that are not
    tree-shaped plain data.
    """


class PatchError(DraftStateError, ValueError):
    """A patch is malformed or does not fit the value it is applied to."""

    def __init__(self, message: str, patch: Optional[Any] = None):
        super().__init__(message)
        self.patch = patch


class StaleWrapperError(DraftStateError, RuntimeError):
    """
    A wrapper was used after the part of the draft it pointed at went away.

    This happens after the root value is reassigned, after patches are
    applied to the state, or after the wrapper's own key was overwritten
    or deleted through its parent.
    """
