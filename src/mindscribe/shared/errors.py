"""Exception hierarchy for MindScribe.

Every error raised on purpose by the library derives from MindScribeError so
the CLI can report it with a single ``except`` clause.  Store and identity
failures are raised by the collaborators and propagate through the managers
unchanged.
"""

from __future__ import annotations


class MindScribeError(Exception):
    """Base class for all MindScribe errors."""


class ValidationError(MindScribeError):
    """User input rejected before any store or identity call."""


class EmptyDraft(ValidationError):
    """A draft was saved with neither title nor content."""

    def __init__(self, message: str = "Cannot save empty draft") -> None:
        super().__init__(message)


class IncompletePost(ValidationError):
    """A post was published without a title or without content."""

    def __init__(self, missing: str) -> None:
        self.missing = missing
        super().__init__(f"Please add {missing} before publishing")


class NotFound(MindScribeError):
    """The requested document does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Not found: {path}")


class StoreUnavailable(MindScribeError):
    """The document or object store could not be reached."""


class PermissionDenied(MindScribeError):
    """The caller does not own the path it tried to read or write."""

    def __init__(self, path: str, owner_id: str) -> None:
        self.path = path
        self.owner_id = owner_id
        super().__init__(f"Permission denied for {owner_id} on {path}")


class AuthError(MindScribeError):
    """Identity provider failure, identified by a stable code."""

    def __init__(self, code: str, message: str = "") -> None:
        self.code = code
        self.message = message or code
        super().__init__(f"{code}: {self.message}")


class SessionClosed(MindScribeError):
    """A session was used before start() or after close()."""


class UnknownCommand(MindScribeError):
    """No handler is registered under the dispatched name."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Unknown command: {name}")
