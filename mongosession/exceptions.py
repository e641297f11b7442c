"""Exceptions raised by the session store."""

from typing import Any, List, Optional


class ConfigurationError(RuntimeError):
    """Raised when a required parameter is missing or malformed."""


class InvalidSessionId(RuntimeError):
    """The session identifier cannot be parsed as a document key."""


class InvalidToken(RuntimeError):
    """
    A token could not be authenticated or decoded.

    When raised while loading a session, :attr:`.session` holds a fresh
    session that the caller may use in place of the one that failed.
    """

    def __init__(self, message: str, errors: Optional[List[Exception]] = None,
                 session: Optional[Any] = None) -> None:
        super().__init__(message)
        self.errors = errors or []
        self.session = session


class ExpiredToken(InvalidToken):
    """The token timestamp is outside of the allowed age window."""


class EncodingFailed(RuntimeError):
    """A value could not be encoded by any of the codecs."""


class InvalidModified(RuntimeError):
    """The reserved ``modified`` session value is not a datetime."""


class SessionCreationFailed(RuntimeError):
    """Failed to create a session in the session store."""


class SessionDeletionFailed(RuntimeError):
    """Failed to delete a session in the session store."""


class UnknownSession(RuntimeError):
    """Failed to locate a session in the session store."""
