"""Defines session concepts for the MongoDB session store."""

from typing import Any, Optional, NamedTuple, Mapping, TYPE_CHECKING
from datetime import datetime

from flask.sessions import SessionMixin
from werkzeug.datastructures import CallbackDict

if TYPE_CHECKING:
    from .store import MongoDBStore
    from werkzeug.wrappers import Request, Response

MODIFIED = 'modified'
"""Reserved session key that pins the document modification time."""


class Options(NamedTuple):
    """Cookie attributes for a session."""

    path: str = '/'
    """Cookie path."""

    domain: Optional[str] = None
    """Cookie domain. If ``None``, the cookie is host-only."""

    max_age: int = 0
    """
    Lifetime of the session in seconds.

    ``0`` means no Max-Age attribute (the cookie lasts for the browser
    session). A negative value deletes the session when it is saved.
    """

    secure: bool = False
    """Only send the cookie over HTTPS."""

    http_only: bool = False
    """Hide the cookie from client-side scripts."""

    same_site: Optional[str] = None
    """``'Strict'``, ``'Lax'``, ``'None'`` or ``None`` to omit."""


class Document(NamedTuple):
    """A session as persisted in the collection."""

    id: Any
    """Document key, a :class:`bson.ObjectId`."""

    data: str
    """Encoded and authenticated session values."""

    modified: datetime
    """When the document was last written. TTL indexes expire on this."""

    def to_mongo(self) -> dict:
        """Generate the BSON-ready representation of this document."""
        return {'_id': self.id, 'data': self.data, 'modified': self.modified}

    @classmethod
    def from_mongo(cls, raw: Mapping[str, Any]) -> 'Document':
        """Instantiate from a raw document returned by the driver."""
        return cls(id=raw['_id'], data=raw['data'], modified=raw['modified'])


class Session(CallbackDict, SessionMixin):
    """
    A named session whose values are kept in the session store.

    The session itself is the mapping of values that the application reads
    and writes. Only :attr:`.session_id` ever leaves the server, encoded in
    the client token.
    """

    def __init__(self, store: 'MongoDBStore', name: str,
                 options: Optional[Options] = None,
                 initial: Optional[Mapping[str, Any]] = None) -> None:
        def on_update(self: 'Session') -> None:
            self.modified = True
            self.accessed = True

        super().__init__(initial, on_update)
        self.store = store
        self.name = name
        self.options = options if options is not None else Options()
        self.session_id = ''
        self.is_new = True
        self.modified = False
        self.accessed = False

    def __getitem__(self, key: str) -> Any:
        self.accessed = True
        return super().__getitem__(key)

    def get(self, key: str, default: Any = None) -> Any:
        self.accessed = True
        return super().get(key, default)

    @property
    def new(self) -> bool:  # type: ignore
        """Whether the session was not loaded from the store."""
        return self.is_new

    def save(self, request: 'Request', response: 'Response') -> None:
        """Save this session with the store that created it."""
        self.store.save(request, response, self)

    def __repr__(self) -> str:
        return (f'<{type(self).__name__} {self.name}'
                f' id={self.session_id!r} new={self.is_new}'
                f' {dict.__repr__(self)}>')
