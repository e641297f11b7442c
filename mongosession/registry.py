"""
Request-scoped registry of sessions.

Ensures that a given session is loaded at most once per request, so that
every component handling the request works with the same instance. The
registry lives in the WSGI environ of the request.
"""

from typing import Dict, Optional, Tuple, TYPE_CHECKING

from werkzeug.wrappers import Request, Response

from .domain import Session
from .exceptions import InvalidToken

if TYPE_CHECKING:
    from .store import MongoDBStore

ENVIRON_KEY = 'mongosession.registry'


class Registry(object):
    """Sessions registered for a single request."""

    def __init__(self, request: Request) -> None:
        self.request = request
        self._sessions: Dict[str, Tuple[Session, Optional[InvalidToken]]] = {}

    def get(self, store: 'MongoDBStore', name: str) -> Session:
        """
        Get the session ``name``, loading it from ``store`` the first time.

        Raises
        ------
        :class:`InvalidToken`
            If the client token could not be decoded. The exception is
            raised again on every later call for the same name, and carries
            the same fresh session.

        """
        if name in self._sessions:
            session, error = self._sessions[name]
        else:
            error = None
            try:
                session = store.new(self.request, name)
            except InvalidToken as e:
                session, error = e.session, e
            self._sessions[name] = (session, error)
        if error is not None:
            raise error
        return session

    def save(self, response: Response) -> None:
        """Save all sessions registered for the request."""
        for session, _ in self._sessions.values():
            session.save(self.request, response)


def get_registry(request: Request) -> Registry:
    """Get the registry for ``request``, creating it if necessary."""
    registry: Optional[Registry] = request.environ.get(ENVIRON_KEY)
    if registry is None:
        registry = Registry(request)
        request.environ[ENVIRON_KEY] = registry
    return registry


def save(request: Request, response: Response) -> None:
    """Save all sessions registered for ``request``."""
    get_registry(request).save(response)
