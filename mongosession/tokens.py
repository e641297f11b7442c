"""Transports that carry the session token between client and server."""

from abc import ABC, abstractmethod
from typing import Optional

from werkzeug.wrappers import Request, Response

from .domain import Options


class TokenGetSetter(ABC):
    """Reads and writes the client token for a named session."""

    @abstractmethod
    def get_token(self, request: Request, name: str) -> Optional[str]:
        """Get the token for session ``name``, or ``None`` if absent."""

    @abstractmethod
    def set_token(self, response: Response, name: str, value: str,
                  options: Options) -> None:
        """
        Set the token for session ``name`` on ``response``.

        An empty ``value`` or a negative ``options.max_age`` clears the
        token on the client.
        """


class CookieToken(TokenGetSetter):
    """Carries the token in an HTTP cookie named after the session."""

    def get_token(self, request: Request, name: str) -> Optional[str]:
        """Get the value of the session cookie."""
        value: Optional[str] = request.cookies.get(name)
        return value or None

    def set_token(self, response: Response, name: str, value: str,
                  options: Options) -> None:
        """Set or delete the session cookie."""
        if not value or options.max_age < 0:
            response.delete_cookie(name, path=options.path,
                                   domain=options.domain,
                                   secure=options.secure,
                                   httponly=options.http_only,
                                   samesite=options.same_site)
            return
        response.set_cookie(name, value,
                            max_age=options.max_age or None,
                            path=options.path,
                            domain=options.domain,
                            secure=options.secure,
                            httponly=options.http_only,
                            samesite=options.same_site)


class HeaderToken(TokenGetSetter):
    """
    Carries the token in a request/response header.

    Intended for API clients that do not keep cookies. The header is shared
    by every session name, so use one session per header. The client is
    responsible for echoing the response header back on later requests; an
    empty header value means that the session was deleted.
    """

    def __init__(self, header: str = 'X-Session-Token') -> None:
        self.header = header

    def get_token(self, request: Request, name: str) -> Optional[str]:
        """Get the token from the request header."""
        value: Optional[str] = request.headers.get(self.header)
        return value or None

    def set_token(self, response: Response, name: str, value: str,
                  options: Options) -> None:
        """Set the token on the response header."""
        if options.max_age < 0:
            value = ''
        response.headers[self.header] = value
