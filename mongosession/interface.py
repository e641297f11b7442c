"""Integration with the Flask session machinery."""

from typing import Optional

from flask import Flask, request as current_request
from flask.sessions import SessionInterface
from werkzeug.wrappers import Request, Response

from .domain import Session
from .exceptions import InvalidToken
from .store import MongoDBStore, current_store

import logging

logger = logging.getLogger(__name__)


class MongoSessionInterface(SessionInterface):
    """
    Backs :data:`flask.session` with a :class:`.MongoDBStore`.

    Intended for use in a Flask application factory, for example:

    .. code-block:: python

       from flask import Flask
       from mongosession import store
       from mongosession.interface import MongoSessionInterface


       def create_web_app() -> Flask:
           app = Flask('someapp')
           app.config.from_pyfile('config.py')
           store.init_app(app)
           app.session_interface = MongoSessionInterface()
           return app

    The session is named after ``SESSION_COOKIE_NAME``.
    """

    def __init__(self, store: Optional[MongoDBStore] = None) -> None:
        self._store = store

    def get_store(self) -> MongoDBStore:
        """Get the store passed at init, or the application's store."""
        if self._store is not None:
            return self._store
        return current_store()

    def open_session(self, app: Flask, request: Request) -> Session:
        """Load the session for the request."""
        name = self.get_cookie_name(app)
        try:
            return self.get_store().get(request, name)
        except InvalidToken as e:
            logger.debug('Discarding session token for %s: %s', name, e)
            session: Session = e.session
            return session

    def save_session(self, app: Flask, session: Session,  # type: ignore
                     response: Response) -> None:
        """
        Save the session if it changed, or delete it if it was emptied.

        Sessions that were never stored and are still empty are not saved.
        """
        if not session:
            if session.modified and not session.is_new:
                session.options = session.options._replace(max_age=-1)
                session.store.save(current_request, response, session)
            return

        if session.accessed:
            response.vary.add('Cookie')
        if not self.should_set_cookie(app, session):
            return
        session.store.save(current_request, response, session)
