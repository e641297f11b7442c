"""Application factory for a Flask app using the MongoDB session store."""

from typing import Optional

from flask import Flask

from . import config, store
from .app_logging import setup_logger
from .interface import MongoSessionInterface


def create_web_app(session_store: Optional[store.MongoDBStore] = None) \
        -> Flask:
    """
    Initialize a Flask app whose sessions are kept in MongoDB.

    Parameters
    ----------
    session_store : :class:`.MongoDBStore`
        If not provided, a store is built from the app configuration the
        first time a session is needed.

    """
    app = Flask('mongosession')
    app.config.from_object(config)
    setup_logger(app.config['LOGLEVEL'], json=app.config['LOG_JSON'])

    store.init_app(app)
    app.session_interface = MongoSessionInterface(session_store)
    return app
