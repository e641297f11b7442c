import pytest

from flask import session

from mongosession import factory, store
from mongosession.tests.util import FakeCollection


@pytest.fixture()
def collection():
    return FakeCollection()


@pytest.fixture()
def app(collection):
    session_store = store.MongoDBStore(collection, 3600, False,
                                       b'test-hash-key', b'0123456789abcdef')
    app = factory.create_web_app(session_store)
    app.config['SESSION_COOKIE_NAME'] = 'test_session'

    @app.route('/set/<value>')
    def set_value(value):
        session['foo'] = value
        return 'ok'

    @app.route('/get')
    def get_value():
        return session.get('foo', 'none')

    @app.route('/clear')
    def clear():
        session.clear()
        return 'ok'

    return app


@pytest.fixture()
def client(app):
    return app.test_client()
