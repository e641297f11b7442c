"""
Flask/werkzeug sessions stored in MongoDB.

Session values are kept server-side, one document per session, encoded
and authenticated (and optionally encrypted) with the store's key pairs.
The client only holds a token, normally a cookie, that carries the
authenticated document identifier.

Quick start
-----------

Use the store directly with werkzeug requests and responses:

.. code-block:: python

   from pymongo import MongoClient
   from mongosession import MongoDBStore

   collection = MongoClient()['app']['sessions']
   store = MongoDBStore(collection, 3600, True, b'hash-key', b'16-byte-blockkey')

   session = store.get(request, 'session-name')
   session['foo'] = 'bar'
   store.save(request, response, session)

Or back :data:`flask.session` with it; see :mod:`.interface`.

Keys can be rotated by prepending a new pair: tokens and documents encoded
with older pairs remain readable.
"""

from .domain import Session, Options, Document
from .exceptions import InvalidSessionId, InvalidToken, ExpiredToken
from .store import MongoDBStore
