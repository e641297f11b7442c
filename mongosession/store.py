"""
Session store backed by a MongoDB collection.

Session values are encoded with the store's codecs and kept in a single
document per session. The client only receives the session identifier,
itself encoded and authenticated, by way of the store's token transport.
"""

from datetime import datetime
from functools import wraps
from typing import Any, List, Optional

from bson import ObjectId
from bson.errors import InvalidId
from flask import Flask, current_app
from pymongo import ASCENDING, MongoClient
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from pytz import UTC
from werkzeug.wrappers import Request, Response

from .codecs import SecureCookie, codecs_from_pairs, encode_multi, \
    decode_multi
from .domain import Session, Options, Document, MODIFIED
from .exceptions import InvalidSessionId, InvalidToken, InvalidModified, \
    SessionCreationFailed, SessionDeletionFailed, UnknownSession, \
    ConfigurationError
from .registry import get_registry
from .tokens import TokenGetSetter, CookieToken

import logging

logger = logging.getLogger(__name__)


class MongoDBStore(object):
    """
    Stores sessions in a MongoDB collection.

    Parameters
    ----------
    collection : :class:`pymongo.collection.Collection`
        Collection that holds one document per session.
    max_age : int
        Default lifetime of sessions and tokens, in seconds.
    ensure_ttl : bool
        If ``True``, ask the database to expire documents whose
        ``modified`` field is older than ``max_age``.
    key_pairs : bytes
        Alternating hash and block keys; see
        :func:`.codecs.codecs_from_pairs`. The first pair is used to
        encode, and all pairs are tried in order to decode.

    Codecs refuse encoded values longer than
    :data:`.codecs.DEFAULT_MAX_LENGTH` characters, which also caps the size
    of the stored document data. Use :meth:`.set_max_length` to change it.

    """

    def __init__(self, collection: Collection, max_age: int,
                 ensure_ttl: bool, *key_pairs: Optional[bytes]) -> None:
        self.codecs: List[SecureCookie] = codecs_from_pairs(*key_pairs)
        self.options = Options(path='/', max_age=max_age)
        self.token: TokenGetSetter = CookieToken()
        self.collection = collection

        self.set_max_age(max_age)
        if ensure_ttl:
            self.ensure_ttl_index()

    def ensure_ttl_index(self) -> None:
        """
        Request a TTL index on the ``modified`` field of the collection.

        The store works without the index; documents are just not removed
        automatically. Failure to create it is logged and ignored.
        """
        try:
            self.collection.create_index(
                [(MODIFIED, ASCENDING)],
                background=True,
                sparse=True,
                expireAfterSeconds=self.options.max_age
            )
        except PyMongoError as e:
            logger.warning('Could not create TTL index: %s', e)

    def get(self, request: Request, name: str) -> Session:
        """
        Get the session ``name`` registered for ``request``.

        The session is loaded with :meth:`.new` the first time it is
        requested, and the same instance is returned for the rest of the
        request.
        """
        return get_registry(request).get(self, name)

    def new(self, request: Request, name: str) -> Session:
        """
        Load the session ``name`` without registering it.

        Returns a fresh session if there is no token on the request, or if
        the document that it refers to is missing or unreadable.

        Raises
        ------
        :class:`InvalidToken`
            If the token on the request cannot be decoded. A fresh session
            is attached to the exception as :attr:`InvalidToken.session`.

        """
        session = Session(self, name, options=self.options)
        token = self.token.get_token(request, name)
        if token is None:
            return session

        try:
            session_id = decode_multi(name, token, self.codecs)
        except InvalidToken as e:
            e.session = session
            raise
        if not isinstance(session_id, str):
            logger.debug('Token for %s does not hold a session id', name)
            return session
        session.session_id = session_id

        try:
            self._load(session)
        except InvalidSessionId as e:
            logger.debug('Starting a new session for %s: %s', name, e)
            session.session_id = ''
            return session
        except (UnknownSession, InvalidToken) as e:
            logger.debug('Starting a new session for %s: %s', name, e)
            return session
        except PyMongoError as e:
            logger.warning('Could not load session %s: %s', session_id, e)
            return session
        session.is_new = False
        return session

    def save(self, request: Request, response: Response,
             session: Session) -> None:
        """
        Persist ``session`` and set its token on ``response``.

        If ``session.options.max_age`` is negative, the document is deleted
        and the token is cleared instead.

        Raises
        ------
        :class:`InvalidSessionId`
            If the session has an identifier that is not a document key.
        :class:`InvalidModified`
            If the reserved ``modified`` value is not a datetime.
        :class:`EncodingFailed`
            If the session values or identifier cannot be encoded.
        :class:`SessionCreationFailed`
            If the document could not be written.
        :class:`SessionDeletionFailed`
            If the document could not be deleted.

        """
        if session.options.max_age < 0:
            try:
                self._delete(session)
            except InvalidSessionId:
                logger.debug('Session %s was never stored', session.name)
            self.token.set_token(response, session.name, '', session.options)
            return

        if not session.session_id:
            session.session_id = str(ObjectId())

        self._upsert(session)
        token = encode_multi(session.name, session.session_id, self.codecs)
        self.token.set_token(response, session.name, token, session.options)
        session.is_new = False

    def set_max_age(self, age: int) -> None:
        """
        Set the lifetime of the store and of each codec.

        Individual sessions can be deleted by setting their
        ``options.max_age`` to a negative value.
        """
        self.options = self.options._replace(max_age=age)
        for codec in self.codecs:
            if isinstance(codec, SecureCookie):
                codec.set_max_age(age)

    def set_max_length(self, length: int) -> None:
        """Set the maximum length of encoded values. ``0`` disables it."""
        for codec in self.codecs:
            if isinstance(codec, SecureCookie):
                codec.set_max_length(length)

    def _object_id(self, session: Session) -> ObjectId:
        if not isinstance(session.session_id, str):
            raise InvalidSessionId('Invalid session id')
        try:
            return ObjectId(session.session_id)
        except (InvalidId, TypeError) as e:
            raise InvalidSessionId('Invalid session id') from e

    def _load(self, session: Session) -> None:
        session_id = self._object_id(session)
        raw = self.collection.find_one({'_id': session_id})
        if raw is None:
            raise UnknownSession(f'No such session: {session.session_id}')
        try:
            document = Document.from_mongo(raw)
        except KeyError as e:
            raise InvalidToken(f'Malformed session document: {e}') from e

        values = decode_multi(session.name, document.data, self.codecs)
        if not isinstance(values, dict):
            raise InvalidToken('Session data is not a mapping')
        dict.update(session, values)

    def _upsert(self, session: Session) -> None:
        session_id = self._object_id(session)

        modified: Any
        if MODIFIED in session:
            modified = dict.__getitem__(session, MODIFIED)
            if not isinstance(modified, datetime):
                raise InvalidModified('Invalid modified value')
        else:
            modified = datetime.now(tz=UTC)

        data = encode_multi(session.name, dict(session), self.codecs)
        document = Document(id=session_id, data=data, modified=modified)
        try:
            self.collection.replace_one({'_id': session_id},
                                        document.to_mongo(), upsert=True)
        except PyMongoError as e:
            logger.error('Failed to save session %s: %s', session_id, e)
            raise SessionCreationFailed(f'Failed to save: {e}') from e

    def _delete(self, session: Session) -> None:
        session_id = self._object_id(session)
        try:
            self.collection.delete_one({'_id': session_id})
        except PyMongoError as e:
            logger.error('Failed to delete session %s: %s', session_id, e)
            raise SessionDeletionFailed(f'Failed to delete: {e}') from e


def _flag(value: Any) -> bool:
    return str(value).lower() in ('1', 'true', 'yes', 'on')


def parse_key_pairs(value: str) -> List[Optional[bytes]]:
    """
    Parse key pairs from a configuration string.

    Pairs are separated by commas, and each pair is a hash key optionally
    followed by a colon and a block key, e.g. ``newhash:newblock,oldhash``.
    """
    key_pairs: List[Optional[bytes]] = []
    for pair in value.split(','):
        pair = pair.strip()
        if not pair:
            continue
        hash_key, _, block_key = pair.partition(':')
        key_pairs.append(hash_key.encode('utf-8'))
        key_pairs.append(block_key.encode('utf-8') if block_key else None)
    return key_pairs


def _get_config(app: Optional[Flask] = None) -> Any:
    if app is not None:
        return app.config
    return current_app.config


def init_app(app: Flask) -> None:
    """Set default configuration parameters for an application instance."""
    app.config.setdefault('MONGO_URI', 'mongodb://localhost:27017')
    app.config.setdefault('MONGO_DATABASE', 'sessions')
    app.config.setdefault('MONGO_SESSION_COLLECTION', 'sessions')
    app.config.setdefault('SESSION_MAX_AGE', str(86400 * 30))
    app.config.setdefault('SESSION_ENSURE_TTL', '1')
    app.config.setdefault('SESSION_KEY_PAIRS', None)


def get_store(app: Optional[Flask] = None) -> MongoDBStore:
    """Get a new store configured for the application."""
    config = _get_config(app)
    key_pairs = config.get('SESSION_KEY_PAIRS')
    if isinstance(key_pairs, str):
        key_pairs = parse_key_pairs(key_pairs)
    if not key_pairs:
        raise ConfigurationError('Missing required parameter SESSION_KEY_PAIRS')

    client: MongoClient = MongoClient(
        config.get('MONGO_URI', 'mongodb://localhost:27017'),
        tz_aware=True
    )
    database = client[config.get('MONGO_DATABASE', 'sessions')]
    collection = database[config.get('MONGO_SESSION_COLLECTION', 'sessions')]
    max_age = int(config.get('SESSION_MAX_AGE', 86400 * 30))
    ensure_ttl = _flag(config.get('SESSION_ENSURE_TTL', '1'))
    logger.debug('New session store on %s.%s', database.name,
                 collection.name)

    store = MongoDBStore(collection, max_age, ensure_ttl, *key_pairs)
    store.options = store.options._replace(
        path=config.get('SESSION_COOKIE_PATH') or '/',
        domain=config.get('SESSION_COOKIE_DOMAIN') or None,
        secure=_flag(config.get('SESSION_COOKIE_SECURE', False)),
        http_only=_flag(config.get('SESSION_COOKIE_HTTPONLY', True)),
        same_site=config.get('SESSION_COOKIE_SAMESITE') or None
    )
    return store


def current_store() -> MongoDBStore:
    """Get/create the :class:`.MongoDBStore` for the current application."""
    app = current_app
    if 'mongosession' not in app.extensions:
        app.extensions['mongosession'] = get_store(app)
    store: MongoDBStore = app.extensions['mongosession']
    return store


@wraps(MongoDBStore.get)
def get(request: Request, name: str) -> Session:
    """Get the session ``name`` from the application store."""
    return current_store().get(request, name)


@wraps(MongoDBStore.save)
def save(request: Request, response: Response, session: Session) -> None:
    """Save a session in the application store."""
    return current_store().save(request, response, session)
