"""
Authenticated encoding of session values and identifiers.

Each :class:`.SecureCookie` signs a value as a JSON web token bound to the
session name, optionally encrypting the serialized value with AES-GCM
first. Several codecs can be chained to rotate keys: the first codec that
succeeds is used to encode, and every codec is tried in turn to decode.
"""

import os
import time
from base64 import urlsafe_b64encode, urlsafe_b64decode
from binascii import Error as BinasciiError
from datetime import datetime
from typing import Any, List, Optional, Sequence

import jwt
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from flask.json.tag import JSONTag, TaggedJSONSerializer

from .exceptions import InvalidToken, ExpiredToken, EncodingFailed, \
    ConfigurationError

import logging

logger = logging.getLogger(__name__)

ALGORITHM = 'HS256'
DEFAULT_MAX_AGE = 86400 * 30
DEFAULT_MAX_LENGTH = 4096
NONCE_SIZE = 12


class TagISODateTime(JSONTag):
    """Tags datetimes as ISO 8601, keeping microseconds and timezone."""

    __slots__ = ()
    key = ' dt'

    def check(self, value: Any) -> bool:
        return isinstance(value, datetime)

    def to_json(self, value: Any) -> Any:
        return value.isoformat()

    def to_python(self, value: Any) -> Any:
        return datetime.fromisoformat(value)


serializer = TaggedJSONSerializer()
serializer.register(TagISODateTime, index=0)


def _check_keys(value: Any) -> None:
    """Refuse mappings with keys that would not survive as JSON keys."""
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise EncodingFailed(f'Session keys must be str: {key!r}')
            _check_keys(item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            _check_keys(item)


class SecureCookie(object):
    """
    Encodes and decodes authenticated values.

    Parameters
    ----------
    hash_key : bytes
        Secret used to sign values with HMAC-SHA256. Required.
    block_key : bytes or None
        AES key (16, 24 or 32 bytes) used to encrypt values. If ``None``,
        values are signed but not encrypted.

    """

    def __init__(self, hash_key: bytes,
                 block_key: Optional[bytes] = None) -> None:
        if not hash_key:
            raise ConfigurationError('Hash key is not set')
        if block_key is not None and len(block_key) not in (16, 24, 32):
            raise ConfigurationError(
                f'Block key must be 16, 24 or 32 bytes, got {len(block_key)}'
            )
        self._hash_key = hash_key
        self._aead = AESGCM(block_key) if block_key is not None else None
        self.max_age = DEFAULT_MAX_AGE
        self.min_age = 0
        self.max_length = DEFAULT_MAX_LENGTH

    def set_max_age(self, age: int) -> None:
        """Set the maximum age of a token, in seconds. ``0`` disables it."""
        self.max_age = age

    def set_min_age(self, age: int) -> None:
        """Set the minimum age of a token, in seconds."""
        self.min_age = age

    def set_max_length(self, length: int) -> None:
        """Set the maximum length of an encoded value. ``0`` disables it."""
        self.max_length = length

    def encode(self, name: str, value: Any) -> str:
        """
        Serialize, encrypt and sign ``value`` for session ``name``.

        Raises
        ------
        :class:`EncodingFailed`
            If the value cannot be serialized, has a mapping with a key that
            is not a ``str``, or is too long once encoded.

        """
        _check_keys(value)
        try:
            payload = serializer.dumps(value)
        except (TypeError, ValueError) as e:
            raise EncodingFailed(f'Cannot serialize value: {e}') from e
        if self._aead is not None:
            payload = self._encrypt(name, payload)
        claims = {'name': name, 'value': payload, 'iat': int(time.time())}
        token = jwt.encode(claims, self._hash_key, algorithm=ALGORITHM)
        if self.max_length != 0 and len(token) > self.max_length:
            raise EncodingFailed('The value is too long')
        return token

    def decode(self, name: str, token: str) -> Any:
        """
        Verify, decrypt and deserialize a token for session ``name``.

        Raises
        ------
        :class:`InvalidToken`
            If the token is malformed, forged, bound to another name or
            cannot be decrypted.
        :class:`ExpiredToken`
            If the token is older than :attr:`.max_age` or younger than
            :attr:`.min_age`.

        """
        if self.max_length != 0 and len(token) > self.max_length:
            raise InvalidToken('The value is too long')
        try:
            claims = jwt.decode(token, self._hash_key, algorithms=[ALGORITHM],
                                options={'require': ['iat']})
            signed_name = claims['name']
            payload = claims['value']
            issued_at = int(claims['iat'])
        except (KeyError, TypeError, ValueError,
                jwt.exceptions.InvalidTokenError) as e:
            raise InvalidToken(f'Token is malformed or forged: {e}') from e
        if signed_name != name:
            raise InvalidToken('Token was issued for another session')

        now = int(time.time())
        if self.min_age != 0 and issued_at > now - self.min_age:
            raise ExpiredToken('Token is too recent')
        if self.max_age != 0 and issued_at < now - self.max_age:
            raise ExpiredToken('Token has expired')

        if self._aead is not None:
            payload = self._decrypt(name, payload)
        try:
            return serializer.loads(payload)
        except (TypeError, ValueError) as e:
            raise InvalidToken(f'Cannot deserialize value: {e}') from e

    def _encrypt(self, name: str, payload: str) -> str:
        assert self._aead is not None
        nonce = os.urandom(NONCE_SIZE)
        sealed = self._aead.encrypt(nonce, payload.encode('utf-8'),
                                    name.encode('utf-8'))
        return urlsafe_b64encode(nonce + sealed).decode('ascii')

    def _decrypt(self, name: str, payload: str) -> str:
        assert self._aead is not None
        try:
            raw = urlsafe_b64decode(payload.encode('ascii'))
            opened = self._aead.decrypt(raw[:NONCE_SIZE], raw[NONCE_SIZE:],
                                        name.encode('utf-8'))
            return opened.decode('utf-8')
        except (InvalidTag, BinasciiError, UnicodeError, ValueError) as e:
            raise InvalidToken('Cannot decrypt value') from e


def codecs_from_pairs(*key_pairs: Optional[bytes]) -> List[SecureCookie]:
    """
    Build a list of codecs from alternating hash and block keys.

    The block key of the last pair may be omitted. Use ``None`` in place of
    a block key to sign without encrypting.
    """
    codecs = []
    for i in range(0, len(key_pairs), 2):
        hash_key = key_pairs[i]
        block_key = key_pairs[i + 1] if i + 1 < len(key_pairs) else None
        if hash_key is None:
            raise ConfigurationError(f'Hash key of pair {i // 2} is not set')
        codecs.append(SecureCookie(hash_key, block_key))
    return codecs


def encode_multi(name: str, value: Any,
                 codecs: Sequence[SecureCookie]) -> str:
    """Encode ``value`` with the first codec that accepts it."""
    if not codecs:
        raise ConfigurationError('No codecs were provided')
    errors: List[Exception] = []
    for codec in codecs:
        try:
            return codec.encode(name, value)
        except EncodingFailed as e:
            errors.append(e)
    raise EncodingFailed('; '.join(str(e) for e in errors)) from errors[0]


def decode_multi(name: str, token: str,
                 codecs: Sequence[SecureCookie]) -> Any:
    """
    Decode ``token`` with each codec in order, returning the first success.

    Raises
    ------
    :class:`InvalidToken`
        If no codec can decode the token. :attr:`InvalidToken.errors` holds
        the failure of each codec, in order. If every failure was an
        expiry, :class:`ExpiredToken` is raised instead.

    """
    if not codecs:
        raise ConfigurationError('No codecs were provided')
    errors: List[InvalidToken] = []
    for codec in codecs:
        try:
            return codec.decode(name, token)
        except InvalidToken as e:
            errors.append(e)
    message = '; '.join(str(e) for e in errors)
    logger.debug('Could not decode token for %s: %s', name, message)
    if all(isinstance(e, ExpiredToken) for e in errors):
        raise ExpiredToken(message, errors=list(errors)) from errors[0]
    raise InvalidToken(message, errors=list(errors)) from errors[0]
