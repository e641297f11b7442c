"""Tests for :mod:`mongosession.codecs`."""

from unittest import TestCase, mock
from datetime import datetime
import time

import jwt
from pytz import UTC

from .. import codecs
from ..exceptions import InvalidToken, ExpiredToken, EncodingFailed, \
    ConfigurationError

HASH_KEY = b'very-secret-hash-key'
BLOCK_KEY = b'0123456789abcdef'


class TestSecureCookie(TestCase):
    """A :class:`.SecureCookie` signs and optionally encrypts values."""

    def test_encode_decode(self):
        """A value survives being encoded and decoded with the same name."""
        codec = codecs.SecureCookie(HASH_KEY, BLOCK_KEY)
        values = {'foo': 'bar', 'when': datetime(2019, 4, 1, 12, tzinfo=UTC),
                  'count': 3}
        token = codec.encode('sess', values)
        self.assertIsInstance(token, str)
        self.assertEqual(codec.decode('sess', token), values)

    def test_signed_only(self):
        """Without a block key, the value is signed but readable."""
        codec = codecs.SecureCookie(HASH_KEY)
        token = codec.encode('sess', 'abc123')
        claims = jwt.decode(token, options={'verify_signature': False})
        self.assertEqual(claims['name'], 'sess')
        self.assertIn('abc123', claims['value'])
        self.assertEqual(codec.decode('sess', token), 'abc123')

    def test_encrypted(self):
        """With a block key, the payload does not contain the value."""
        codec = codecs.SecureCookie(HASH_KEY, BLOCK_KEY)
        token = codec.encode('sess', {'secret': 'the-plaintext'})
        claims = jwt.decode(token, options={'verify_signature': False})
        self.assertNotIn('the-plaintext', claims['value'])

    def test_other_name(self):
        """A token issued for one session is rejected for another."""
        for block_key in (None, BLOCK_KEY):
            codec = codecs.SecureCookie(HASH_KEY, block_key)
            token = codec.encode('sess', 'abc123')
            with self.assertRaises(InvalidToken):
                codec.decode('other', token)

    def test_wrong_key(self):
        """A token signed with another hash key is rejected."""
        token = codecs.SecureCookie(b'another-key').encode('sess', 'abc')
        with self.assertRaises(InvalidToken):
            codecs.SecureCookie(HASH_KEY).decode('sess', token)

    def test_tampered(self):
        """Changing a character of the token invalidates it."""
        codec = codecs.SecureCookie(HASH_KEY, BLOCK_KEY)
        token = codec.encode('sess', 'abc123')
        i = token.index('.') + 1
        tampered = token[:i] + ('A' if token[i] != 'A' else 'B') \
            + token[i + 1:]
        with self.assertRaises(InvalidToken):
            codec.decode('sess', tampered)

    def test_not_a_token(self):
        """Something other than a token is passed."""
        with self.assertRaises(InvalidToken):
            codecs.SecureCookie(HASH_KEY).decode('sess', 'notatoken')

    @mock.patch(f'{codecs.__name__}.time')
    def test_expired(self, mock_time):
        """A token older than ``max_age`` is rejected."""
        codec = codecs.SecureCookie(HASH_KEY)
        codec.set_max_age(60)
        now = time.time()
        mock_time.time.return_value = now - 120
        token = codec.encode('sess', 'abc123')
        mock_time.time.return_value = now
        with self.assertRaises(ExpiredToken):
            codec.decode('sess', token)

        codec.set_max_age(0)
        self.assertEqual(codec.decode('sess', token), 'abc123',
                         'A max age of 0 disables the check')

    def test_min_age(self):
        """A token younger than ``min_age`` is rejected."""
        codec = codecs.SecureCookie(HASH_KEY)
        codec.set_min_age(3600)
        token = codec.encode('sess', 'abc123')
        with self.assertRaises(ExpiredToken):
            codec.decode('sess', token)

    def test_max_length(self):
        """Values that encode to long tokens are refused."""
        codec = codecs.SecureCookie(HASH_KEY)
        codec.set_max_length(64)
        with self.assertRaises(EncodingFailed):
            codec.encode('sess', 'x' * 100)
        with self.assertRaises(InvalidToken):
            codec.decode('sess', 'x' * 100)

        codec.set_max_length(0)
        token = codec.encode('sess', 'x' * 100)
        self.assertEqual(codec.decode('sess', token), 'x' * 100)

    def test_not_serializable(self):
        """Values that cannot be serialized are refused."""
        with self.assertRaises(EncodingFailed):
            codecs.SecureCookie(HASH_KEY).encode('sess', {'foo': object()})

    def test_non_str_keys(self):
        """Mappings with keys other than ``str`` are refused, at any depth."""
        codec = codecs.SecureCookie(HASH_KEY)
        for value in ({1: 'x'}, {'foo': {(1, 2): 'x'}},
                      {'foo': [{None: 'x'}]}):
            with self.assertRaises(EncodingFailed):
                codec.encode('sess', value)

    def test_datetimes_are_kept_exactly(self):
        """Microseconds and the absence of a timezone survive encoding."""
        codec = codecs.SecureCookie(HASH_KEY, BLOCK_KEY)
        naive = datetime(2019, 2, 3, 4, 5, 6, 789000)
        aware = datetime(2019, 2, 3, 4, 5, 6, 789000, tzinfo=UTC)
        decoded = codec.decode('sess', codec.encode('sess', {'naive': naive,
                                                           'aware': aware}))
        self.assertEqual(decoded['naive'], naive)
        self.assertIsNone(decoded['naive'].tzinfo)
        self.assertEqual(decoded['aware'], aware)
        self.assertIsNotNone(decoded['aware'].tzinfo)

    def test_bad_block_key(self):
        """Block keys must be valid AES key sizes."""
        with self.assertRaises(ConfigurationError):
            codecs.SecureCookie(HASH_KEY, b'too-short')

    def test_missing_hash_key(self):
        """A hash key is required."""
        with self.assertRaises(ConfigurationError):
            codecs.SecureCookie(b'')


class TestCodecsFromPairs(TestCase):
    """Tests for :func:`codecs.codecs_from_pairs`."""

    def test_pairs(self):
        """Keys are read as hash/block pairs."""
        result = codecs.codecs_from_pairs(HASH_KEY, BLOCK_KEY, b'old-key')
        self.assertEqual(len(result), 2)
        self.assertIsNotNone(result[0]._aead)
        self.assertIsNone(result[1]._aead, 'Trailing block key is optional')

    def test_null_block_key(self):
        """``None`` in place of a block key disables encryption."""
        result = codecs.codecs_from_pairs(HASH_KEY, None, b'other', BLOCK_KEY)
        self.assertIsNone(result[0]._aead)
        self.assertIsNotNone(result[1]._aead)

    def test_null_hash_key(self):
        """Hash keys cannot be ``None``."""
        with self.assertRaises(ConfigurationError):
            codecs.codecs_from_pairs(None, BLOCK_KEY)


class TestMulti(TestCase):
    """Tests for :func:`codecs.encode_multi` and :func:`codecs.decode_multi`."""

    def setUp(self):
        """Build a new and an old codec."""
        self.new = codecs.SecureCookie(b'new-key', BLOCK_KEY)
        self.old = codecs.SecureCookie(b'old-key')

    def test_encode_with_first(self):
        """The first codec is used to encode."""
        token = codecs.encode_multi('sess', 'abc', [self.new, self.old])
        self.assertEqual(self.new.decode('sess', token), 'abc')
        with self.assertRaises(InvalidToken):
            self.old.decode('sess', token)

    def test_decode_fallback(self):
        """Tokens from older codecs can still be decoded."""
        token = self.old.encode('sess', 'abc')
        self.assertEqual(
            codecs.decode_multi('sess', token, [self.new, self.old]),
            'abc'
        )

    def test_decode_failure(self):
        """Every codec's failure is reported."""
        token = codecs.SecureCookie(b'unknown').encode('sess', 'abc')
        with self.assertRaises(InvalidToken) as ctx:
            codecs.decode_multi('sess', token, [self.new, self.old])
        self.assertEqual(len(ctx.exception.errors), 2)
        self.assertNotIsInstance(ctx.exception, ExpiredToken)

    @mock.patch(f'{codecs.__name__}.time')
    def test_decode_all_expired(self, mock_time):
        """If every codec rejects the token as expired, so does the chain."""
        now = time.time()
        mock_time.time.return_value = now - 7200
        token = self.new.encode('sess', 'abc')
        mock_time.time.return_value = now
        self.new.set_max_age(3600)
        with self.assertRaises(ExpiredToken):
            codecs.decode_multi('sess', token, [self.new])

    def test_no_codecs(self):
        """A chain needs at least one codec."""
        with self.assertRaises(ConfigurationError):
            codecs.encode_multi('sess', 'abc', [])
        with self.assertRaises(ConfigurationError):
            codecs.decode_multi('sess', 'abc', [])
