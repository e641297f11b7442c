"""Flask configuration for the MongoDB session store."""

import os

MONGO_URI = os.environ.get('MONGO_URI', 'mongodb://localhost:27017')
MONGO_DATABASE = os.environ.get('MONGO_DATABASE', 'sessions')
MONGO_SESSION_COLLECTION = os.environ.get('MONGO_SESSION_COLLECTION',
                                          'sessions')

SESSION_MAX_AGE = os.environ.get('SESSION_MAX_AGE', str(86400 * 30))
SESSION_ENSURE_TTL = os.environ.get('SESSION_ENSURE_TTL', '1')
SESSION_KEY_PAIRS = os.environ.get('SESSION_KEY_PAIRS')
"""Comma-separated ``hash[:block]`` pairs, newest first."""

SESSION_COOKIE_NAME = os.environ.get('SESSION_COOKIE_NAME', 'session')
SESSION_COOKIE_PATH = os.environ.get('SESSION_COOKIE_PATH', '/')
SESSION_COOKIE_DOMAIN = os.environ.get('SESSION_COOKIE_DOMAIN')
SESSION_COOKIE_SECURE = os.environ.get('SESSION_COOKIE_SECURE', '0') == '1'
SESSION_COOKIE_HTTPONLY = \
    os.environ.get('SESSION_COOKIE_HTTPONLY', '1') == '1'
SESSION_COOKIE_SAMESITE = os.environ.get('SESSION_COOKIE_SAMESITE', 'Lax')

LOGLEVEL = int(os.environ.get('LOGLEVEL', '20'))
LOG_JSON = os.environ.get('LOG_JSON', '1') == '1'
