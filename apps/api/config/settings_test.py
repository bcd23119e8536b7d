"""
Test settings: in-memory SQLite, fast password hashing, relaxed throttles.
"""
from .settings import *  # noqa: F401,F403
from .settings import REST_FRAMEWORK

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = [
    'django.contrib.auth.hashers.MD5PasswordHasher',
]

REST_FRAMEWORK = {
    **REST_FRAMEWORK,
    'DEFAULT_THROTTLE_RATES': {
        **REST_FRAMEWORK['DEFAULT_THROTTLE_RATES'],
        'auth_register': '10000/hour',
        'invite_accept': '10000/hour',
    },
}
