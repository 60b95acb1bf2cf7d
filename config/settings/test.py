"""Test settings.

File-backed SQLite with immediate transactions (threads in concurrency
tests each open their own connection), eager Celery and a fast password
hasher. Used by pytest through DJANGO_SETTINGS_MODULE=config.settings.test.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'test-db.sqlite3',  # noqa: F405
        'OPTIONS': {
            'transaction_mode': 'IMMEDIATE',
            'timeout': 20,
        },
        'TEST': {
            'NAME': str(BASE_DIR / 'test-db.sqlite3'),  # noqa: F405
        },
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

BOOKING_POLICY = {
    'LATE_CANCELLATION_CUTOFF_MINUTES': 120,
    'RESTRICTION_DURATION_MINUTES': 1440,
    'STRIKE_THRESHOLD': 3,
    'ROLLING_WINDOW_DAYS': 30,
    'BLOCK_REENROLLMENT_AFTER_CANCELLATION': True,
}

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
LOGGING['loggers']['apps']['level'] = 'WARNING'  # noqa: F405
