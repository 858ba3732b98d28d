"""Test settings for the gear rental engine.

In-memory SQLite, fast password hashing, the emulated payment gateway
and Celery tasks executed in-process.
"""

from .base import *  # noqa: F401,F403

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

STORAGES = {
    'default': {'BACKEND': 'django.core.files.storage.FileSystemStorage'},
    'staticfiles': {'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage'},
}

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

PAYMENT_GATEWAY_CLASS = 'apps.finances.gateway.EmulatedPaymentGateway'

BOOKING_TAX_RATE = '0.08'
BOOKING_HOLD_MINUTES = 30
BOOKING_BUFFER_DAYS = 0

LOGGING['root']['level'] = 'CRITICAL'  # noqa: F405
