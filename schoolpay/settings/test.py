from .base import *

DEBUG = False

SECRET_KEY = 'test-secret-key'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

ALLOWED_HOSTS = ['testserver']

EDVIRON = {
    'BASE_URL': 'https://gateway.test/erp',
    'API_KEY': 'test-api-key',
    'PG_KEY': 'test-pg-key-with-at-least-32-bytes!!',
    'SCHOOL_ID': 'SCHOOL1',
    'CALLBACK_URL': 'https://example.com/payment-success',
    'TIMEOUT': 5,
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
