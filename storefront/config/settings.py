"""
Django settings for the storefront project.

All catalog data lives behind the backend REST API; this project only
orchestrates it, so the database is a throwaway SQLite file used by
Django's own contrib apps and the test runner.
"""
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


SECRET_KEY = os.environ.get('DJANGO_SECRET_KEY', 'django-insecure-storefront-dev-key')

DEBUG = env_bool('DJANGO_DEBUG', True)

ALLOWED_HOSTS = [h.strip() for h in os.environ.get('DJANGO_ALLOWED_HOSTS', '*').split(',') if h.strip()]

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',
    'rest_framework',
    'storefront.core',
    'storefront.catalog',
    'storefront.uploads',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'django.middleware.common.CommonMiddleware',
]

ROOT_URLCONF = 'storefront.config.urls'

WSGI_APPLICATION = 'storefront.config.wsgi.application'

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'db.sqlite3',
    }
}

# Previews and token verification results are kept in the cache
REDIS_URL = os.environ.get('REDIS_URL')
if REDIS_URL:
    CACHES = {
        'default': {
            'BACKEND': 'django_redis.cache.RedisCache',
            'LOCATION': REDIS_URL,
            'OPTIONS': {
                'CLIENT_CLASS': 'django_redis.client.DefaultClient',
            },
        }
    }
else:
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'storefront',
        }
    }

LANGUAGE_CODE = 'en-us'
TIME_ZONE = 'Asia/Kolkata'
USE_I18N = True
USE_TZ = True

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'

# Uploads are validated in memory before being forwarded to the backend
FILE_UPLOAD_MAX_MEMORY_SIZE = 10 * 1024 * 1024
DATA_UPLOAD_MAX_MEMORY_SIZE = 60 * 1024 * 1024

REST_FRAMEWORK = {
    'DEFAULT_RENDERER_CLASSES': [
        'rest_framework.renderers.JSONRenderer',
    ],
    'DEFAULT_PARSER_CLASSES': [
        'rest_framework.parsers.JSONParser',
        'rest_framework.parsers.MultiPartParser',
        'rest_framework.parsers.FormParser',
    ],
    'DEFAULT_AUTHENTICATION_CLASSES': [
        'storefront.core.authentication.BackendTokenAuthentication',
    ],
    'DEFAULT_PERMISSION_CLASSES': [
        'rest_framework.permissions.AllowAny',
    ],
    'UNAUTHENTICATED_USER': None,
}

# Backend catalog API
STOREFRONT_API_URL = (
    os.environ.get('STOREFRONT_API_URL')
    or os.environ.get('NEXT_PUBLIC_API_URL')
    or 'http://localhost:5000/api'
)
STOREFRONT_API_TIMEOUT = float(os.environ.get('STOREFRONT_API_TIMEOUT', '10'))

# Image uploads
STOREFRONT_MAX_PRODUCT_IMAGES = int(os.environ.get('STOREFRONT_MAX_PRODUCT_IMAGES', '10'))
STOREFRONT_PREVIEW_TIMEOUT = int(os.environ.get('STOREFRONT_PREVIEW_TIMEOUT', '1800'))

# Admin token verification results
STOREFRONT_TOKEN_CACHE_TTL = int(os.environ.get('STOREFRONT_TOKEN_CACHE_TTL', '60'))

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {name} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
    },
    'root': {
        'handlers': ['console'],
        'level': 'WARNING',
    },
    'loggers': {
        'storefront': {
            'handlers': ['console'],
            'level': os.environ.get('STOREFRONT_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}
