from .base import *  # noqa

DEBUG = False
SECRET_KEY = "test-only-not-secure"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

CELERY_BROKER_URL = "memory://"
CELERY_RESULT_BACKEND = "cache+memory://"
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

CAMPAIGN_DISPATCH_BACKEND = "apps.campaigns.dispatch.LoggingDispatcher"
CAMPAIGN_DISPATCH_RETRY_WAIT = 0
ANALYTICS_CACHE_TIMEOUT = 0
