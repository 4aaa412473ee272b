from pathlib import Path
from datetime import timedelta
from decouple import config, Csv

BASE_DIR = Path(__file__).resolve().parent.parent.parent

SECRET_KEY = config("SECRET_KEY", default="insecure-change-me")
DEBUG = config("DEBUG", cast=bool, default=False)
ALLOWED_HOSTS = config("DJANGO_ALLOWED_HOSTS", cast=Csv(), default="localhost,127.0.0.1")

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "corsheaders",
    "rest_framework",
    "rest_framework_simplejwt",
    "drf_spectacular",
    "strawberry_django",
    "apps.authentication",
    "apps.clients",
    "apps.campaigns",
    "apps.analytics",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "core.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "core.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

AUTH_USER_MODEL = "authentication.User"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LANGUAGE_CODE = "en-us"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"

# DRF
REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework_simplejwt.authentication.JWTAuthentication",
        "rest_framework.authentication.SessionAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": ("rest_framework.permissions.IsAuthenticated",),
    "DEFAULT_PAGINATION_CLASS": "rest_framework.pagination.PageNumberPagination",
    "PAGE_SIZE": 10,
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}

SIMPLE_JWT = {
    "ACCESS_TOKEN_LIFETIME": timedelta(minutes=config("JWT_ACCESS_MINUTES", cast=int, default=60)),
    "REFRESH_TOKEN_LIFETIME": timedelta(days=config("JWT_REFRESH_DAYS", cast=int, default=7)),
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Agency Broadcast API",
    "DESCRIPTION": "Campaign broadcast processing for the agency back office",
    "VERSION": "1.0.0",
}

# CORS
CORS_ALLOWED_ORIGINS = config(
    "CORS_ALLOWED_ORIGINS",
    cast=Csv(),
    default="http://localhost:5173"
)

# Celery
CELERY_BROKER_URL = config("CELERY_BROKER_URL", default="redis://localhost:6379/0")
CELERY_RESULT_BACKEND = config("CELERY_RESULT_BACKEND", default="redis://localhost:6379/1")
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TIMEZONE = "UTC"

# Campaign engine
CAMPAIGN_DISPATCH_BACKEND = config(
    "CAMPAIGN_DISPATCH_BACKEND",
    default="apps.campaigns.dispatch.LoggingDispatcher"
)
CAMPAIGN_BULK_BATCH_SIZE = config("CAMPAIGN_BULK_BATCH_SIZE", cast=int, default=1000)
CAMPAIGN_SWEEP_INTERVAL_SECONDS = config("CAMPAIGN_SWEEP_INTERVAL_SECONDS", cast=int, default=60)
CAMPAIGN_PREVIEW_LIMIT = config("CAMPAIGN_PREVIEW_LIMIT", cast=int, default=50)
CAMPAIGN_DISPATCH_RETRY_ATTEMPTS = config("CAMPAIGN_DISPATCH_RETRY_ATTEMPTS", cast=int, default=3)
CAMPAIGN_DISPATCH_RETRY_WAIT = config("CAMPAIGN_DISPATCH_RETRY_WAIT", cast=float, default=1.0)
ANALYTICS_SLOW_QUERY_SECONDS = config("ANALYTICS_SLOW_QUERY_SECONDS", cast=float, default=1.0)
ANALYTICS_CACHE_TIMEOUT = config("ANALYTICS_CACHE_TIMEOUT", cast=int, default=60)

CELERY_BEAT_SCHEDULE = {
    "process-due-campaigns": {
        "task": "tasks.campaigns.process_due_campaigns_task",
        "schedule": CAMPAIGN_SWEEP_INTERVAL_SECONDS,
    },
}

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": "INFO",
        },
        "apps": {
            "handlers": ["console"],
            "level": config("APPS_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
        "tasks": {
            "handlers": ["console"],
            "level": config("APPS_LOG_LEVEL", default="INFO"),
            "propagate": False,
        },
    },
}
