"""Project package.

The Celery app is imported here so that ``@shared_task`` in ``tasks`` and the
Django apps binds to the broadcast app configured from Django settings.
"""

from .celery import app as celery_app  # noqa: F401

__all__ = ("celery_app",)
