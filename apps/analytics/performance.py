# apps/analytics/performance.py
from functools import wraps
import time
import logging

from django.conf import settings

logger = logging.getLogger(__name__)


def _campaign_id(args, kwargs):
    target = kwargs.get('campaign_id', kwargs.get('campaign'))
    if target is None and len(args) > 1:
        target = args[1]
    return getattr(target, 'pk', target)


def monitor_query_performance(func):
    """Warn when a report query for one campaign runs past the slow threshold."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.monotonic()
        result = func(*args, **kwargs)
        execution_time = time.monotonic() - start_time

        if execution_time > settings.ANALYTICS_SLOW_QUERY_SECONDS:
            repository = args[0] if args else None
            logger.warning(
                f"Slow analytics query: {func.__name__} for campaign {_campaign_id(args, kwargs)} "
                f"(channel={getattr(repository, 'channel', None)}, "
                f"variant={getattr(repository, 'variant', None)}) took {execution_time:.2f}s"
            )

        return result
    return wrapper
