# apps/analytics/cached.py
from django.conf import settings
from django.core.cache import cache


def report_cache_key(campaign_id):
    return f"analytics:campaign_report:{campaign_id}"


def cached_report(campaign_id, build):
    """Return the cached report for the campaign, building it on a miss."""
    cache_key = report_cache_key(campaign_id)
    result = cache.get(cache_key)
    if result is None:
        result = build()
        cache.set(cache_key, result, settings.ANALYTICS_CACHE_TIMEOUT)
    return result


def invalidate_report(campaign_id):
    cache.delete(report_cache_key(campaign_id))
