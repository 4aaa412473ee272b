from core.celery import app as celery_app

__all__ = ('celery_app',)

# Register tasks explicitly
from .campaigns import (  # noqa: E402
    process_campaign_task,
    scan_automated_triggers_task,
    process_due_campaigns_task,
    dispatch_campaign_messages_task,
    refresh_campaign_stats_task,
)
