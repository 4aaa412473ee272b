from celery import shared_task
from django.db import OperationalError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
import logging

logger = logging.getLogger(__name__)


@shared_task
def process_campaign_task(campaign_id):
    """Materialize recipients for one approved campaign"""
    from apps.campaigns.processing import process_campaign

    result = process_campaign(campaign_id)
    if result is None:
        return {'campaign_id': campaign_id, 'processed': False}
    return {
        'campaign_id': campaign_id,
        'processed': True,
        'clients': result.clients,
        'recipients': result.recipients,
        'variant_counts': result.variant_counts,
    }


@shared_task
def scan_automated_triggers_task(trigger_type, tenant_id=None):
    """Process every automated campaign waiting on a trigger event"""
    from apps.campaigns.triggers import process_automated_triggers

    return process_automated_triggers(trigger_type, tenant_id=tenant_id).as_dict()


@shared_task
def process_due_campaigns_task():
    """Periodic sweep for scheduled campaigns whose send time has passed"""
    from apps.campaigns.triggers import process_due_campaigns

    return process_due_campaigns().as_dict()


@shared_task
def dispatch_campaign_messages_task(campaign_id):
    from apps.campaigns.dispatch import dispatch_pending_messages

    return dispatch_pending_messages(campaign_id)


@shared_task
@retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True
)
def refresh_campaign_stats_task(campaign_id):
    """Recompute the stats snapshot from recipient records"""
    from apps.analytics.repository import CampaignAnalyticsRepository
    from apps.campaigns.models import Campaign

    campaign = Campaign.objects.get(pk=campaign_id)
    campaign = CampaignAnalyticsRepository().refresh_campaign_stats(campaign)

    logger.info(f"Stats refreshed for campaign {campaign_id}: {campaign.total_recipients} recipients")
    return {
        'campaign_id': campaign_id,
        'total_recipients': campaign.total_recipients,
        'sent_count': campaign.sent_count,
        'delivered_count': campaign.delivered_count,
        'opened_count': campaign.opened_count,
        'clicked_count': campaign.clicked_count,
        'converted_count': campaign.converted_count,
        'roi': str(campaign.roi),
    }
