import logging
from typing import Optional

from django.db import transaction
from django.utils import timezone

from .materializer import MaterializationResult, materialize_recipients
from .models import Campaign

logger = logging.getLogger(__name__)


def claim_campaign(campaign_id) -> bool:
    """Atomically move a processable campaign to ``sending``.

    Only one caller can win the update, so concurrent or repeated processing
    requests for the same campaign materialize at most once.
    """
    updated = Campaign.objects.filter(
        pk=campaign_id,
        status__in=Campaign.PROCESSABLE_STATUSES
    ).update(status=Campaign.Status.SENDING, updated_at=timezone.now())
    return updated == 1


def enqueue_dispatch(campaign_id):
    from tasks.campaigns import dispatch_campaign_messages_task
    transaction.on_commit(lambda: dispatch_campaign_messages_task.delay(campaign_id))


def process_campaign(campaign_id, rng=None) -> Optional[MaterializationResult]:
    if not claim_campaign(campaign_id):
        logger.info(f"Campaign {campaign_id} is not approved or scheduled, skipping")
        return None

    campaign = Campaign.objects.get(pk=campaign_id)
    try:
        result = materialize_recipients(campaign, rng=rng)
    except Exception:
        logger.exception(f"Error processing campaign {campaign_id}")
        Campaign.objects.filter(pk=campaign_id).update(
            status=Campaign.Status.FAILED, updated_at=timezone.now()
        )
        return None

    enqueue_dispatch(campaign_id)
    return result


def enqueue_campaign_processing(campaign):
    from tasks.campaigns import process_campaign_task
    campaign_id = campaign.pk
    transaction.on_commit(lambda: process_campaign_task.delay(campaign_id))
    logger.info(f"Campaign {campaign_id} queued for processing")
