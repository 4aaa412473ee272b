import logging
from dataclasses import dataclass

from django.db import OperationalError
from django.utils import timezone
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from .models import Campaign
from .processing import process_campaign

logger = logging.getLogger(__name__)

db_retry = retry(
    retry=retry_if_exception_type(OperationalError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    reraise=True,
)


@dataclass
class TriggerScanResult:
    trigger_type: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0

    def as_dict(self):
        return {
            'trigger_type': self.trigger_type,
            'processed': self.processed,
            'skipped': self.skipped,
            'failed': self.failed,
        }


@db_retry
def find_automated_campaigns(trigger_type, tenant_id=None):
    queryset = Campaign.objects.filter(
        is_automated=True,
        trigger_type=trigger_type,
        status=Campaign.Status.APPROVED
    )
    if tenant_id is not None:
        queryset = queryset.filter(tenant_id=tenant_id)
    return list(queryset.order_by('pk').values_list('pk', flat=True))


@db_retry
def find_due_campaigns(now):
    return list(
        Campaign.objects.filter(
            is_automated=False,
            status=Campaign.Status.SCHEDULED,
            scheduled_at__lte=now
        ).order_by('scheduled_at', 'pk').values_list('pk', flat=True)
    )


def _run_each(label, campaign_ids, processor):
    result = TriggerScanResult(trigger_type=label)
    for campaign_id in campaign_ids:
        try:
            outcome = processor(campaign_id)
        except Exception:
            logger.exception(f"Processing campaign {campaign_id} for '{label}' failed")
            result.failed += 1
            continue
        if outcome is None:
            # The processor records its own failures on the campaign row.
            if Campaign.objects.filter(pk=campaign_id, status=Campaign.Status.FAILED).exists():
                result.failed += 1
            else:
                result.skipped += 1
        else:
            result.processed += 1
    return result


def process_automated_triggers(trigger_type, tenant_id=None, processor=process_campaign):
    """Process every approved automated campaign listening for ``trigger_type``.

    One campaign failing does not stop the others.
    """
    campaign_ids = find_automated_campaigns(trigger_type, tenant_id)
    result = _run_each(trigger_type, campaign_ids, processor)
    logger.info(
        f"Trigger '{trigger_type}': {result.processed} processed, "
        f"{result.skipped} skipped, {result.failed} failed"
    )
    return result


def process_due_campaigns(now=None, processor=process_campaign):
    now = now or timezone.now()
    campaign_ids = find_due_campaigns(now)
    result = _run_each('scheduled', campaign_ids, processor)
    if campaign_ids:
        logger.info(f"Scheduled sweep: {result.processed} processed, {result.failed} failed")
    return result
