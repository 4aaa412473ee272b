"""Handoff of outbound messages to the channel transports.

The transport itself lives outside this project. A dispatcher backend is any
class with a ``dispatch(message)`` method, configured through
``CAMPAIGN_DISPATCH_BACKEND``.
"""
import logging

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string
from tenacity import retry, stop_after_attempt, wait_exponential, RetryError

from .models import OutboundMessage

logger = logging.getLogger(__name__)


class BaseDispatcher:
    def dispatch(self, message):
        raise NotImplementedError


class LoggingDispatcher(BaseDispatcher):
    """Default backend: records the handoff without contacting a transport."""

    def dispatch(self, message):
        logger.info(
            f"Dispatching message {message.pk} for campaign {message.campaign_id} "
            f"to client {message.client_id} via {message.channel}"
        )


def get_dispatcher():
    return import_string(settings.CAMPAIGN_DISPATCH_BACKEND)()


def _send_with_retry(dispatcher, message):
    @retry(
        stop=stop_after_attempt(settings.CAMPAIGN_DISPATCH_RETRY_ATTEMPTS),
        wait=wait_exponential(multiplier=settings.CAMPAIGN_DISPATCH_RETRY_WAIT, max=10)
    )
    def send():
        dispatcher.dispatch(message)
    send()


def dispatch_pending_messages(campaign_id, dispatcher=None, send=_send_with_retry):
    """Hand every pending message of the campaign to the dispatcher.

    A message that still fails after retries is marked failed; the rest of the
    batch continues.
    """
    dispatcher = dispatcher or get_dispatcher()
    dispatched = failed = 0

    pending = OutboundMessage.objects.filter(
        campaign_id=campaign_id,
        status=OutboundMessage.Status.PENDING
    ).order_by('pk')

    for message in pending:
        try:
            send(dispatcher, message)
        except RetryError as e:
            logger.error(f"Dispatch failed for message {message.pk}: {e.last_attempt.exception()}")
            message.status = OutboundMessage.Status.FAILED
            message.save(update_fields=['status'])
            failed += 1
            continue
        message.status = OutboundMessage.Status.DISPATCHED
        message.dispatched_at = timezone.now()
        message.save(update_fields=['status', 'dispatched_at'])
        dispatched += 1

    logger.info(f"Campaign {campaign_id}: dispatched {dispatched} messages, {failed} failed")
    return {'campaign_id': campaign_id, 'dispatched': dispatched, 'failed': failed}
