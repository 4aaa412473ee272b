"""Recipient materialization.

Turns a campaign's resolved audience into Recipient and OutboundMessage rows.
Both collections are written with one bulk insert each inside a single
transaction, together with the campaign's stats, so a failed pass leaves no
partial recipient set behind.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .audience import eligible_pairs, resolve_audience
from .models import Campaign, OutboundMessage, Recipient
from .personalization import personalization_variables, render
from .variants import draw_variant, tally_variants

logger = logging.getLogger(__name__)


@dataclass
class MaterializationResult:
    campaign_id: int
    clients: int = 0
    recipients: int = 0
    variant_counts: Dict[str, int] = field(default_factory=dict)


def build_deliveries(campaign, clients, rng=None, now=None):
    """Build unsaved Recipient and OutboundMessage instances for ``clients``."""
    now = now or timezone.now()
    recipients: List[Recipient] = []
    messages: List[OutboundMessage] = []

    for client, channel in eligible_pairs(clients, campaign.channels, campaign.campaign_type):
        ab_variant: Optional[str] = draw_variant(campaign.ab_test, rng)
        overrides = campaign.channel_config(channel)
        variables = personalization_variables(client)
        subject = render(overrides.get('subject') or campaign.title, variables)
        content = render(overrides.get('content') or campaign.content, variables)

        recipients.append(Recipient(
            tenant_id=campaign.tenant_id,
            campaign=campaign,
            client=client,
            channel=channel,
            status=Recipient.Status.PENDING,
            ab_variant=ab_variant,
            personalized_subject=subject,
            personalized_content=content,
            personalization_variables=variables,
        ))
        messages.append(OutboundMessage(
            tenant_id=campaign.tenant_id,
            campaign=campaign,
            client=client,
            channel=channel,
            message_type=campaign.campaign_type,
            subject=subject,
            content=content,
            created_by_id=campaign.created_by_id,
            status=OutboundMessage.Status.PENDING,
            scheduled_for=now,
        ))

    return recipients, messages


def _apply_variant_stats(ab_test, counts):
    variants = []
    for variant in ab_test.get('variants') or []:
        stats = dict(variant.get('stats') or {})
        stats['sent'] = counts.get(variant.get('name'), 0)
        variants.append({**variant, 'stats': stats})
    return {**ab_test, 'variants': variants}


def materialize_recipients(campaign: Campaign, rng=None) -> MaterializationResult:
    clients = list(resolve_audience(campaign.tenant_id, campaign.target_audience))
    recipients, messages = build_deliveries(campaign, clients, rng=rng)
    batch_size = settings.CAMPAIGN_BULK_BATCH_SIZE

    result = MaterializationResult(
        campaign_id=campaign.pk,
        clients=len(clients),
        recipients=len(recipients),
    )

    with transaction.atomic():
        Recipient.objects.bulk_create(recipients, batch_size=batch_size)
        OutboundMessage.objects.bulk_create(messages, batch_size=batch_size)

        campaign.total_recipients = len(recipients)
        campaign.status = Campaign.Status.SENT
        update_fields = ['total_recipients', 'status', 'updated_at']

        if campaign.ab_test.get('enabled'):
            result.variant_counts = tally_variants(r.ab_variant for r in recipients)
            campaign.ab_test = _apply_variant_stats(campaign.ab_test, result.variant_counts)
            update_fields.append('ab_test')

        campaign.save(update_fields=update_fields)

    logger.info(
        f"Campaign {campaign.pk} materialized {result.recipients} recipients "
        f"for {result.clients} clients"
    )
    return result
