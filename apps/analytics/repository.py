from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional

from django.db.models import Count, Q, Sum

from apps.campaigns.models import Campaign, Recipient
from .cached import cached_report, invalidate_report
from .performance import monitor_query_performance

Status = Recipient.Status

# A recipient at a later stage has passed every earlier one.
FUNNEL = {
    'sent_count': Q(status__in=[Status.SENT, Status.DELIVERED, Status.OPENED, Status.CLICKED, Status.CONVERTED]),
    'delivered_count': Q(status__in=[Status.DELIVERED, Status.OPENED, Status.CLICKED, Status.CONVERTED]),
    'opened_count': Q(status__in=[Status.OPENED, Status.CLICKED, Status.CONVERTED]),
    'clicked_count': Q(status__in=[Status.CLICKED, Status.CONVERTED]) | Q(engagement_clicks__gte=1),
    'converted_count': Q(status=Status.CONVERTED),
}


def _float(value):
    return float(value) if value else 0.0


def _rate(numerator, denominator):
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, 2)


def calculate_roi(revenue, cost):
    revenue = Decimal(revenue or 0)
    cost = Decimal(cost or 0)
    if not cost:
        return Decimal('0.00')
    return ((revenue - cost) / cost * 100).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class CampaignAnalyticsRepository:
    """Read model over a campaign's Recipient records."""

    def __init__(self, channel: Optional[str] = None, variant: Optional[str] = None):
        self.channel = channel
        self.variant = variant

    def recipients(self, campaign_id):
        queryset = Recipient.objects.filter(campaign_id=campaign_id)
        if self.channel:
            queryset = queryset.filter(channel=self.channel)
        if self.variant:
            queryset = queryset.filter(ab_variant=self.variant)
        return queryset

    @monitor_query_performance
    def status_breakdown(self, campaign_id) -> List[Dict[str, Any]]:
        rows = (
            self.recipients(campaign_id)
            .values('status')
            .annotate(
                count=Count('id'),
                total_engagement=Sum('engagement_score'),
                total_revenue=Sum('conversion_revenue'),
            )
            .order_by('status')
        )
        return [{
            'status': row['status'],
            'count': row['count'],
            'total_engagement': _float(row['total_engagement']),
            'total_revenue': _float(row['total_revenue']),
        } for row in rows]

    @monitor_query_performance
    def channel_breakdown(self, campaign_id) -> List[Dict[str, Any]]:
        rows = (
            self.recipients(campaign_id)
            .values('channel')
            .annotate(
                total=Count('id'),
                sent=Count('id', filter=~Q(status=Status.PENDING)),
                delivered=Count('id', filter=Q(status=Status.DELIVERED)),
                opened=Count('id', filter=Q(status=Status.OPENED)),
                clicked=Count('id', filter=Q(engagement_clicks__gte=1)),
                converted=Count('id', filter=Q(status=Status.CONVERTED)),
                revenue=Sum('conversion_revenue'),
                cost=Sum('delivery_cost'),
            )
            .order_by('channel')
        )
        return [{
            'channel': row['channel'],
            'total': row['total'],
            'sent': row['sent'],
            'delivered': row['delivered'],
            'opened': row['opened'],
            'clicked': row['clicked'],
            'converted': row['converted'],
            'revenue': _float(row['revenue']),
            'cost': _float(row['cost']),
        } for row in rows]

    @monitor_query_performance
    def variant_breakdown(self, campaign_id) -> List[Dict[str, Any]]:
        rows = (
            self.recipients(campaign_id)
            .filter(ab_variant__isnull=False)
            .values('ab_variant')
            .annotate(
                recipients=Count('id'),
                delivered=Count('id', filter=Q(status=Status.DELIVERED)),
                opened=Count('id', filter=Q(status=Status.OPENED)),
                clicked=Count('id', filter=Q(engagement_clicks__gte=1)),
                converted=Count('id', filter=Q(status=Status.CONVERTED)),
                revenue=Sum('conversion_revenue'),
            )
            .order_by('ab_variant')
        )
        return [{
            'variant': row['ab_variant'],
            'recipients': row['recipients'],
            'delivered': row['delivered'],
            'opened': row['opened'],
            'clicked': row['clicked'],
            'converted': row['converted'],
            'revenue': _float(row['revenue']),
        } for row in rows]

    @staticmethod
    def performance_metrics(campaign: Campaign) -> Dict[str, float]:
        """Rates derived from the campaign's stats snapshot."""
        return {
            'delivery_rate': _rate(campaign.delivered_count, campaign.total_recipients),
            'open_rate': _rate(campaign.opened_count, campaign.delivered_count),
            'click_rate': _rate(campaign.clicked_count, campaign.opened_count),
            'conversion_rate': _rate(campaign.converted_count, campaign.total_recipients),
            'roi': _float(campaign.roi),
        }

    def campaign_report(self, campaign: Campaign) -> Dict[str, Any]:
        def build():
            return {
                'campaign_id': campaign.pk,
                'title': campaign.title,
                'status': campaign.status,
                'status_breakdown': self.status_breakdown(campaign.pk),
                'channel_breakdown': self.channel_breakdown(campaign.pk),
                'variant_breakdown': (
                    self.variant_breakdown(campaign.pk) if campaign.ab_test_enabled else None
                ),
                'performance_metrics': self.performance_metrics(campaign),
            }

        if self.channel or self.variant:
            return build()
        return cached_report(campaign.pk, build)

    @monitor_query_performance
    def refresh_campaign_stats(self, campaign: Campaign) -> Campaign:
        """Recompute the campaign's stats snapshot from its recipients."""
        aggregates = Recipient.objects.filter(campaign_id=campaign.pk).aggregate(
            total_recipients=Count('id'),
            revenue=Sum('conversion_revenue'),
            cost=Sum('delivery_cost'),
            **{name: Count('id', filter=condition) for name, condition in FUNNEL.items()}
        )

        campaign.total_recipients = aggregates['total_recipients']
        for name in FUNNEL:
            setattr(campaign, name, aggregates[name])
        campaign.roi = calculate_roi(aggregates['revenue'], aggregates['cost'])
        campaign.save(update_fields=['total_recipients', 'roi', 'updated_at', *FUNNEL])

        invalidate_report(campaign.pk)
        return campaign
