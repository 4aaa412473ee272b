import strawberry
import strawberry_django
from strawberry import auto
from strawberry.scalars import JSON
from typing import Optional
from apps.campaigns.models import Campaign


@strawberry_django.type(Campaign)
class CampaignType:
    id: auto
    tenant_id: auto
    title: auto
    description: auto
    campaign_type: auto
    channels: JSON
    target_audience: JSON
    ab_test: JSON
    status: auto
    approval_status: auto
    rejection_reason: auto
    is_automated: auto
    trigger_type: auto
    scheduled_at: auto
    total_recipients: auto
    sent_count: auto
    delivered_count: auto
    opened_count: auto
    clicked_count: auto
    converted_count: auto
    created_at: auto


@strawberry.type
class PerformanceMetricsType:
    delivery_rate: float
    open_rate: float
    click_rate: float
    conversion_rate: float
    roi: float


@strawberry.type
class CampaignAnalyticsType:
    campaign_id: int
    title: str
    status: str
    status_breakdown: JSON
    channel_breakdown: JSON
    variant_breakdown: Optional[JSON]
    performance_metrics: PerformanceMetricsType
