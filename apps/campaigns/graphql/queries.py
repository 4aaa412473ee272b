import strawberry
from typing import List, Optional
from apps.analytics.repository import CampaignAnalyticsRepository
from apps.campaigns.models import Campaign
from .types import CampaignAnalyticsType, CampaignType, PerformanceMetricsType


def campaigns_for(info):
    user = info.context.request.user
    if not user.is_authenticated:
        raise PermissionError('Authentication required')
    queryset = Campaign.objects.filter(tenant_id=user.tenant_id)
    if not user.caller.can_view_all:
        queryset = queryset.filter(created_by_id=user.pk)
    return queryset


@strawberry.type
class CampaignQueries:

    @strawberry.field
    def campaigns(self, info: strawberry.Info, status: Optional[str] = None) -> List[CampaignType]:
        queryset = campaigns_for(info)
        if status:
            queryset = queryset.filter(status=status)
        return queryset.order_by('-created_at')

    @strawberry.field
    def campaign(self, info: strawberry.Info, id: int) -> CampaignType:
        return campaigns_for(info).get(id=id)

    @strawberry.field
    def campaign_analytics(self, info: strawberry.Info, id: int) -> CampaignAnalyticsType:
        campaign = campaigns_for(info).get(id=id)
        report = CampaignAnalyticsRepository().campaign_report(campaign)
        return CampaignAnalyticsType(
            campaign_id=report['campaign_id'],
            title=report['title'],
            status=report['status'],
            status_breakdown=report['status_breakdown'],
            channel_breakdown=report['channel_breakdown'],
            variant_breakdown=report['variant_breakdown'],
            performance_metrics=PerformanceMetricsType(**report['performance_metrics']),
        )
