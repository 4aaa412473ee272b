from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from apps.authentication.permissions import IsTenantUser
from apps.campaigns.models import Campaign
from .repository import CampaignAnalyticsRepository


def _campaign_for(request, campaign_id):
    queryset = Campaign.objects.filter(tenant_id=request.user.tenant_id)
    if not request.user.caller.can_view_all:
        queryset = queryset.filter(created_by_id=request.user.pk)
    return get_object_or_404(queryset, pk=campaign_id)


@api_view(['GET'])
@permission_classes([IsTenantUser])
def campaign_analytics(request, campaign_id):
    """Status, channel and variant breakdowns with derived rates"""
    campaign = _campaign_for(request, campaign_id)
    repository = CampaignAnalyticsRepository(
        channel=request.GET.get('channel') or None,
        variant=request.GET.get('variant') or None
    )
    return Response(repository.campaign_report(campaign))


@api_view(['POST'])
@permission_classes([IsTenantUser])
def refresh_stats(request, campaign_id):
    from tasks.campaigns import refresh_campaign_stats_task
    campaign = _campaign_for(request, campaign_id)
    result = refresh_campaign_stats_task.delay(campaign.pk)
    return Response(
        {'task_id': result.id, 'campaign_id': campaign.pk, 'status': 'queued'},
        status=status.HTTP_202_ACCEPTED
    )
