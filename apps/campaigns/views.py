from django.conf import settings
from django.db.models import Q
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.response import Response

from apps.authentication.permissions import CanApproveCampaigns, CanWriteCampaigns, IsTenantUser
from apps.clients.serializers import ClientSummarySerializer
from .audience import eligible_pairs, resolve_audience
from .exceptions import CampaignStateError
from .models import Campaign, CampaignTemplate
from .processing import enqueue_campaign_processing
from .serializers import (
    ABTestActionSerializer,
    ApprovalActionSerializer,
    AudiencePreviewSerializer,
    CampaignSerializer,
    CampaignTemplateSerializer,
)
from .state_machine import CampaignStateMachine


class CampaignViewSet(mixins.CreateModelMixin,
                      mixins.ListModelMixin,
                      mixins.RetrieveModelMixin,
                      mixins.UpdateModelMixin,
                      viewsets.GenericViewSet):
    """Campaigns are never deleted; cancel them instead."""
    permission_classes = [IsTenantUser]
    serializer_class = CampaignSerializer
    queryset = Campaign.objects.all()

    def get_queryset(self):
        user = self.request.user
        queryset = Campaign.objects.filter(tenant_id=user.tenant_id)
        if not user.caller.can_view_all:
            queryset = queryset.filter(created_by_id=user.pk)

        params = self.request.query_params
        if params.get('campaign_type'):
            queryset = queryset.filter(campaign_type=params['campaign_type'])
        if params.get('status'):
            queryset = queryset.filter(status=params['status'])
        if params.get('search'):
            queryset = queryset.filter(
                Q(title__icontains=params['search']) | Q(description__icontains=params['search'])
            )
        return queryset.order_by('-created_at', '-pk')

    def get_machine(self):
        return CampaignStateMachine(self.request.user.caller)

    def perform_create(self, serializer):
        data = dict(serializer.validated_data)
        as_draft = data.pop('as_draft', False)
        serializer.instance = self.get_machine().create(as_draft=as_draft, **data)

    def perform_update(self, serializer):
        data = dict(serializer.validated_data)
        data.pop('as_draft', None)
        serializer.instance = self.get_machine().update(serializer.instance, **data)

    def _respond(self, campaign, status_code=status.HTTP_200_OK):
        return Response(self.get_serializer(campaign).data, status=status_code)

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        serializer = ApprovalActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        campaign = self.get_machine().decide(
            self.get_object(),
            serializer.validated_data['action'],
            serializer.validated_data['reason']
        )
        return self._respond(campaign)

    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        return self._respond(self.get_machine().submit(self.get_object()))

    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        return self._respond(self.get_machine().cancel(self.get_object()))

    @action(detail=True, methods=['post'])
    def retry(self, request, pk=None):
        return self._respond(self.get_machine().retry(self.get_object()))

    @action(detail=True, methods=['post'], permission_classes=[IsTenantUser, CanApproveCampaigns])
    def process(self, request, pk=None):
        campaign = self.get_object()
        if campaign.status not in Campaign.PROCESSABLE_STATUSES:
            raise CampaignStateError(f"Campaign in status {campaign.status} cannot be processed")
        enqueue_campaign_processing(campaign)
        return Response(
            {'campaign_id': campaign.pk, 'status': 'queued'},
            status=status.HTTP_202_ACCEPTED
        )

    @action(detail=True, methods=['post'], url_path='ab-test')
    def ab_test(self, request, pk=None):
        serializer = ABTestActionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        campaign = self.get_machine().manage_ab_test(
            self.get_object(),
            serializer.validated_data['action'],
            serializer.validated_data['variant_data']
        )
        return self._respond(campaign)

    @action(detail=False, methods=['post'], url_path='preview-audience')
    def preview_audience(self, request):
        """Count who a targeting rule would reach without writing anything."""
        serializer = AudiencePreviewSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        clients = list(resolve_audience(request.user.tenant_id, data['target_audience']))
        total_recipients = sum(1 for _ in eligible_pairs(clients, data['channels'], data['campaign_type']))

        return Response({
            'total_clients': len(clients),
            'total_recipients': total_recipients,
            'clients': ClientSummarySerializer(clients[:settings.CAMPAIGN_PREVIEW_LIMIT], many=True).data,
        })


class CampaignTemplateViewSet(mixins.CreateModelMixin,
                              mixins.ListModelMixin,
                              mixins.RetrieveModelMixin,
                              viewsets.GenericViewSet):
    permission_classes = [IsTenantUser, CanWriteCampaigns]
    serializer_class = CampaignTemplateSerializer
    queryset = CampaignTemplate.objects.all()

    def get_queryset(self):
        queryset = CampaignTemplate.objects.filter(
            tenant_id=self.request.user.tenant_id,
            is_active=True
        )
        params = self.request.query_params
        if params.get('category'):
            queryset = queryset.filter(category=params['category'])
        if params.get('search'):
            queryset = queryset.filter(
                Q(name__icontains=params['search']) | Q(subject__icontains=params['search'])
            )
        return queryset.order_by('name')

    def perform_create(self, serializer):
        serializer.save(tenant_id=self.request.user.tenant_id, created_by=self.request.user)


@api_view(['POST'])
@permission_classes([IsTenantUser, CanApproveCampaigns])
def process_triggers(request, trigger_type):
    from tasks.campaigns import scan_automated_triggers_task
    result = scan_automated_triggers_task.delay(trigger_type, request.user.tenant_id)
    return Response(
        {'task_id': result.id, 'trigger_type': trigger_type, 'status': 'queued'},
        status=status.HTTP_202_ACCEPTED
    )
