"""Campaign lifecycle.

All status changes made on behalf of a caller go through
``CampaignStateMachine``. The caller's capabilities arrive precomputed in a
``CallerIdentity``; the machine never looks at role names.
"""
import logging

from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from .exceptions import CampaignStateError
from .models import Campaign
from .processing import enqueue_campaign_processing

logger = logging.getLogger(__name__)

PRE_SEND_STATUSES = (
    Campaign.Status.DRAFT,
    Campaign.Status.PENDING_APPROVAL,
    Campaign.Status.APPROVED,
    Campaign.Status.SCHEDULED,
)
AB_TEST_ACTIONS = ('start', 'stop', 'declare_winner')
DEFAULT_TEST_DURATION_HOURS = 24
DEFAULT_CONFIDENCE_LEVEL = 95


class CampaignStateMachine:
    def __init__(self, caller, enqueue=enqueue_campaign_processing, clock=timezone.now):
        self.caller = caller
        self.enqueue = enqueue
        self.clock = clock

    # Creation and approval gate

    def create(self, as_draft=False, **data):
        self._require_write()
        campaign = Campaign(
            tenant_id=self.caller.tenant_id,
            created_by_id=self.caller.user_id,
            last_modified_by_id=self.caller.user_id,
            **data
        )
        if campaign.scheduled_at is None:
            campaign.scheduled_at = self.clock()

        with transaction.atomic():
            if as_draft:
                campaign.status = Campaign.Status.DRAFT
                campaign.approval_required = not self.caller.can_auto_approve
                campaign.save()
                logger.info(f"Campaign {campaign.pk} saved as draft by user {self.caller.user_id}")
                return campaign

            self._gate(campaign)
        return campaign

    def submit(self, campaign):
        self._require_write()
        with transaction.atomic():
            campaign = self._lock(campaign)
            if campaign.status != Campaign.Status.DRAFT:
                raise CampaignStateError(f"Only draft campaigns can be submitted, not {campaign.status}")
            campaign.last_modified_by_id = self.caller.user_id
            self._gate(campaign)
        return campaign

    def _gate(self, campaign):
        if self.caller.can_auto_approve:
            campaign.approval_required = False
            self._stamp_approval(campaign)
            campaign.save()
            logger.info(f"Campaign {campaign.pk} auto-approved for user {self.caller.user_id}")
            self._release(campaign)
        else:
            campaign.approval_required = True
            campaign.approval_status = Campaign.ApprovalStatus.PENDING_APPROVAL
            campaign.status = Campaign.Status.PENDING_APPROVAL
            campaign.save()
            logger.info(f"Campaign {campaign.pk} submitted for approval by user {self.caller.user_id}")

    def _stamp_approval(self, campaign):
        campaign.approval_status = Campaign.ApprovalStatus.APPROVED
        campaign.approved_by_id = self.caller.user_id
        campaign.approved_at = self.clock()
        campaign.status = Campaign.Status.APPROVED

    def _release(self, campaign):
        """Hand an approved campaign to processing, the scheduler or its trigger."""
        if campaign.is_automated:
            logger.info(f"Campaign {campaign.pk} approved, waiting for trigger '{campaign.trigger_type}'")
            return
        if campaign.is_due(self.clock()):
            self.enqueue(campaign)
            return
        campaign.status = Campaign.Status.SCHEDULED
        campaign.save(update_fields=['status', 'updated_at'])
        logger.info(f"Campaign {campaign.pk} scheduled for {campaign.scheduled_at}")

    # Edits

    def update(self, campaign, **changes):
        self._require_write()
        with transaction.atomic():
            campaign = self._lock(campaign)
            if campaign.status not in Campaign.EDITABLE_STATUSES:
                raise CampaignStateError(f"Campaign in status {campaign.status} can no longer be edited")
            for field, value in changes.items():
                setattr(campaign, field, value)
            campaign.last_modified_by_id = self.caller.user_id
            campaign.save()
        return campaign

    # Decisions

    def decide(self, campaign, action, reason=''):
        if not self.caller.can_approve:
            raise PermissionDenied('Approver role required')
        if action not in ('approve', 'reject'):
            raise ValidationError({'action': f"Unknown approval action '{action}'"})

        with transaction.atomic():
            campaign = self._lock(campaign)
            if campaign.approval_status != Campaign.ApprovalStatus.PENDING_APPROVAL:
                raise CampaignStateError(f"Campaign has already been {campaign.approval_status}")
            if campaign.status != Campaign.Status.PENDING_APPROVAL:
                raise CampaignStateError(f"Campaign in status {campaign.status} has not been submitted for approval")

            if action == 'approve':
                self._transition(campaign, Campaign.Status.APPROVED)
                self._stamp_approval(campaign)
                campaign.rejection_reason = ''
                campaign.last_modified_by_id = self.caller.user_id
                campaign.save()
                logger.info(f"Campaign {campaign.pk} approved by user {self.caller.user_id}")
                self._release(campaign)
            else:
                self._transition(campaign, Campaign.Status.CANCELLED)
                campaign.approval_status = Campaign.ApprovalStatus.REJECTED
                campaign.approved_by_id = self.caller.user_id
                campaign.approved_at = self.clock()
                campaign.rejection_reason = reason or ''
                campaign.last_modified_by_id = self.caller.user_id
                campaign.save()
                logger.info(f"Campaign {campaign.pk} rejected by user {self.caller.user_id}")
        return campaign

    def approve(self, campaign):
        return self.decide(campaign, 'approve')

    def reject(self, campaign, reason=''):
        return self.decide(campaign, 'reject', reason)

    def cancel(self, campaign):
        self._require_write()
        with transaction.atomic():
            campaign = self._lock(campaign)
            self._transition(campaign, Campaign.Status.CANCELLED)
            campaign.last_modified_by_id = self.caller.user_id
            campaign.save(update_fields=['status', 'last_modified_by', 'updated_at'])
        logger.info(f"Campaign {campaign.pk} cancelled by user {self.caller.user_id}")
        return campaign

    def retry(self, campaign):
        if not self.caller.can_approve:
            raise PermissionDenied('Approver role required')
        with transaction.atomic():
            campaign = self._lock(campaign)
            if campaign.status != Campaign.Status.FAILED:
                raise CampaignStateError(f"Only failed campaigns can be retried, not {campaign.status}")
            self._transition(campaign, Campaign.Status.APPROVED)
            campaign.last_modified_by_id = self.caller.user_id
            campaign.save(update_fields=['status', 'last_modified_by', 'updated_at'])
            logger.info(f"Campaign {campaign.pk} queued for retry by user {self.caller.user_id}")
            self._release(campaign)
        return campaign

    # A/B testing

    def manage_ab_test(self, campaign, action, variant_data=None):
        self._require_write()
        variant_data = variant_data or {}
        if action not in AB_TEST_ACTIONS:
            raise ValidationError({'action': f"Unknown A/B test action '{action}'"})

        with transaction.atomic():
            campaign = self._lock(campaign)
            ab_test = dict(campaign.ab_test or {})

            if action in ('start', 'stop') and campaign.status not in PRE_SEND_STATUSES:
                raise CampaignStateError(f"Cannot {action} an A/B test on a campaign in status {campaign.status}")

            if action == 'start':
                ab_test['enabled'] = True
                if variant_data.get('variants'):
                    ab_test['variants'] = variant_data['variants']
                ab_test['test_duration_hours'] = variant_data.get(
                    'test_duration_hours', ab_test.get('test_duration_hours', DEFAULT_TEST_DURATION_HOURS)
                )
                ab_test['confidence_level'] = variant_data.get(
                    'confidence_level', ab_test.get('confidence_level', DEFAULT_CONFIDENCE_LEVEL)
                )
            elif action == 'stop':
                ab_test['enabled'] = False
            else:
                winner = variant_data.get('winning_variant')
                names = [v.get('name') for v in ab_test.get('variants') or []]
                if not winner or winner not in names:
                    raise ValidationError({'winning_variant': f"'{winner}' is not a variant of this campaign"})
                ab_test['winning_variant'] = winner

            campaign.ab_test = ab_test
            campaign.last_modified_by_id = self.caller.user_id
            campaign.save(update_fields=['ab_test', 'last_modified_by', 'updated_at'])

        logger.info(f"A/B test {action} on campaign {campaign.pk} by user {self.caller.user_id}")
        return campaign

    # Helpers

    def _require_write(self):
        if not self.caller.can_write:
            raise PermissionDenied("Campaign write access required")

    def _lock(self, campaign):
        return Campaign.objects.select_for_update().get(pk=campaign.pk, tenant_id=self.caller.tenant_id)

    @staticmethod
    def _transition(campaign, new_status):
        if not campaign.can_transition_to(new_status):
            raise CampaignStateError(f"Cannot move campaign from {campaign.status} to {new_status}")
        campaign.status = new_status
