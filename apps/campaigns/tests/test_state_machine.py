from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import PermissionDenied, ValidationError

from apps.campaigns.exceptions import CampaignStateError
from apps.campaigns.models import Campaign
from apps.campaigns.state_machine import CampaignStateMachine
from .factories import make_campaign, make_user

NOW = timezone.now()


class StateMachineTestCase(TestCase):
    def setUp(self):
        self.manager = make_user(role='manager')
        self.agent = make_user(role='agent')
        self.enqueued = []

    def machine_for(self, user):
        return CampaignStateMachine(user.caller, enqueue=self.enqueued.append, clock=lambda: NOW)

    def campaign_data(self, **overrides):
        data = {
            'title': 'Diwali greetings',
            'campaign_type': Campaign.Type.FESTIVAL,
            'channels': ['email', 'whatsapp'],
            'content': 'Happy Diwali {{name}}',
            'target_audience': {'all_clients': True},
            'scheduled_at': NOW,
        }
        data.update(overrides)
        return data


class CreateTest(StateMachineTestCase):
    def test_approver_creation_is_auto_approved_and_released(self):
        campaign = self.machine_for(self.manager).create(**self.campaign_data())

        self.assertEqual(campaign.status, Campaign.Status.APPROVED)
        self.assertEqual(campaign.approval_status, Campaign.ApprovalStatus.APPROVED)
        self.assertFalse(campaign.approval_required)
        self.assertEqual(campaign.approved_by_id, self.manager.pk)
        self.assertEqual(campaign.approved_at, NOW)
        self.assertEqual(campaign.tenant_id, self.manager.tenant_id)
        self.assertEqual(self.enqueued, [campaign])

    def test_future_campaign_is_scheduled_instead_of_processed(self):
        later = NOW + timedelta(days=2)
        campaign = self.machine_for(self.manager).create(**self.campaign_data(scheduled_at=later))

        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SCHEDULED)
        self.assertEqual(self.enqueued, [])

    def test_automated_campaign_waits_for_trigger(self):
        campaign = self.machine_for(self.manager).create(
            **self.campaign_data(is_automated=True, trigger_type='birthday')
        )
        self.assertEqual(campaign.status, Campaign.Status.APPROVED)
        self.assertEqual(self.enqueued, [])

    def test_agent_creation_needs_approval(self):
        campaign = self.machine_for(self.agent).create(**self.campaign_data())

        self.assertEqual(campaign.status, Campaign.Status.PENDING_APPROVAL)
        self.assertEqual(campaign.approval_status, Campaign.ApprovalStatus.PENDING_APPROVAL)
        self.assertTrue(campaign.approval_required)
        self.assertIsNone(campaign.approved_by_id)
        self.assertEqual(self.enqueued, [])

    def test_draft_then_submit(self):
        machine = self.machine_for(self.agent)
        campaign = machine.create(as_draft=True, **self.campaign_data())
        self.assertEqual(campaign.status, Campaign.Status.DRAFT)

        campaign = machine.submit(campaign)
        self.assertEqual(campaign.status, Campaign.Status.PENDING_APPROVAL)

        with self.assertRaises(CampaignStateError):
            machine.submit(campaign)


class DecideTest(StateMachineTestCase):
    def setUp(self):
        super().setUp()
        self.campaign = self.machine_for(self.agent).create(**self.campaign_data())

    def test_approve_releases_campaign(self):
        campaign = self.machine_for(self.manager).approve(self.campaign)

        self.assertEqual(campaign.status, Campaign.Status.APPROVED)
        self.assertEqual(campaign.approval_status, Campaign.ApprovalStatus.APPROVED)
        self.assertEqual(campaign.approved_by_id, self.manager.pk)
        self.assertEqual([c.pk for c in self.enqueued], [self.campaign.pk])

    def test_deciding_twice_is_a_conflict(self):
        machine = self.machine_for(self.manager)
        machine.approve(self.campaign)

        with self.assertRaises(CampaignStateError):
            machine.approve(self.campaign)
        with self.assertRaises(CampaignStateError):
            machine.reject(self.campaign, 'too late')

        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.status, Campaign.Status.APPROVED)
        self.assertEqual(len(self.enqueued), 1)

    def test_reject_cancels_with_reason(self):
        campaign = self.machine_for(self.manager).reject(self.campaign, 'Wrong audience')

        self.assertEqual(campaign.status, Campaign.Status.CANCELLED)
        self.assertEqual(campaign.approval_status, Campaign.ApprovalStatus.REJECTED)
        self.assertEqual(campaign.rejection_reason, 'Wrong audience')
        self.assertEqual(self.enqueued, [])

    def test_agent_cannot_decide(self):
        with self.assertRaises(PermissionDenied):
            self.machine_for(self.agent).approve(self.campaign)
        self.campaign.refresh_from_db()
        self.assertEqual(self.campaign.status, Campaign.Status.PENDING_APPROVAL)

    def test_unknown_action(self):
        with self.assertRaises(ValidationError):
            self.machine_for(self.manager).decide(self.campaign, 'escalate')

    def test_other_tenant_cannot_see_campaign(self):
        outsider = make_user(role='admin', tenant_id=2)
        with self.assertRaises(Campaign.DoesNotExist):
            self.machine_for(outsider).approve(self.campaign)

    def test_unsubmitted_draft_cannot_be_decided(self):
        draft = self.machine_for(self.agent).create(as_draft=True, **self.campaign_data())
        machine = self.machine_for(self.manager)

        with self.assertRaises(CampaignStateError):
            machine.approve(draft)
        with self.assertRaises(CampaignStateError):
            machine.reject(draft, 'not yet')

        draft.refresh_from_db()
        self.assertEqual(draft.status, Campaign.Status.DRAFT)
        self.assertIsNone(draft.approved_by_id)
        self.assertEqual(self.enqueued, [])

        submitted = self.machine_for(self.agent).submit(draft)
        self.assertEqual(machine.approve(submitted).status, Campaign.Status.APPROVED)


class LifecycleTest(StateMachineTestCase):
    def test_update_only_while_editable(self):
        machine = self.machine_for(self.agent)
        pending = machine.create(**self.campaign_data())
        updated = machine.update(pending, title='Updated title')
        self.assertEqual(updated.title, 'Updated title')

        sent = make_campaign(self.agent, status=Campaign.Status.SENT)
        with self.assertRaises(CampaignStateError):
            machine.update(sent, title='Too late')

    def test_cancel(self):
        machine = self.machine_for(self.manager)
        scheduled = make_campaign(self.manager, status=Campaign.Status.SCHEDULED)
        self.assertEqual(machine.cancel(scheduled).status, Campaign.Status.CANCELLED)

        for status in (Campaign.Status.SENDING, Campaign.Status.SENT, Campaign.Status.CANCELLED):
            with self.assertRaises(CampaignStateError):
                machine.cancel(make_campaign(self.manager, status=status))

    def test_retry_failed_campaign(self):
        failed = make_campaign(self.manager, status=Campaign.Status.FAILED, scheduled_at=NOW)
        campaign = self.machine_for(self.manager).retry(failed)

        self.assertEqual(campaign.status, Campaign.Status.APPROVED)
        self.assertEqual([c.pk for c in self.enqueued], [failed.pk])

    def test_retry_rules(self):
        with self.assertRaises(CampaignStateError):
            self.machine_for(self.manager).retry(make_campaign(self.manager, status=Campaign.Status.SENT))
        with self.assertRaises(PermissionDenied):
            self.machine_for(self.agent).retry(make_campaign(self.agent, status=Campaign.Status.FAILED))


class ABTestManagementTest(StateMachineTestCase):
    def setUp(self):
        super().setUp()
        self.campaign = make_campaign(self.manager, status=Campaign.Status.SCHEDULED, ab_test={
            'enabled': False,
            'variants': [
                {'name': 'A', 'percentage': 50, 'stats': {'sent': 0}},
                {'name': 'B', 'percentage': 50, 'stats': {'sent': 0}},
            ],
        })
        self.machine = self.machine_for(self.manager)

    def test_start_applies_defaults(self):
        campaign = self.machine.manage_ab_test(self.campaign, 'start')
        self.assertTrue(campaign.ab_test['enabled'])
        self.assertEqual(campaign.ab_test['test_duration_hours'], 24)
        self.assertEqual(campaign.ab_test['confidence_level'], 95)
        self.assertEqual(len(campaign.ab_test['variants']), 2)

    def test_start_replaces_variants(self):
        campaign = self.machine.manage_ab_test(self.campaign, 'start', {
            'variants': [{'name': 'only', 'percentage': 100}],
            'test_duration_hours': 48,
        })
        self.assertEqual([v['name'] for v in campaign.ab_test['variants']], ['only'])
        self.assertEqual(campaign.ab_test['test_duration_hours'], 48)

    def test_stop(self):
        self.machine.manage_ab_test(self.campaign, 'start')
        campaign = self.machine.manage_ab_test(self.campaign, 'stop')
        self.assertFalse(campaign.ab_test['enabled'])

    def test_start_and_stop_not_allowed_after_sending(self):
        sent = make_campaign(self.manager, status=Campaign.Status.SENT, ab_test=self.campaign.ab_test)
        with self.assertRaises(CampaignStateError):
            self.machine.manage_ab_test(sent, 'start')
        with self.assertRaises(CampaignStateError):
            self.machine.manage_ab_test(sent, 'stop')

    def test_declare_winner(self):
        sent = make_campaign(self.manager, status=Campaign.Status.SENT, ab_test=self.campaign.ab_test)
        campaign = self.machine.manage_ab_test(sent, 'declare_winner', {'winning_variant': 'B'})
        self.assertEqual(campaign.ab_test['winning_variant'], 'B')

        with self.assertRaises(ValidationError):
            self.machine.manage_ab_test(sent, 'declare_winner', {'winning_variant': 'C'})


class ViewerAccessTest(StateMachineTestCase):
    def setUp(self):
        super().setUp()
        self.viewer = make_user(role='viewer')
        self.machine = self.machine_for(self.viewer)
        self.campaign = make_campaign(self.manager, status=Campaign.Status.SCHEDULED)

    def test_viewer_cannot_create(self):
        with self.assertRaises(PermissionDenied):
            self.machine.create(**self.campaign_data())
        with self.assertRaises(PermissionDenied):
            self.machine.create(as_draft=True, **self.campaign_data())
        self.assertEqual(Campaign.objects.count(), 1)

    def test_viewer_cannot_change_existing_campaigns(self):
        draft = make_campaign(self.manager, status=Campaign.Status.DRAFT)
        attempts = [
            lambda: self.machine.update(draft, title='Hijacked'),
            lambda: self.machine.submit(draft),
            lambda: self.machine.cancel(self.campaign),
            lambda: self.machine.manage_ab_test(self.campaign, 'start'),
        ]
        for attempt in attempts:
            with self.assertRaises(PermissionDenied):
                attempt()

        draft.refresh_from_db()
        self.campaign.refresh_from_db()
        self.assertEqual(draft.title, 'Renewal reminder')
        self.assertEqual(draft.status, Campaign.Status.DRAFT)
        self.assertEqual(self.campaign.status, Campaign.Status.SCHEDULED)
        self.assertEqual(self.campaign.ab_test, {})
