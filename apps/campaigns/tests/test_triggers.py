from datetime import timedelta
from unittest import mock

from django.test import TestCase
from django.utils import timezone

from apps.campaigns.models import Campaign, Recipient
from apps.campaigns.triggers import (
    find_automated_campaigns,
    find_due_campaigns,
    process_automated_triggers,
    process_due_campaigns,
)
from .factories import make_campaign, make_client, make_user


class TriggerScanTest(TestCase):
    def setUp(self):
        self.user = make_user(role='admin')
        make_client()
        make_client()
        self.birthday = make_campaign(self.user, is_automated=True, trigger_type='birthday')
        self.second_birthday = make_campaign(self.user, is_automated=True, trigger_type='birthday')
        self.renewal = make_campaign(self.user, is_automated=True, trigger_type='policy_renewal')
        self.pending = make_campaign(
            self.user, is_automated=True, trigger_type='birthday',
            status=Campaign.Status.PENDING_APPROVAL
        )

    def test_find_matches_trigger_and_approved_status(self):
        self.assertEqual(
            find_automated_campaigns('birthday'),
            [self.birthday.pk, self.second_birthday.pk]
        )
        self.assertEqual(find_automated_campaigns('birthday', tenant_id=2), [])

    def test_scan_processes_each_campaign(self):
        result = process_automated_triggers('birthday')

        self.assertEqual((result.processed, result.skipped, result.failed), (2, 0, 0))
        self.assertEqual(Recipient.objects.filter(campaign=self.birthday).count(), 2)
        self.renewal.refresh_from_db()
        self.assertEqual(self.renewal.status, Campaign.Status.APPROVED)
        self.pending.refresh_from_db()
        self.assertEqual(self.pending.status, Campaign.Status.PENDING_APPROVAL)

    def test_one_failure_does_not_stop_the_scan(self):
        calls = []

        def flaky(campaign_id):
            calls.append(campaign_id)
            if campaign_id == self.birthday.pk:
                raise RuntimeError('transport unavailable')
            return 'ok'

        with self.assertLogs('apps.campaigns.triggers', level='ERROR'):
            result = process_automated_triggers('birthday', processor=flaky)

        self.assertEqual(calls, [self.birthday.pk, self.second_birthday.pk])
        self.assertEqual((result.processed, result.failed), (1, 1))
        self.assertEqual(result.as_dict()['trigger_type'], 'birthday')

    def test_processor_failures_are_counted(self):
        with mock.patch('apps.campaigns.processing.materialize_recipients', side_effect=RuntimeError('boom')):
            result = process_automated_triggers('birthday')

        self.assertEqual(result.failed, 2)
        self.birthday.refresh_from_db()
        self.assertEqual(self.birthday.status, Campaign.Status.FAILED)

    def test_already_claimed_campaign_is_skipped(self):
        result = process_automated_triggers('birthday', processor=lambda campaign_id: None)
        self.assertEqual(result.skipped, 2)


class DueSweepTest(TestCase):
    def setUp(self):
        self.user = make_user(role='manager')
        make_client()
        self.now = timezone.now()

    def test_only_due_scheduled_campaigns_are_swept(self):
        due = make_campaign(self.user, status=Campaign.Status.SCHEDULED,
                            scheduled_at=self.now - timedelta(minutes=5))
        future = make_campaign(self.user, status=Campaign.Status.SCHEDULED,
                               scheduled_at=self.now + timedelta(hours=1))
        draft = make_campaign(self.user, status=Campaign.Status.DRAFT,
                              scheduled_at=self.now - timedelta(minutes=5))

        self.assertEqual(find_due_campaigns(self.now), [due.pk])

        result = process_due_campaigns(now=self.now)
        self.assertEqual(result.processed, 1)

        due.refresh_from_db()
        future.refresh_from_db()
        draft.refresh_from_db()
        self.assertEqual(due.status, Campaign.Status.SENT)
        self.assertEqual(due.total_recipients, 1)
        self.assertEqual(future.status, Campaign.Status.SCHEDULED)
        self.assertEqual(draft.status, Campaign.Status.DRAFT)
