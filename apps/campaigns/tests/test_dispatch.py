from django.test import TestCase

from apps.campaigns.dispatch import BaseDispatcher, dispatch_pending_messages, get_dispatcher, LoggingDispatcher
from apps.campaigns.models import OutboundMessage
from apps.campaigns.processing import process_campaign
from .factories import make_campaign, make_client, make_user


class RecordingDispatcher(BaseDispatcher):
    def __init__(self, failing_client_ids=()):
        self.failing_client_ids = set(failing_client_ids)
        self.calls = []

    def dispatch(self, message):
        self.calls.append(message.client_id)
        if message.client_id in self.failing_client_ids:
            raise ConnectionError('gateway timeout')


class DispatchTest(TestCase):
    def setUp(self):
        user = make_user(role='admin')
        self.clients = [make_client() for _ in range(3)]
        self.campaign = make_campaign(user)
        process_campaign(self.campaign.pk)

    def test_default_backend_is_configured(self):
        self.assertIsInstance(get_dispatcher(), LoggingDispatcher)

    def test_all_pending_messages_are_dispatched(self):
        result = dispatch_pending_messages(self.campaign.pk)

        self.assertEqual(result, {'campaign_id': self.campaign.pk, 'dispatched': 3, 'failed': 0})
        messages = OutboundMessage.objects.filter(campaign=self.campaign)
        self.assertFalse(messages.filter(status=OutboundMessage.Status.PENDING).exists())
        self.assertTrue(all(m.dispatched_at is not None for m in messages))

    def test_failed_message_is_retried_then_marked_failed(self):
        broken = self.clients[1]
        dispatcher = RecordingDispatcher(failing_client_ids=[broken.pk])

        with self.assertLogs('apps.campaigns.dispatch', level='ERROR'):
            result = dispatch_pending_messages(self.campaign.pk, dispatcher=dispatcher)

        self.assertEqual(result['dispatched'], 2)
        self.assertEqual(result['failed'], 1)
        self.assertEqual(dispatcher.calls.count(broken.pk), 3)

        failed = OutboundMessage.objects.get(campaign=self.campaign, client=broken)
        self.assertEqual(failed.status, OutboundMessage.Status.FAILED)
        self.assertIsNone(failed.dispatched_at)

    def test_dispatched_messages_are_not_sent_again(self):
        dispatch_pending_messages(self.campaign.pk)
        dispatcher = RecordingDispatcher()
        result = dispatch_pending_messages(self.campaign.pk, dispatcher=dispatcher)

        self.assertEqual(result['dispatched'], 0)
        self.assertEqual(dispatcher.calls, [])
