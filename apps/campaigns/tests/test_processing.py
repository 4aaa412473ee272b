import random
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from apps.campaigns.models import Campaign, OutboundMessage, Recipient
from apps.campaigns.processing import claim_campaign, enqueue_campaign_processing, process_campaign
from .factories import make_campaign, make_client, make_user


class ProcessCampaignTest(TestCase):
    def setUp(self):
        self.user = make_user(role='manager')
        self.clients = [make_client() for _ in range(3)]
        make_client(status='inactive')

    def test_all_clients_on_one_channel(self):
        campaign = make_campaign(self.user)

        result = process_campaign(campaign.pk)

        self.assertEqual(result.recipients, 3)
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SENT)
        self.assertEqual(campaign.total_recipients, 3)

        recipients = Recipient.objects.filter(campaign=campaign)
        self.assertEqual(recipients.count(), 3)
        for recipient in recipients:
            self.assertIsNone(recipient.ab_variant)
            self.assertEqual(recipient.status, Recipient.Status.PENDING)
            self.assertEqual(recipient.channel, 'email')

        messages = OutboundMessage.objects.filter(campaign=campaign)
        self.assertEqual(messages.count(), 3)
        self.assertTrue(all(m.status == OutboundMessage.Status.PENDING for m in messages))
        self.assertTrue(all(m.message_type == campaign.campaign_type for m in messages))

    def test_content_is_personalized_per_client(self):
        campaign = make_campaign(
            self.user,
            content='Hi {{firstName}} from {{city}}',
            channels=['email', 'sms'],
            channel_configs={'email': {'subject': 'Offer for {{name}}'}}
        )
        process_campaign(campaign.pk)

        first = self.clients[0]
        email = Recipient.objects.get(campaign=campaign, client=first, channel='email')
        sms = Recipient.objects.get(campaign=campaign, client=first, channel='sms')

        self.assertEqual(email.personalized_content, f'Hi {first.first_name} from Mumbai')
        self.assertEqual(email.personalized_subject, f'Offer for {first.display_name}')
        # No override: subject falls back to the title
        self.assertEqual(sms.personalized_subject, campaign.title)
        self.assertEqual(email.personalization_variables['email'], first.email)

    def test_long_rendered_subject_is_stored_whole(self):
        client = make_client(display_name='N' * 200)
        subject = 'S' * 190 + ' {{name}}'
        campaign = make_campaign(
            self.user,
            target_audience={'specific_clients': [client.pk]},
            channel_configs={'email': {'subject': subject}},
        )

        process_campaign(campaign.pk)

        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SENT)
        expected = 'S' * 190 + ' ' + 'N' * 200
        self.assertEqual(Recipient.objects.get(campaign=campaign).personalized_subject, expected)
        self.assertEqual(OutboundMessage.objects.get(campaign=campaign).subject, expected)
        for model in (Recipient, OutboundMessage):
            field = 'personalized_subject' if model is Recipient else 'subject'
            self.assertIsNone(model._meta.get_field(field).max_length)

    def test_channel_content_override(self):
        campaign = make_campaign(
            self.user,
            channels=['email', 'whatsapp'],
            channel_configs={'whatsapp': {'content': 'Short note for {{firstName}}'}}
        )
        process_campaign(campaign.pk)

        first = self.clients[0]
        whatsapp = OutboundMessage.objects.get(campaign=campaign, client=first, channel='whatsapp')
        self.assertEqual(whatsapp.content, f'Short note for {first.first_name}')

    def test_offer_opt_out_excludes_channel(self):
        opted_out = make_client(communication_preferences={'email': {'offers': False}})
        campaign = make_campaign(
            self.user,
            campaign_type=Campaign.Type.OFFER,
            channels=['email', 'sms'],
            target_audience={'specific_clients': [opted_out.pk]}
        )
        process_campaign(campaign.pk)

        channels = list(Recipient.objects.filter(campaign=campaign).values_list('channel', flat=True))
        self.assertEqual(channels, ['sms'])
        campaign.refresh_from_db()
        self.assertEqual(campaign.total_recipients, 1)

    def test_second_run_is_a_no_op(self):
        campaign = make_campaign(self.user)
        process_campaign(campaign.pk)

        self.assertIsNone(process_campaign(campaign.pk))
        self.assertEqual(Recipient.objects.filter(campaign=campaign).count(), 3)

    def test_only_approved_or_scheduled_campaigns_are_processed(self):
        for status in (Campaign.Status.FAILED, Campaign.Status.SENT, Campaign.Status.DRAFT,
                       Campaign.Status.PENDING_APPROVAL, Campaign.Status.CANCELLED):
            campaign = make_campaign(self.user, status=status)
            self.assertIsNone(process_campaign(campaign.pk))
            self.assertFalse(Recipient.objects.filter(campaign=campaign).exists())

    def test_claim_is_single_writer(self):
        campaign = make_campaign(self.user, status=Campaign.Status.SCHEDULED)
        self.assertTrue(claim_campaign(campaign.pk))
        self.assertFalse(claim_campaign(campaign.pk))
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SENDING)

    def test_empty_audience_completes_with_no_recipients(self):
        campaign = make_campaign(self.user, target_audience={})
        result = process_campaign(campaign.pk)

        self.assertEqual(result.recipients, 0)
        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SENT)
        self.assertEqual(campaign.total_recipients, 0)

    def test_failure_rolls_back_and_marks_failed(self):
        campaign = make_campaign(self.user)

        with mock.patch.object(OutboundMessage.objects, 'bulk_create', side_effect=DatabaseError('disk full')):
            with self.assertLogs('apps.campaigns.processing', level='ERROR'):
                self.assertIsNone(process_campaign(campaign.pk))

        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.FAILED)
        self.assertEqual(campaign.total_recipients, 0)
        self.assertFalse(Recipient.objects.filter(campaign=campaign).exists())

    def test_ab_test_assigns_and_tallies_variants(self):
        for _ in range(7):
            make_client()
        campaign = make_campaign(self.user, ab_test={
            'enabled': True,
            'variants': [
                {'name': 'formal', 'percentage': 50, 'stats': {'sent': 0}},
                {'name': 'casual', 'percentage': 50, 'stats': {'sent': 0}},
            ],
        })

        result = process_campaign(campaign.pk, rng=random.Random(7))

        campaign.refresh_from_db()
        variants = Recipient.objects.filter(campaign=campaign).values_list('ab_variant', flat=True)
        self.assertEqual(len(variants), 10)
        self.assertTrue(set(variants) <= {'formal', 'casual'})

        stats = {v['name']: v['stats']['sent'] for v in campaign.ab_test['variants']}
        self.assertEqual(stats, {
            'formal': list(variants).count('formal'),
            'casual': list(variants).count('casual'),
        })
        self.assertEqual(sum(stats.values()), 10)
        self.assertEqual(result.variant_counts, {k: v for k, v in stats.items() if v})


class ProcessingPipelineTest(TestCase):
    """Enqueue, process and dispatch through the eager task queue."""

    def test_enqueued_campaign_is_processed_and_dispatched(self):
        user = make_user(role='admin')
        make_client()
        make_client()
        campaign = make_campaign(user, channels=['email', 'sms'])

        with self.captureOnCommitCallbacks(execute=True):
            enqueue_campaign_processing(campaign)

        campaign.refresh_from_db()
        self.assertEqual(campaign.status, Campaign.Status.SENT)
        self.assertEqual(campaign.total_recipients, 4)
        messages = OutboundMessage.objects.filter(campaign=campaign)
        self.assertEqual(messages.filter(status=OutboundMessage.Status.DISPATCHED).count(), 4)
        self.assertTrue(all(m.dispatched_at for m in messages))
