from django.conf import settings
from django.db import models
from django.utils import timezone


CHANNEL_CHOICES = [
    ('email', 'Email'),
    ('whatsapp', 'WhatsApp'),
    ('sms', 'SMS'),
]
CHANNELS = tuple(value for value, _ in CHANNEL_CHOICES)


class CampaignTemplate(models.Model):
    class Meta:
        app_label = 'campaigns'
        indexes = [
            models.Index(fields=['tenant_id', 'is_active'], name='template_tenant_active_idx'),
        ]

    tenant_id = models.IntegerField(db_index=True)
    name = models.CharField(max_length=100)
    category = models.CharField(max_length=50, blank=True)
    subject = models.CharField(max_length=200, blank=True)
    content = models.TextField()
    channels = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.name


class Campaign(models.Model):
    class Meta:
        app_label = 'campaigns'
        indexes = [
            models.Index(fields=['tenant_id', 'status'], name='campaign_tenant_status_idx'),
            models.Index(fields=['is_automated', 'trigger_type', 'status'], name='campaign_trigger_idx'),
            models.Index(fields=['status', 'scheduled_at'], name='campaign_due_idx'),
        ]

    class Type(models.TextChoices):
        OFFER = 'offer', 'Offer'
        FESTIVAL = 'festival', 'Festival'
        ANNOUNCEMENT = 'announcement', 'Announcement'
        PROMOTION = 'promotion', 'Promotion'
        NEWSLETTER = 'newsletter', 'Newsletter'
        REMINDER = 'reminder', 'Reminder'

    class Status(models.TextChoices):
        DRAFT = 'draft', 'Draft'
        PENDING_APPROVAL = 'pending_approval', 'Pending approval'
        APPROVED = 'approved', 'Approved'
        SCHEDULED = 'scheduled', 'Scheduled'
        SENDING = 'sending', 'Sending'
        SENT = 'sent', 'Sent'
        FAILED = 'failed', 'Failed'
        CANCELLED = 'cancelled', 'Cancelled'

    class ApprovalStatus(models.TextChoices):
        PENDING_APPROVAL = 'pending_approval', 'Pending approval'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    VALID_TRANSITIONS = {
        Status.DRAFT.value: [Status.PENDING_APPROVAL, Status.APPROVED, Status.SCHEDULED, Status.CANCELLED],
        Status.PENDING_APPROVAL.value: [Status.APPROVED, Status.CANCELLED, Status.DRAFT],
        Status.APPROVED.value: [Status.SCHEDULED, Status.SENDING, Status.CANCELLED],
        Status.SCHEDULED.value: [Status.APPROVED, Status.SENDING, Status.CANCELLED],
        Status.SENDING.value: [Status.SENT, Status.FAILED],
        Status.FAILED.value: [Status.APPROVED],
        Status.SENT.value: [],  # Terminal state
        Status.CANCELLED.value: [],  # Terminal state
    }
    PROCESSABLE_STATUSES = (Status.APPROVED, Status.SCHEDULED)
    EDITABLE_STATUSES = (Status.DRAFT, Status.PENDING_APPROVAL)

    tenant_id = models.IntegerField(db_index=True)
    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    campaign_type = models.CharField(max_length=20, choices=Type.choices)
    channels = models.JSONField(default=list)
    content = models.TextField(blank=True)
    # {"email": {"subject": "...", "content": "..."}}
    channel_configs = models.JSONField(default=dict, blank=True)
    template = models.ForeignKey(
        CampaignTemplate, null=True, blank=True, on_delete=models.SET_NULL, related_name='campaigns'
    )
    # {"all_clients": bool, "specific_clients": [...], "client_types": [...], "locations": [...]}
    target_audience = models.JSONField(default=dict, blank=True)
    # {"enabled": bool, "variants": [{"name", "percentage", "content", "stats"}], ...}
    ab_test = models.JSONField(default=dict, blank=True)

    approval_required = models.BooleanField(default=True)
    approval_status = models.CharField(
        max_length=20, choices=ApprovalStatus.choices, default=ApprovalStatus.PENDING_APPROVAL
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, blank=True, on_delete=models.SET_NULL, related_name='+'
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    is_automated = models.BooleanField(default=False)
    trigger_type = models.CharField(max_length=50, blank=True)
    scheduled_at = models.DateTimeField(default=timezone.now)

    total_recipients = models.PositiveIntegerField(default=0)
    sent_count = models.PositiveIntegerField(default=0)
    delivered_count = models.PositiveIntegerField(default=0)
    opened_count = models.PositiveIntegerField(default=0)
    clicked_count = models.PositiveIntegerField(default=0)
    converted_count = models.PositiveIntegerField(default=0)
    roi = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='campaigns'
    )
    last_modified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    def can_transition_to(self, new_status):
        """Validate status transitions"""
        return new_status in self.VALID_TRANSITIONS.get(str(self.status), [])

    @property
    def ab_test_enabled(self):
        return bool(self.ab_test.get('enabled')) and bool(self.ab_test.get('variants'))

    def channel_config(self, channel):
        return (self.channel_configs or {}).get(channel) or {}

    def is_due(self, now=None):
        return self.scheduled_at <= (now or timezone.now())


class Recipient(models.Model):
    class Meta:
        app_label = 'campaigns'
        constraints = [
            models.UniqueConstraint(
                fields=['campaign', 'client', 'channel'],
                name='unique_recipient_per_campaign_channel'
            )
        ]
        indexes = [
            models.Index(fields=['campaign', 'status'], name='recipient_campaign_status_idx'),
            models.Index(fields=['campaign', 'channel'], name='recipient_campaign_channel_idx'),
            models.Index(fields=['campaign', 'ab_variant'], name='recipient_campaign_variant_idx'),
        ]

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        SENT = 'sent', 'Sent'
        DELIVERED = 'delivered', 'Delivered'
        OPENED = 'opened', 'Opened'
        CLICKED = 'clicked', 'Clicked'
        CONVERTED = 'converted', 'Converted'
        FAILED = 'failed', 'Failed'

    tenant_id = models.IntegerField(db_index=True)
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='recipients')
    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='campaign_recipients')
    channel = models.CharField(max_length=20, choices=CHANNEL_CHOICES)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    ab_variant = models.CharField(max_length=100, null=True, blank=True)
    personalized_subject = models.TextField(blank=True)
    personalized_content = models.TextField(blank=True)
    personalization_variables = models.JSONField(default=dict, blank=True)
    engagement_clicks = models.PositiveIntegerField(default=0)
    engagement_score = models.FloatField(default=0)
    conversion_revenue = models.DecimalField(max_digits=12, decimal_places=2, default=0)
    delivery_cost = models.DecimalField(max_digits=10, decimal_places=4, default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)


class OutboundMessage(models.Model):
    class Meta:
        app_label = 'campaigns'
        constraints = [
            models.UniqueConstraint(
                fields=['campaign', 'client', 'channel'],
                name='unique_message_per_campaign_channel'
            )
        ]
        indexes = [
            models.Index(fields=['campaign', 'status'], name='message_campaign_status_idx'),
        ]

    class Status(models.TextChoices):
        PENDING = 'pending', 'Pending'
        DISPATCHED = 'dispatched', 'Dispatched'
        FAILED = 'failed', 'Failed'

    tenant_id = models.IntegerField(db_index=True)
    campaign = models.ForeignKey(Campaign, on_delete=models.CASCADE, related_name='messages')
    client = models.ForeignKey('clients.Client', on_delete=models.CASCADE, related_name='campaign_messages')
    channel = models.CharField(max_length=20, choices=CHANNEL_CHOICES)
    message_type = models.CharField(max_length=20, choices=Campaign.Type.choices)
    subject = models.TextField(blank=True)
    content = models.TextField(blank=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, null=True, on_delete=models.SET_NULL, related_name='+'
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    scheduled_for = models.DateTimeField(default=timezone.now)
    dispatched_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
