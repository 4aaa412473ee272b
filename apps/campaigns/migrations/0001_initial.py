import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('clients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='CampaignTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.IntegerField(db_index=True)),
                ('name', models.CharField(max_length=100)),
                ('category', models.CharField(blank=True, max_length=50)),
                ('subject', models.CharField(blank=True, max_length=200)),
                ('content', models.TextField()),
                ('channels', models.JSONField(blank=True, default=list)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [models.Index(fields=['tenant_id', 'is_active'], name='template_tenant_active_idx')],
            },
        ),
        migrations.CreateModel(
            name='Campaign',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.IntegerField(db_index=True)),
                ('title', models.CharField(max_length=200)),
                ('description', models.TextField(blank=True)),
                ('campaign_type', models.CharField(choices=[('offer', 'Offer'), ('festival', 'Festival'), ('announcement', 'Announcement'), ('promotion', 'Promotion'), ('newsletter', 'Newsletter'), ('reminder', 'Reminder')], max_length=20)),
                ('channels', models.JSONField(default=list)),
                ('content', models.TextField(blank=True)),
                ('channel_configs', models.JSONField(blank=True, default=dict)),
                ('target_audience', models.JSONField(blank=True, default=dict)),
                ('ab_test', models.JSONField(blank=True, default=dict)),
                ('approval_required', models.BooleanField(default=True)),
                ('approval_status', models.CharField(choices=[('pending_approval', 'Pending approval'), ('approved', 'Approved'), ('rejected', 'Rejected')], default='pending_approval', max_length=20)),
                ('approved_at', models.DateTimeField(blank=True, null=True)),
                ('rejection_reason', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('draft', 'Draft'), ('pending_approval', 'Pending approval'), ('approved', 'Approved'), ('scheduled', 'Scheduled'), ('sending', 'Sending'), ('sent', 'Sent'), ('failed', 'Failed'), ('cancelled', 'Cancelled')], default='draft', max_length=20)),
                ('is_automated', models.BooleanField(default=False)),
                ('trigger_type', models.CharField(blank=True, max_length=50)),
                ('scheduled_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('total_recipients', models.PositiveIntegerField(default=0)),
                ('sent_count', models.PositiveIntegerField(default=0)),
                ('delivered_count', models.PositiveIntegerField(default=0)),
                ('opened_count', models.PositiveIntegerField(default=0)),
                ('clicked_count', models.PositiveIntegerField(default=0)),
                ('converted_count', models.PositiveIntegerField(default=0)),
                ('roi', models.DecimalField(decimal_places=2, default=0, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('approved_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='campaigns', to=settings.AUTH_USER_MODEL)),
                ('last_modified_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='campaigns', to='campaigns.campaigntemplate')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['tenant_id', 'status'], name='campaign_tenant_status_idx'),
                    models.Index(fields=['is_automated', 'trigger_type', 'status'], name='campaign_trigger_idx'),
                    models.Index(fields=['status', 'scheduled_at'], name='campaign_due_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Recipient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.IntegerField(db_index=True)),
                ('channel', models.CharField(choices=[('email', 'Email'), ('whatsapp', 'WhatsApp'), ('sms', 'SMS')], max_length=20)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('sent', 'Sent'), ('delivered', 'Delivered'), ('opened', 'Opened'), ('clicked', 'Clicked'), ('converted', 'Converted'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('ab_variant', models.CharField(blank=True, max_length=100, null=True)),
                ('personalized_subject', models.TextField(blank=True)),
                ('personalized_content', models.TextField(blank=True)),
                ('personalization_variables', models.JSONField(blank=True, default=dict)),
                ('engagement_clicks', models.PositiveIntegerField(default=0)),
                ('engagement_score', models.FloatField(default=0)),
                ('conversion_revenue', models.DecimalField(decimal_places=2, default=0, max_digits=12)),
                ('delivery_cost', models.DecimalField(decimal_places=4, default=0, max_digits=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='recipients', to='campaigns.campaign')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaign_recipients', to='clients.client')),
            ],
            options={
                'indexes': [
                    models.Index(fields=['campaign', 'status'], name='recipient_campaign_status_idx'),
                    models.Index(fields=['campaign', 'channel'], name='recipient_campaign_channel_idx'),
                    models.Index(fields=['campaign', 'ab_variant'], name='recipient_campaign_variant_idx'),
                ],
                'constraints': [models.UniqueConstraint(fields=('campaign', 'client', 'channel'), name='unique_recipient_per_campaign_channel')],
            },
        ),
        migrations.CreateModel(
            name='OutboundMessage',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('tenant_id', models.IntegerField(db_index=True)),
                ('channel', models.CharField(choices=[('email', 'Email'), ('whatsapp', 'WhatsApp'), ('sms', 'SMS')], max_length=20)),
                ('message_type', models.CharField(choices=[('offer', 'Offer'), ('festival', 'Festival'), ('announcement', 'Announcement'), ('promotion', 'Promotion'), ('newsletter', 'Newsletter'), ('reminder', 'Reminder')], max_length=20)),
                ('subject', models.TextField(blank=True)),
                ('content', models.TextField(blank=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('dispatched', 'Dispatched'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('scheduled_for', models.DateTimeField(default=django.utils.timezone.now)),
                ('dispatched_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='messages', to='campaigns.campaign')),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='campaign_messages', to='clients.client')),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'indexes': [models.Index(fields=['campaign', 'status'], name='message_campaign_status_idx')],
                'constraints': [models.UniqueConstraint(fields=('campaign', 'client', 'channel'), name='unique_message_per_campaign_channel')],
            },
        ),
    ]
