from django.contrib import admin
from .models import Campaign, CampaignTemplate, OutboundMessage, Recipient


@admin.register(Campaign)
class CampaignAdmin(admin.ModelAdmin):
    list_display = ['title', 'tenant_id', 'campaign_type', 'status', 'approval_status',
                    'total_recipients', 'scheduled_at', 'created_at']
    list_filter = ['campaign_type', 'status', 'approval_status', 'is_automated', 'created_at']
    search_fields = ['title', 'description', 'trigger_type']
    ordering = ['-created_at']
    # Lifecycle changes go through the API so approval and processing rules apply.
    readonly_fields = ['status', 'approval_status', 'approved_by', 'approved_at',
                       'total_recipients', 'sent_count', 'delivered_count', 'opened_count',
                       'clicked_count', 'converted_count', 'roi', 'created_at', 'updated_at']

    fieldsets = (
        ('Basic Information', {
            'fields': ('tenant_id', 'title', 'description', 'campaign_type', 'template')
        }),
        ('Content', {
            'fields': ('channels', 'content', 'channel_configs')
        }),
        ('Targeting', {
            'fields': ('target_audience', 'ab_test')
        }),
        ('Lifecycle', {
            'fields': ('status', 'approval_status', 'approved_by', 'approved_at', 'rejection_reason',
                       'is_automated', 'trigger_type', 'scheduled_at')
        }),
        ('Stats', {
            'fields': ('total_recipients', 'sent_count', 'delivered_count', 'opened_count',
                       'clicked_count', 'converted_count', 'roi'),
            'classes': ('collapse',)
        }),
    )


@admin.register(CampaignTemplate)
class CampaignTemplateAdmin(admin.ModelAdmin):
    list_display = ['name', 'tenant_id', 'category', 'is_active', 'created_at']
    list_filter = ['category', 'is_active']
    search_fields = ['name', 'subject']


@admin.register(Recipient)
class RecipientAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'client', 'channel', 'status', 'ab_variant', 'created_at']
    list_filter = ['channel', 'status']
    raw_id_fields = ['campaign', 'client']


@admin.register(OutboundMessage)
class OutboundMessageAdmin(admin.ModelAdmin):
    list_display = ['campaign', 'client', 'channel', 'status', 'scheduled_for', 'dispatched_at']
    list_filter = ['channel', 'status']
    raw_id_fields = ['campaign', 'client']
