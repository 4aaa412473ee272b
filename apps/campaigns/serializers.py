from rest_framework import serializers

from apps.clients.models import Client
from .models import CHANNELS, Campaign, CampaignTemplate

CLIENT_TYPES = tuple(value for value, _ in Client.CLIENT_TYPE_CHOICES)
LOCATION_FIELDS = ('city', 'state', 'pincode')
SUBJECT_MAX_LENGTH = 200


def parse_flag(value, label):
    """Read a JSON flag the way DRF reads a BooleanField; anything else is rejected."""
    if value is None:
        return False
    try:
        return serializers.BooleanField().to_internal_value(value)
    except serializers.ValidationError:
        raise serializers.ValidationError(f"{label} must be true or false.")


def validate_channel_list(value):
    if not isinstance(value, list) or not value:
        raise serializers.ValidationError("At least one channel is required.")
    unknown = [channel for channel in value if channel not in CHANNELS]
    if unknown:
        raise serializers.ValidationError(f"Unknown channels: {', '.join(map(str, unknown))}")
    if len(set(value)) != len(value):
        raise serializers.ValidationError("Channels must be unique.")
    return value


def normalize_target_audience(value):
    if value in (None, ''):
        return {}
    if not isinstance(value, dict):
        raise serializers.ValidationError("Target audience must be an object.")

    normalized = {'all_clients': parse_flag(value.get('all_clients'), 'all_clients')}

    try:
        normalized['specific_clients'] = [int(pk) for pk in value.get('specific_clients') or []]
    except (TypeError, ValueError):
        raise serializers.ValidationError("specific_clients must be a list of client ids.")

    client_types = value.get('client_types') or []
    unknown = [t for t in client_types if t not in CLIENT_TYPES]
    if unknown:
        raise serializers.ValidationError(f"Unknown client types: {', '.join(map(str, unknown))}")
    normalized['client_types'] = list(client_types)

    locations = []
    for location in value.get('locations') or []:
        if not isinstance(location, dict):
            raise serializers.ValidationError("Each location must be an object.")
        locations.append({
            field: str(location[field]).strip()
            for field in LOCATION_FIELDS
            if location.get(field) not in (None, '')
        })
    normalized['locations'] = locations
    return normalized


def validate_variants(variants):
    if not isinstance(variants, list):
        raise serializers.ValidationError("Variants must be a list.")

    names = set()
    cleaned = []
    for variant in variants:
        if not isinstance(variant, dict):
            raise serializers.ValidationError("Each variant must be an object.")
        name = str(variant.get('name') or '').strip()
        if not name:
            raise serializers.ValidationError("Variant name is required.")
        if name in names:
            raise serializers.ValidationError(f"Duplicate variant name '{name}'.")
        names.add(name)

        try:
            percentage = float(variant.get('percentage'))
        except (TypeError, ValueError):
            raise serializers.ValidationError(f"Variant '{name}' needs a numeric percentage.")
        if not 0 <= percentage <= 100:
            raise serializers.ValidationError(f"Variant '{name}' percentage must be between 0 and 100.")

        stats = dict(variant.get('stats') or {})
        stats.setdefault('sent', 0)
        cleaned.append({**variant, 'name': name, 'percentage': percentage, 'stats': stats})
    return cleaned


class CampaignTemplateSerializer(serializers.ModelSerializer):
    class Meta:
        model = CampaignTemplate
        fields = ['id', 'name', 'category', 'subject', 'content', 'channels', 'is_active', 'created_at']
        read_only_fields = ['id', 'created_at']

    def validate_channels(self, value):
        if not value:
            return []
        return validate_channel_list(value)


class CampaignSerializer(serializers.ModelSerializer):
    tenant_id = serializers.IntegerField(read_only=True)
    template = serializers.PrimaryKeyRelatedField(
        queryset=CampaignTemplate.objects.all(), required=False, allow_null=True
    )
    scheduled_at = serializers.DateTimeField(required=False)
    as_draft = serializers.BooleanField(required=False, default=False, write_only=True)
    approval = serializers.SerializerMethodField()
    stats = serializers.SerializerMethodField()

    class Meta:
        model = Campaign
        fields = [
            'id', 'tenant_id', 'title', 'description', 'campaign_type', 'channels', 'content',
            'channel_configs', 'template', 'target_audience', 'ab_test', 'is_automated',
            'trigger_type', 'scheduled_at', 'status', 'approval', 'stats', 'as_draft',
            'created_by', 'last_modified_by', 'created_at', 'updated_at',
        ]
        read_only_fields = ['status', 'created_by', 'last_modified_by', 'created_at', 'updated_at']

    def get_approval(self, obj):
        return {
            'required': obj.approval_required,
            'status': obj.approval_status,
            'approved_by': obj.approved_by_id,
            'approved_at': obj.approved_at,
            'rejection_reason': obj.rejection_reason,
        }

    def get_stats(self, obj):
        return {
            'total_recipients': obj.total_recipients,
            'sent_count': obj.sent_count,
            'delivered_count': obj.delivered_count,
            'opened_count': obj.opened_count,
            'clicked_count': obj.clicked_count,
            'converted_count': obj.converted_count,
            'roi': float(obj.roi),
        }

    def validate_channels(self, value):
        return validate_channel_list(value)

    def validate_target_audience(self, value):
        return normalize_target_audience(value)

    def validate_ab_test(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("A/B test must be an object.")
        ab_test = dict(value)
        ab_test['enabled'] = parse_flag(ab_test.get('enabled'), 'enabled')
        if ab_test.get('variants') is not None:
            ab_test['variants'] = validate_variants(ab_test['variants'])
        return ab_test

    def validate_channel_configs(self, value):
        if value in (None, ''):
            return {}
        if not isinstance(value, dict):
            raise serializers.ValidationError("Channel configs must be an object.")
        for channel, config in value.items():
            if not isinstance(config, dict):
                raise serializers.ValidationError(f"Config for {channel} must be an object.")
            for key in ('subject', 'content'):
                if config.get(key) is not None and not isinstance(config[key], str):
                    raise serializers.ValidationError(f"{channel} {key} must be text.")
            if len(config.get('subject') or '') > SUBJECT_MAX_LENGTH:
                raise serializers.ValidationError(
                    f"{channel} subject must be at most {SUBJECT_MAX_LENGTH} characters."
                )
        return value

    def validate_template(self, value):
        request = self.context.get('request')
        if value and request and value.tenant_id != request.user.tenant_id:
            raise serializers.ValidationError("Template not found.")
        return value

    def validate(self, attrs):
        channels = attrs.get('channels', getattr(self.instance, 'channels', None)) or []
        channel_configs = attrs.get('channel_configs', getattr(self.instance, 'channel_configs', None)) or {}

        if not isinstance(channel_configs, dict):
            raise serializers.ValidationError({'channel_configs': "Channel configs must be an object."})
        extra = [key for key in channel_configs if key not in channels]
        if extra:
            raise serializers.ValidationError({
                'channel_configs': f"Configs given for channels not on the campaign: {', '.join(extra)}"
            })

        template = attrs.get('template')
        if template and not attrs.get('content') and not getattr(self.instance, 'content', ''):
            attrs['content'] = template.content
            if template.subject:
                channel_configs = {
                    channel: {'subject': template.subject, **(channel_configs.get(channel) or {})}
                    for channel in channels
                }
                attrs['channel_configs'] = channel_configs

        if self.instance is None and not attrs.get('content'):
            if not all((channel_configs.get(c) or {}).get('content') for c in channels):
                raise serializers.ValidationError({'content': "Content is required."})

        if attrs.get('is_automated') and not attrs.get('trigger_type', getattr(self.instance, 'trigger_type', '')):
            raise serializers.ValidationError({'trigger_type': "Automated campaigns need a trigger type."})

        return attrs


class ApprovalActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['approve', 'reject'])
    reason = serializers.CharField(required=False, allow_blank=True, default='')


class ABTestActionSerializer(serializers.Serializer):
    action = serializers.ChoiceField(choices=['start', 'stop', 'declare_winner'])
    variant_data = serializers.DictField(required=False, default=dict)

    def validate_variant_data(self, value):
        if value.get('variants') is not None:
            value = {**value, 'variants': validate_variants(value['variants'])}
        return value


class AudiencePreviewSerializer(serializers.Serializer):
    target_audience = serializers.JSONField()
    channels = serializers.ListField(child=serializers.CharField(), required=False, default=lambda: ['email'])
    campaign_type = serializers.ChoiceField(
        choices=Campaign.Type.choices, required=False, default=Campaign.Type.ANNOUNCEMENT
    )

    def validate_target_audience(self, value):
        return normalize_target_audience(value)

    def validate_channels(self, value):
        return validate_channel_list(value)
