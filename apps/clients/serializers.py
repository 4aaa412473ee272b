from rest_framework import serializers
from .models import Client


class ClientSummarySerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = ('id', 'client_code', 'client_type', 'display_name', 'email', 'phone', 'city', 'state', 'pincode')
        read_only_fields = fields
