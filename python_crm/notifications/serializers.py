"""
Read-only representations for the admin API.
"""
from rest_framework import serializers

from notifications.models import WebhookDelivery


class WebhookDeliverySerializer(serializers.ModelSerializer):

    class Meta:
        model = WebhookDelivery
        fields = ('id', 'event', 'payload', 'status_code', 'response_body', 'duration_ms', 'attempted_at')
        read_only_fields = fields
