"""
Admin API for notification channels and webhooks.

All endpoints require a staff user. Input is validated by the serializers in
notifications.services.validation, the same ones the provider adapters use.
Field errors come back flat, nested config fields keyed as config.<field>.
"""
import logging

from django.shortcuts import get_object_or_404
from rest_framework import status
from rest_framework.permissions import IsAdminUser
from rest_framework.response import Response
from rest_framework.views import APIView

from notifications.models import NotificationChannel, Webhook
from notifications.serializers import WebhookDeliverySerializer
from notifications.services.dispatcher import send_test_notification
from notifications.services.types import (
    LEAD_CREATED,
    NOTIFICATION_EVENTS,
    WEBHOOK_EVENT_DESCRIPTIONS,
    WEBHOOK_EVENTS,
)
from notifications.services.validation import (
    NotificationChannelSerializer,
    WebhookSerializer,
    flatten_errors,
)
from notifications.services.webhooks import send_test_webhook

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

CHANNEL_TYPES_INFO = [
    {
        'type': 'discord',
        'name': 'Discord',
        'description': 'Send notifications to a Discord channel via webhook',
        'config_fields': ['webhook_url'],
    },
    {
        'type': 'telegram',
        'name': 'Telegram',
        'description': 'Send notifications to a Telegram chat via bot',
        'config_fields': ['bot_token', 'chat_id'],
    },
    {
        'type': 'email',
        'name': 'Email',
        'description': 'Send notifications via email using Resend',
        'config_fields': ['to', 'from'],
    },
]


def parse_positive_int(value, default: int, maximum: int = None) -> int:
    """
    Parse a query parameter as an int >= 1, falling back to default.
    """
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    number = max(1, number)
    if maximum is not None:
        number = min(maximum, number)
    return number


class AdminAPIView(APIView):
    permission_classes = [IsAdminUser]


# ----------------------------------------------------------------------------
# Notification channels
# ----------------------------------------------------------------------------

class NotificationChannelListView(AdminAPIView):
    """
    GET  /api/admin/notifications/ - list channels, newest first
    POST /api/admin/notifications/ - create a channel
    """

    def get(self, request):
        channels = NotificationChannel.objects.order_by('-created_at')
        return Response({'channels': NotificationChannelSerializer(channels, many=True).data})

    def post(self, request):
        serializer = NotificationChannelSerializer(data=request.data)
        if not serializer.is_valid():
            errors = flatten_errors(serializer.errors)
            return Response({'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

        channel = serializer.save()
        logger.info(f"Created {channel.type} notification channel {channel.id}")
        return Response(NotificationChannelSerializer(channel).data, status=status.HTTP_201_CREATED)


class NotificationChannelDetailView(AdminAPIView):
    """
    GET/PATCH/DELETE /api/admin/notifications/{id}/
    """

    def get(self, request, channel_id):
        channel = get_object_or_404(NotificationChannel, id=channel_id)
        return Response(NotificationChannelSerializer(channel).data)

    def patch(self, request, channel_id):
        channel = get_object_or_404(NotificationChannel, id=channel_id)
        serializer = NotificationChannelSerializer(channel, data=request.data, partial=True)
        if not serializer.is_valid():
            errors = flatten_errors(serializer.errors)
            return Response({'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

        channel = serializer.save()
        logger.info(f"Updated notification channel {channel.id}")
        return Response(NotificationChannelSerializer(channel).data)

    def delete(self, request, channel_id):
        channel = get_object_or_404(NotificationChannel, id=channel_id)
        channel.delete()
        logger.info(f"Deleted notification channel {channel_id}")
        return Response({'success': True, 'message': 'Notification channel deleted'})


class NotificationChannelTestView(AdminAPIView):
    """
    POST /api/admin/notifications/{id}/test/

    Sends a sample lead.created notification and reports the raw outcome.
    """

    def post(self, request, channel_id):
        result = send_test_notification(channel_id)
        if result is None:
            return Response({'detail': 'Notification channel not found'}, status=status.HTTP_404_NOT_FOUND)

        if result.success:
            message = 'Test notification sent successfully'
        else:
            message = f"Test notification failed: {result.error}"

        return Response({
            'success': result.success,
            'message': message,
            'duration_ms': result.duration_ms,
            'status_code': result.status_code,
            'error': result.error,
        })


class NotificationEventListView(AdminAPIView):

    def get(self, request):
        events = [
            {
                'event': event,
                'description': WEBHOOK_EVENT_DESCRIPTIONS.get(event, event),
                'default_enabled': event == LEAD_CREATED,
            }
            for event in NOTIFICATION_EVENTS
        ]
        return Response({'events': events})


class NotificationChannelTypeListView(AdminAPIView):

    def get(self, request):
        return Response({'types': CHANNEL_TYPES_INFO})


# ----------------------------------------------------------------------------
# Webhooks
# ----------------------------------------------------------------------------

class WebhookListView(AdminAPIView):
    """
    GET  /api/admin/webhooks/ - list webhooks, newest first
    POST /api/admin/webhooks/ - create a webhook
    """

    def get(self, request):
        webhooks = Webhook.objects.order_by('-created_at')
        return Response({'webhooks': WebhookSerializer(webhooks, many=True).data})

    def post(self, request):
        serializer = WebhookSerializer(data=request.data)
        if not serializer.is_valid():
            errors = flatten_errors(serializer.errors)
            return Response({'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

        webhook = serializer.save()
        logger.info(f"Created webhook {webhook.id} for {', '.join(webhook.events)}")
        return Response(WebhookSerializer(webhook).data, status=status.HTTP_201_CREATED)


class WebhookDetailView(AdminAPIView):
    """
    GET/PATCH/DELETE /api/admin/webhooks/{id}/

    Deleting a webhook also deletes its delivery history.
    """

    def get(self, request, webhook_id):
        webhook = get_object_or_404(Webhook, id=webhook_id)
        return Response(WebhookSerializer(webhook).data)

    def patch(self, request, webhook_id):
        webhook = get_object_or_404(Webhook, id=webhook_id)
        serializer = WebhookSerializer(webhook, data=request.data, partial=True)
        if not serializer.is_valid():
            errors = flatten_errors(serializer.errors)
            return Response({'errors': errors}, status=status.HTTP_400_BAD_REQUEST)

        webhook = serializer.save()
        logger.info(f"Updated webhook {webhook.id}")
        return Response(WebhookSerializer(webhook).data)

    def delete(self, request, webhook_id):
        webhook = get_object_or_404(Webhook, id=webhook_id)
        webhook.delete()
        logger.info(f"Deleted webhook {webhook_id}")
        return Response({'success': True, 'message': 'Webhook deleted'})


class WebhookTestView(AdminAPIView):
    """
    POST /api/admin/webhooks/{id}/test/
    """

    def post(self, request, webhook_id):
        result = send_test_webhook(webhook_id)
        if result is None:
            return Response({'detail': 'Webhook not found'}, status=status.HTTP_404_NOT_FOUND)

        return Response({
            'success': result.success,
            'status_code': result.status_code,
            'response_time': result.duration_ms,
            'response_body': result.response_body,
        })


class WebhookDeliveryListView(AdminAPIView):
    """
    GET /api/admin/webhooks/{id}/deliveries/?page=1&limit=20

    Delivery history, newest first. limit is capped at 100.
    """

    def get(self, request, webhook_id):
        webhook = get_object_or_404(Webhook, id=webhook_id)

        page = parse_positive_int(request.query_params.get('page'), 1)
        limit = parse_positive_int(request.query_params.get('limit'), DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        offset = (page - 1) * limit

        deliveries = webhook.deliveries.order_by('-attempted_at')
        total = deliveries.count()
        total_pages = (total + limit - 1) // limit

        return Response({
            'deliveries': WebhookDeliverySerializer(deliveries[offset:offset + limit], many=True).data,
            'pagination': {
                'page': page,
                'limit': limit,
                'total': total,
                'total_pages': total_pages,
                'has_more': page < total_pages,
            },
        })


class WebhookEventListView(AdminAPIView):

    def get(self, request):
        events = [
            {'event': event, 'description': WEBHOOK_EVENT_DESCRIPTIONS.get(event, event)}
            for event in WEBHOOK_EVENTS
        ]
        return Response({'events': events})
