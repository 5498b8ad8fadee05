"""
URL configuration for the notifications admin API.
"""
from django.urls import path

from notifications.views import (
    NotificationChannelDetailView,
    NotificationChannelListView,
    NotificationChannelTestView,
    NotificationChannelTypeListView,
    NotificationEventListView,
    WebhookDeliveryListView,
    WebhookDetailView,
    WebhookEventListView,
    WebhookListView,
    WebhookTestView,
)

urlpatterns = [
    path('notifications/', NotificationChannelListView.as_view(), name='notification-channel-list'),
    path('notifications/events/', NotificationEventListView.as_view(), name='notification-event-list'),
    path('notifications/types/', NotificationChannelTypeListView.as_view(), name='notification-type-list'),
    path('notifications/<uuid:channel_id>/', NotificationChannelDetailView.as_view(), name='notification-channel-detail'),
    path('notifications/<uuid:channel_id>/test/', NotificationChannelTestView.as_view(), name='notification-channel-test'),
    path('webhooks/', WebhookListView.as_view(), name='webhook-list'),
    path('webhooks/events/', WebhookEventListView.as_view(), name='webhook-event-list'),
    path('webhooks/<uuid:webhook_id>/', WebhookDetailView.as_view(), name='webhook-detail'),
    path('webhooks/<uuid:webhook_id>/test/', WebhookTestView.as_view(), name='webhook-test'),
    path('webhooks/<uuid:webhook_id>/deliveries/', WebhookDeliveryListView.as_view(), name='webhook-delivery-list'),
]
