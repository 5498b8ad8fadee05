"""
Django admin configuration for notifications app.
"""
from django.contrib import admin

from notifications.models import NotificationChannel, Webhook, WebhookDelivery


@admin.register(NotificationChannel)
class NotificationChannelAdmin(admin.ModelAdmin):
    """Admin interface for NotificationChannel model."""

    list_display = ('id', 'name', 'type', 'enabled', 'created_at')
    list_filter = ('type', 'enabled')
    search_fields = ('id', 'name')
    readonly_fields = ('id', 'created_at', 'updated_at')


class WebhookDeliveryInline(admin.TabularInline):
    """Inline display of recent deliveries for a webhook."""
    model = WebhookDelivery
    extra = 0
    readonly_fields = ('event', 'attempted_at', 'status_code', 'duration_ms', 'response_body')
    fields = readonly_fields
    can_delete = False
    show_change_link = True


@admin.register(Webhook)
class WebhookAdmin(admin.ModelAdmin):
    """Admin interface for Webhook model."""

    list_display = ('id', 'name', 'url', 'enabled', 'failure_count', 'last_status_code', 'last_triggered_at')
    list_filter = ('enabled',)
    search_fields = ('id', 'name', 'url')
    readonly_fields = ('id', 'failure_count', 'last_triggered_at', 'last_status_code', 'created_at', 'updated_at')
    exclude = ('secret',)

    inlines = [WebhookDeliveryInline]


@admin.register(WebhookDelivery)
class WebhookDeliveryAdmin(admin.ModelAdmin):
    """Admin interface for WebhookDelivery model. Read-only audit trail."""

    list_display = ('id', 'webhook', 'event', 'attempted_at', 'status_code', 'duration_ms')
    list_filter = ('event', 'attempted_at')
    search_fields = ('webhook__id',)
    readonly_fields = ('webhook', 'event', 'payload', 'status_code', 'response_body', 'duration_ms', 'attempted_at')

    def has_add_permission(self, request):
        """Deliveries are only written by the delivery engine."""
        return False

    def has_change_permission(self, request, obj=None):
        return False
