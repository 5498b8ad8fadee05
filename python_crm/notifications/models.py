"""
Data models for notification channels and outbound webhooks.
"""
import uuid

from django.db import models


class NotificationChannel(models.Model):
    """
    A Discord, Telegram or Email destination subscribed to lead events.
    The shape of config depends on type and is checked when it is saved
    through the admin API.
    """

    class Type(models.TextChoices):
        DISCORD = 'discord', 'Discord'
        TELEGRAM = 'telegram', 'Telegram'
        EMAIL = 'email', 'Email'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    type = models.CharField(max_length=20, choices=Type.choices)
    name = models.CharField(max_length=255)
    config = models.JSONField()
    events = models.JSONField(default=list)
    enabled = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.type} channel {self.name}"


class Webhook(models.Model):
    """
    An HTTPS endpoint that receives signed JSON envelopes for lead events.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    url = models.TextField()
    events = models.JSONField(default=list)
    secret = models.CharField(max_length=255, null=True, blank=True)
    enabled = models.BooleanField(default=True, db_index=True)
    failure_count = models.PositiveIntegerField(default=0)
    last_triggered_at = models.DateTimeField(null=True, blank=True)
    last_status_code = models.PositiveIntegerField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Webhook {self.name} -> {self.url}"


class WebhookDelivery(models.Model):
    """
    Records each attempt to deliver an envelope to a webhook.
    Append-only audit trail, removed only together with its webhook.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    webhook = models.ForeignKey(
        Webhook,
        on_delete=models.CASCADE,
        related_name='deliveries'
    )
    event = models.CharField(max_length=50)
    payload = models.JSONField()
    status_code = models.PositiveIntegerField(null=True, blank=True)
    response_body = models.TextField(null=True, blank=True)
    duration_ms = models.PositiveIntegerField(default=0)
    attempted_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-attempted_at']
        indexes = [
            models.Index(fields=['webhook', 'attempted_at'], name='notificatio_webhook_7c1e2a_idx'),
        ]

    def __str__(self):
        return f"Delivery {self.id} of {self.event} to {self.webhook_id} - {self.status_code}"
