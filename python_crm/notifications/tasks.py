"""
Celery tasks for notification and webhook fan-out.

Neither task retries: a failed delivery is logged (and, for webhooks,
recorded as a WebhookDelivery row) and then dropped.
"""
import logging

from celery import shared_task

from notifications.models import Webhook
from notifications.services import dispatcher, webhooks
from notifications.services.types import payload_from_dict

logger = logging.getLogger(__name__)


@shared_task
def dispatch_notification_task(event: str, payload: dict):
    """
    Dispatch a notification event to every subscribed channel.

    Args:
        event: Notification event name
        payload: NotificationPayload in dict form

    Returns:
        Number of channels that accepted the notification
    """
    try:
        results = dispatcher.dispatch(event, payload_from_dict(payload))
    except Exception as e:
        logger.error(f"Failed to dispatch notification for {event}: {e}", exc_info=True)
        return 0

    delivered = sum(1 for result in results if result.success)
    logger.info(f"Notification {event}: {delivered}/{len(results)} channel(s) succeeded")
    return delivered


@shared_task
def deliver_webhook_task(webhook_id: str, event: str, data: dict):
    """
    Deliver one event to one webhook and update its failure tracking.

    Args:
        webhook_id: Id of the target Webhook
        event: Webhook event name
        data: Event data for the envelope

    Returns:
        True if the subscriber answered with a 2xx
    """
    try:
        webhook = Webhook.objects.get(id=webhook_id)
    except Webhook.DoesNotExist:
        logger.error(f"Webhook {webhook_id} not found, dropping {event}")
        return False

    # Disabled between enqueue and execution
    if not webhook.enabled:
        logger.info(f"Webhook {webhook_id} is disabled, dropping {event}")
        return False

    try:
        result = webhooks.deliver(webhook, event, data)
        webhooks.update_webhook_status(webhook, result)
    except Exception as e:
        logger.error(f"Webhook {webhook_id} delivery of {event} crashed: {e}", exc_info=True)
        return False

    return result.success
