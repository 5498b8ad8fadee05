"""
Outbound webhook delivery engine.

Builds the JSON envelope for a lead event, signs the exact body bytes with
the webhook secret, POSTs it to the subscriber and records every attempt as
a WebhookDelivery row, whatever the outcome.

Wire format:
    POST {webhook.url}
    Content-Type: application/json
    User-Agent: Octatech-Webhook/1.0
    X-Webhook-ID: <envelope id>
    X-Webhook-Event: <event>
    X-Webhook-Timestamp: <unix seconds>
    X-Webhook-Signature: sha256=<hex>   (only when a secret is set)

    {"id": ..., "event": ..., "timestamp": ..., "data": {...}}
"""
import hashlib
import hmac
import json
import logging
import time
import uuid
from datetime import datetime
from typing import List, Optional, Union

import httpx
from django.conf import settings
from django.db.models import F
from django.utils import timezone

from notifications import tasks
from notifications.models import Webhook, WebhookDelivery
from notifications.services.types import (
    LEAD_ACTIVITY_ADDED,
    LEAD_CREATED,
    LEAD_DELETED,
    LEAD_STATUS_CHANGED,
    LEAD_UPDATED,
    VALID_WEBHOOK_EVENTS,
    WebhookDeliveryResult,
    elapsed_ms,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_USER_AGENT = 'Octatech-Webhook/1.0'
DEFAULT_MAX_FAILURE_COUNT = 10
MAX_RESPONSE_BODY_LENGTH = 1000

TEST_LEAD_ID = 'test-lead-00000000-0000-0000-0000-000000000000'


def get_timeout_seconds() -> float:
    return float(getattr(settings, 'WEBHOOK_TIMEOUT_SECONDS', DEFAULT_TIMEOUT_SECONDS))


def get_user_agent() -> str:
    return getattr(settings, 'WEBHOOK_USER_AGENT', None) or DEFAULT_USER_AGENT


def get_max_failure_count() -> int:
    return int(getattr(settings, 'WEBHOOK_MAX_FAILURE_COUNT', DEFAULT_MAX_FAILURE_COUNT))


def _isoformat(value) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


# ----------------------------------------------------------------------------
# Envelope
# ----------------------------------------------------------------------------

def format_lead_payload(lead) -> dict:
    """Full lead representation used by lead.created and lead.updated."""
    return {
        'id': str(lead.id),
        'name': lead.name,
        'email': lead.email,
        'company': lead.company or None,
        'phone': lead.phone or None,
        'budget': lead.budget or None,
        'projectType': lead.project_type or None,
        'message': lead.message,
        'source': lead.source or None,
        'status': lead.status,
        'createdAt': _isoformat(lead.created_at),
    }


def format_lead_created_data(lead) -> dict:
    return {'lead': format_lead_payload(lead)}


def format_lead_updated_data(lead, changes: dict) -> dict:
    """
    Args:
        lead: The lead after the update
        changes: {field: {'old': ..., 'new': ...}} for each changed field
    """
    return {'lead': format_lead_payload(lead), 'changes': changes}


def format_lead_status_changed_data(lead, previous_status: str, new_status: str) -> dict:
    return {
        'lead': {
            'id': str(lead.id),
            'name': lead.name,
            'email': lead.email,
            'status': lead.status,
        },
        'previousStatus': previous_status,
        'newStatus': new_status,
    }


def format_lead_deleted_data(lead_id, name: str, email: str) -> dict:
    return {'leadId': str(lead_id), 'name': name, 'email': email}


def format_lead_activity_added_data(lead, activity) -> dict:
    return {
        'lead': {
            'id': str(lead.id),
            'name': lead.name,
            'email': lead.email,
        },
        'activity': {
            'id': str(activity.id),
            'type': activity.type,
            'description': activity.description,
            'createdAt': _isoformat(activity.created_at),
        },
    }


def build_envelope(event: str, data: dict) -> dict:
    """
    Wrap event data in the envelope sent to subscribers.

    Every call gets a fresh id, which doubles as the X-Webhook-ID header.
    """
    return {
        'id': str(uuid.uuid4()),
        'event': event,
        'timestamp': timezone.now().isoformat(),
        'data': data,
    }


def serialize_envelope(envelope: dict) -> bytes:
    return json.dumps(envelope, separators=(',', ':'), ensure_ascii=False).encode('utf-8')


# ----------------------------------------------------------------------------
# Signing
# ----------------------------------------------------------------------------

def _to_bytes(value: Union[str, bytes]) -> bytes:
    return value.encode('utf-8') if isinstance(value, str) else value


def generate_signature(secret: str, body: Union[str, bytes]) -> str:
    """
    Sign a request body with HMAC-SHA256.

    Args:
        secret: The webhook secret
        body: The exact bytes sent on the wire (str is UTF-8 encoded)

    Returns:
        Signature header value, 'sha256=<hex digest>'
    """
    digest = hmac.new(_to_bytes(secret), _to_bytes(body), hashlib.sha256).hexdigest()
    return f"sha256={digest}"


def verify_signature(body: Union[str, bytes], signature: str, secret: str) -> bool:
    """
    Check an X-Webhook-Signature value in constant time.

    Receivers can use this to authenticate a delivery.
    """
    if not signature:
        return False
    expected = generate_signature(secret, body)
    return hmac.compare_digest(_to_bytes(expected), _to_bytes(signature))


def build_headers(envelope: dict, body: bytes, secret: Optional[str]) -> dict:
    headers = {
        'Content-Type': 'application/json',
        'User-Agent': get_user_agent(),
        'X-Webhook-ID': envelope['id'],
        'X-Webhook-Event': envelope['event'],
        'X-Webhook-Timestamp': str(int(time.time())),
    }
    if secret:
        headers['X-Webhook-Signature'] = generate_signature(secret, body)
    return headers


# ----------------------------------------------------------------------------
# Delivery
# ----------------------------------------------------------------------------

def post_envelope(webhook: Webhook, envelope: dict) -> WebhookDeliveryResult:
    """
    POST an envelope to a webhook URL.

    The URL was checked when the webhook was saved and is not re-checked
    here. Never raises for transport failures; they are reported in the
    result.
    """
    body = serialize_envelope(envelope)
    headers = build_headers(envelope, body, webhook.secret)
    timeout = get_timeout_seconds()
    started = time.monotonic()

    try:
        response = httpx.post(
            webhook.url,
            content=body,
            headers=headers,
            timeout=timeout,
        )
    except httpx.TimeoutException:
        message = f"Request timed out after {int(timeout)} seconds"
        logger.error(f"Webhook {webhook.id} timed out after {timeout}s")
        return WebhookDeliveryResult(
            success=False,
            status_code=None,
            response_body=message,
            duration_ms=elapsed_ms(started),
            error=message,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        message = f"Request failed: {e}"
        logger.error(f"Webhook {webhook.id} request failed: {e}")
        return WebhookDeliveryResult(
            success=False,
            status_code=None,
            response_body=message,
            duration_ms=elapsed_ms(started),
            error=message,
        )

    duration_ms = elapsed_ms(started)
    success = response.is_success
    return WebhookDeliveryResult(
        success=success,
        status_code=response.status_code,
        response_body=response.text[:MAX_RESPONSE_BODY_LENGTH],
        duration_ms=duration_ms,
        error=None if success else f"HTTP {response.status_code} {response.reason_phrase}".strip(),
    )


def record_delivery(webhook: Webhook, envelope: dict, result: WebhookDeliveryResult) -> WebhookDelivery:
    return WebhookDelivery.objects.create(
        webhook=webhook,
        event=envelope['event'],
        payload=envelope,
        status_code=result.status_code,
        response_body=result.response_body,
        duration_ms=result.duration_ms,
    )


def deliver(webhook: Webhook, event: str, data: dict) -> WebhookDeliveryResult:
    """
    Deliver one event to one webhook and record the attempt.

    Args:
        webhook: Target webhook
        event: Webhook event name
        data: Event data (see the format_*_data builders)

    Returns:
        WebhookDeliveryResult for the attempt
    """
    envelope = build_envelope(event, data)
    result = post_envelope(webhook, envelope)
    record_delivery(webhook, envelope, result)

    if result.success:
        logger.info(
            f"Webhook {webhook.id} delivered {event} "
            f"(status={result.status_code}, {result.duration_ms}ms)"
        )
    else:
        logger.warning(f"Webhook {webhook.id} delivery of {event} failed: {result.error}")

    return result


def update_webhook_status(webhook: Webhook, result: WebhookDeliveryResult) -> bool:
    """
    Track the outcome of a delivery on the webhook row.

    A success clears the failure streak; a failure extends it and disables
    the webhook once it reaches WEBHOOK_MAX_FAILURE_COUNT.

    Returns:
        True if this call disabled the webhook
    """
    now = timezone.now()
    queryset = Webhook.objects.filter(pk=webhook.pk)

    if result.success:
        queryset.update(
            failure_count=0,
            last_triggered_at=now,
            last_status_code=result.status_code,
            updated_at=now,
        )
        webhook.refresh_from_db()
        return False

    queryset.update(
        failure_count=F('failure_count') + 1,
        last_triggered_at=now,
        last_status_code=result.status_code,
        updated_at=now,
    )
    webhook.refresh_from_db()

    max_failures = get_max_failure_count()
    if webhook.enabled and webhook.failure_count >= max_failures:
        webhook.enabled = False
        webhook.save(update_fields=['enabled', 'updated_at'])
        logger.warning(
            f"Webhook {webhook.id} disabled after {webhook.failure_count} consecutive failures"
        )
        return True

    return False


# ----------------------------------------------------------------------------
# Fan-out
# ----------------------------------------------------------------------------

def get_webhooks_for_event(event: str) -> List[Webhook]:
    webhooks = Webhook.objects.filter(enabled=True).order_by('created_at')
    return [webhook for webhook in webhooks if event in (webhook.events or [])]


def dispatch_webhook_event(event: str, data: dict) -> List[str]:
    """
    Queue one delivery task per enabled webhook subscribed to an event.

    Fire-and-forget: lookup and enqueue failures are logged, never raised.

    Returns:
        Ids of the webhooks a delivery was queued for
    """
    if event not in VALID_WEBHOOK_EVENTS:
        logger.warning(f"Unknown webhook event: {event}")
        return []

    try:
        webhooks = get_webhooks_for_event(event)
    except Exception as e:
        logger.error(f"Failed to load webhooks for {event}: {e}", exc_info=True)
        return []

    queued = []
    for webhook in webhooks:
        try:
            tasks.deliver_webhook_task.delay(str(webhook.id), event, data)
            queued.append(str(webhook.id))
        except Exception as e:
            logger.error(f"Failed to queue {event} for webhook {webhook.id}: {e}", exc_info=True)

    if queued:
        logger.info(f"Queued {event} for {len(queued)} webhook(s)")
    return queued


def trigger_lead_created_webhooks(lead) -> None:
    dispatch_webhook_event(LEAD_CREATED, format_lead_created_data(lead))


def trigger_lead_updated_webhooks(lead, changes: dict) -> None:
    dispatch_webhook_event(LEAD_UPDATED, format_lead_updated_data(lead, changes))


def trigger_lead_status_changed_webhooks(lead, previous_status: str, new_status: str) -> None:
    dispatch_webhook_event(
        LEAD_STATUS_CHANGED,
        format_lead_status_changed_data(lead, previous_status, new_status),
    )


def trigger_lead_deleted_webhooks(lead_id, name: str, email: str) -> None:
    dispatch_webhook_event(LEAD_DELETED, format_lead_deleted_data(lead_id, name, email))


def trigger_lead_activity_added_webhooks(lead, activity) -> None:
    dispatch_webhook_event(LEAD_ACTIVITY_ADDED, format_lead_activity_added_data(lead, activity))


# ----------------------------------------------------------------------------
# Test delivery
# ----------------------------------------------------------------------------

def build_test_data() -> dict:
    now = timezone.now().isoformat()
    return {
        'lead': {
            'id': TEST_LEAD_ID,
            'name': 'Test Lead',
            'email': 'test@example.com',
            'company': 'Test Company Inc',
            'phone': '+1-555-0123',
            'budget': '$10,000 - $50,000',
            'projectType': 'Test Project',
            'message': 'This is a test webhook delivery to verify your endpoint.',
            'source': 'Test',
            'status': 'new',
            'createdAt': now,
        }
    }


def send_test_webhook(webhook_id) -> Optional[WebhookDeliveryResult]:
    """
    Send a synthetic lead.created delivery to a webhook, enabled or not.

    The attempt is recorded like any other delivery and updates
    last_triggered_at/last_status_code, but leaves failure_count alone.

    Returns:
        The delivery result, or None when the webhook does not exist
    """
    try:
        webhook_uuid = uuid.UUID(str(webhook_id))
    except ValueError:
        return None

    webhook = Webhook.objects.filter(id=webhook_uuid).first()
    if webhook is None:
        return None

    envelope = build_envelope(LEAD_CREATED, build_test_data())
    result = post_envelope(webhook, envelope)
    record_delivery(webhook, envelope, result)

    now = timezone.now()
    Webhook.objects.filter(pk=webhook.pk).update(
        last_triggered_at=now,
        last_status_code=result.status_code,
        updated_at=now,
    )

    logger.info(
        f"Test webhook {webhook.id}: success={result.success}, "
        f"status={result.status_code}, {result.duration_ms}ms"
    )
    return result
