"""
Notification dispatcher.

Fans a lead event out to every enabled channel subscribed to it. The channel
lookup runs synchronously against the ORM; the provider sends run
concurrently on one event loop and each settles independently, so a slow or
broken channel never holds back or fails the others.
"""
import asyncio
import logging
import uuid
from typing import List, Optional

from asgiref.sync import async_to_sync
from django.utils import timezone

from notifications import tasks
from notifications.models import NotificationChannel
from notifications.services.discord import discord_provider
from notifications.services.email import email_provider
from notifications.services.telegram import telegram_provider
from notifications.services.types import (
    DISCORD,
    EMAIL,
    LEAD_CREATED,
    LEAD_STATUS_CHANGED,
    TELEGRAM,
    VALID_NOTIFICATION_EVENTS,
    ChannelDispatchResult,
    LeadCreatedNotification,
    LeadStatusChangedNotification,
    NotificationLeadData,
    NotificationPayload,
    ValidationResult,
)

logger = logging.getLogger(__name__)

PROVIDERS = {
    DISCORD: discord_provider,
    TELEGRAM: telegram_provider,
    EMAIL: email_provider,
}

TEST_LEAD_ID = 'test-lead-00000000-0000-0000-0000-000000000000'


def get_channels_for_event(event: str) -> List[NotificationChannel]:
    """
    Return enabled channels whose event list includes the given event.
    """
    # JSON containment lookups are not portable across backends; the channel
    # table is small, so filter the event list in Python.
    channels = NotificationChannel.objects.filter(enabled=True).order_by('created_at')
    return [channel for channel in channels if event in (channel.events or [])]


async def send_to_channel(channel: NotificationChannel, payload: NotificationPayload) -> ChannelDispatchResult:
    """
    Send one payload to one channel through its provider.

    Never raises: an unknown type or an exception escaping the provider is
    turned into a failed result.
    """
    provider = PROVIDERS.get(channel.type)
    channel_info = {
        'channel_id': str(channel.id),
        'channel_name': channel.name,
        'channel_type': channel.type,
    }

    if provider is None:
        return ChannelDispatchResult(
            success=False,
            error=f"Unknown channel type: {channel.type}",
            duration_ms=0,
            **channel_info,
        )

    try:
        result = await provider.send(channel.config, payload)
    except Exception as e:
        logger.error(f"Provider {channel.type} raised for channel {channel.id}: {e}", exc_info=True)
        return ChannelDispatchResult(
            success=False,
            error=str(e) or 'Unknown error',
            duration_ms=0,
            **channel_info,
        )

    return ChannelDispatchResult(
        success=result.success,
        error=result.error,
        status_code=result.status_code,
        duration_ms=result.duration_ms,
        **channel_info,
    )


async def _send_to_all(channels: List[NotificationChannel], payload: NotificationPayload) -> List[ChannelDispatchResult]:
    return list(await asyncio.gather(*(send_to_channel(channel, payload) for channel in channels)))


def dispatch(event: str, payload: NotificationPayload) -> List[ChannelDispatchResult]:
    """
    Dispatch a notification to all channels subscribed to an event.

    Args:
        event: Notification event name
        payload: Payload matching the event

    Returns:
        One result per matched channel, in channel order. Empty when the
        event is unknown or no channel subscribes to it.
    """
    if event not in VALID_NOTIFICATION_EVENTS:
        logger.warning(f"Unknown notification event: {event}")
        return []

    channels = get_channels_for_event(event)
    if not channels:
        logger.debug(f"No notification channels subscribed to {event}")
        return []

    results = async_to_sync(_send_to_all)(channels, payload)

    for result in results:
        if result.success:
            logger.info(
                f"Notification sent to {result.channel_type} \"{result.channel_name}\" "
                f"in {result.duration_ms}ms"
            )
        else:
            logger.error(
                f"Notification to {result.channel_type} \"{result.channel_name}\" "
                f"failed: {result.error}"
            )

    return results


def dispatch_async(event: str, payload: NotificationPayload) -> None:
    """
    Queue a dispatch on the task broker and return immediately.

    Enqueue failures (e.g. broker down) are logged and swallowed so the
    triggering request is never affected.
    """
    try:
        tasks.dispatch_notification_task.delay(event, payload.to_dict())
    except Exception as e:
        logger.error(f"Failed to dispatch notification for {event}: {e}", exc_info=True)


def trigger_lead_created_notification(lead) -> None:
    payload = LeadCreatedNotification(lead=NotificationLeadData.from_lead(lead))
    dispatch_async(LEAD_CREATED, payload)


def trigger_lead_status_changed_notification(lead, previous_status: str, new_status: str) -> None:
    payload = LeadStatusChangedNotification(
        lead=NotificationLeadData.from_lead(lead),
        previous_status=previous_status,
        new_status=new_status,
    )
    dispatch_async(LEAD_STATUS_CHANGED, payload)


def build_test_payload() -> LeadCreatedNotification:
    """Synthetic lead.created payload used to check a channel end to end."""
    return LeadCreatedNotification(
        lead=NotificationLeadData(
            id=TEST_LEAD_ID,
            name='Test Lead',
            email='test@example.com',
            company='Test Company Inc',
            phone='+1-555-0123',
            budget='$10,000 - $50,000',
            project_type='New Product / MVP',
            message='This is a test notification to verify your channel configuration is working correctly.',
            source='Test',
            status='new',
            created_at=timezone.now().isoformat(),
        )
    )


def send_test_notification(channel_id) -> Optional[ChannelDispatchResult]:
    """
    Send a test notification to one channel, enabled or not.

    Returns:
        The channel result, or None when the channel does not exist
    """
    try:
        channel_uuid = uuid.UUID(str(channel_id))
    except ValueError:
        return None

    channel = NotificationChannel.objects.filter(id=channel_uuid).first()
    if channel is None:
        return None

    result = async_to_sync(send_to_channel)(channel, build_test_payload())
    logger.info(
        f"Test notification to {channel.type} channel {channel.id}: "
        f"success={result.success}, error={result.error}"
    )
    return result


def validate_channel_config(channel_type: str, config) -> ValidationResult:
    provider = PROVIDERS.get(channel_type)
    if provider is None:
        return ValidationResult(valid=False, error=f"Unknown channel type: {channel_type}")
    return provider.validate_config(config)
