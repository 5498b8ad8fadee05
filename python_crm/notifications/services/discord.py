"""
Discord notification provider.

Posts rich embeds to a Discord channel webhook.
"""
import logging
import time

import httpx
from django.utils import timezone

from notifications.services.types import (
    DISCORD,
    LEAD_CREATED,
    DeliveryResult,
    LeadCreatedNotification,
    LeadStatusChangedNotification,
    NotificationPayload,
    NotificationProvider,
    ValidationResult,
    elapsed_ms,
    get_lead_url,
    get_timeout_seconds,
    timeout_error_message,
    truncate,
)
from notifications.services.validation import DiscordConfigSerializer, validate_config_with

logger = logging.getLogger(__name__)

# Indigo accent (#6366f1)
EMBED_COLOR = 6513393
FOOTER_TEXT = 'Octatech CRM'
MAX_DESCRIPTION_LENGTH = 1000
MAX_ERROR_BODY_LENGTH = 200


def _field(name: str, value: str) -> dict:
    return {'name': name, 'value': value, 'inline': True}


def format_lead_created_embed(payload: LeadCreatedNotification) -> dict:
    """
    Format a lead.created notification as a Discord webhook payload.

    Email is always listed; company, phone, budget, project type and source
    only when the lead has them.
    """
    lead = payload.lead
    fields = [_field('📧 Email', lead.email)]

    if lead.company:
        fields.append(_field('🏢 Company', lead.company))
    if lead.phone:
        fields.append(_field('📞 Phone', lead.phone))
    if lead.budget:
        fields.append(_field('💰 Budget', lead.budget))
    if lead.project_type:
        fields.append(_field('📋 Project', lead.project_type))
    if lead.source:
        fields.append(_field('🔗 Source', lead.source))

    return {
        'content': None,
        'embeds': [
            {
                'title': f"🆕 New Lead: {lead.name}",
                'description': truncate(lead.message, MAX_DESCRIPTION_LENGTH),
                'color': EMBED_COLOR,
                'fields': fields,
                'timestamp': timezone.now().isoformat(),
                'footer': {'text': FOOTER_TEXT},
                'url': get_lead_url(lead.id),
            }
        ],
    }


def format_lead_status_changed_embed(payload: LeadStatusChangedNotification) -> dict:
    lead = payload.lead
    fields = [
        _field('📧 Email', lead.email),
        _field('📊 Status Change', f"{payload.previous_status} → {payload.new_status}"),
    ]
    if lead.company:
        fields.append(_field('🏢 Company', lead.company))

    return {
        'content': None,
        'embeds': [
            {
                'title': f"📊 Status Changed: {lead.name}",
                'color': EMBED_COLOR,
                'fields': fields,
                'timestamp': timezone.now().isoformat(),
                'footer': {'text': FOOTER_TEXT},
                'url': get_lead_url(lead.id),
            }
        ],
    }


def format_discord_payload(payload: NotificationPayload) -> dict:
    if payload.event == LEAD_CREATED:
        return format_lead_created_embed(payload)
    return format_lead_status_changed_embed(payload)


def validate_discord_config(config) -> ValidationResult:
    return validate_config_with(DiscordConfigSerializer, config)


async def send_discord_notification(config: dict, payload: NotificationPayload) -> DeliveryResult:
    """
    Send a notification to Discord via webhook.

    Args:
        config: Channel config with webhook_url
        payload: The notification payload

    Returns:
        DeliveryResult; never raises for timeouts, network or Discord errors
    """
    started = time.monotonic()

    validation = validate_discord_config(config)
    if not validation.valid:
        return DeliveryResult(success=False, error=validation.error, duration_ms=elapsed_ms(started))

    body = format_discord_payload(payload)
    timeout = get_timeout_seconds()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                config['webhook_url'],
                json=body,
                headers={'Content-Type': 'application/json'},
            )
    except httpx.TimeoutException:
        return DeliveryResult(
            success=False,
            error=timeout_error_message(timeout),
            duration_ms=elapsed_ms(started),
        )
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        return DeliveryResult(
            success=False,
            error=f"Network error: {e}",
            duration_ms=elapsed_ms(started),
        )

    duration_ms = elapsed_ms(started)

    if response.is_success:
        return DeliveryResult(success=True, status_code=response.status_code, duration_ms=duration_ms)

    if response.status_code == 429:
        retry_after = response.headers.get('Retry-After') or 'unknown'
        return DeliveryResult(
            success=False,
            error=f"Discord rate limited. Retry after {retry_after} seconds",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    return DeliveryResult(
        success=False,
        error=f"Discord webhook returned {response.status_code}: {response.text[:MAX_ERROR_BODY_LENGTH]}",
        status_code=response.status_code,
        duration_ms=duration_ms,
    )


class DiscordProvider(NotificationProvider):
    name = DISCORD

    def validate_config(self, config) -> ValidationResult:
        return validate_discord_config(config)

    async def send(self, config: dict, payload: NotificationPayload) -> DeliveryResult:
        return await send_discord_notification(config, payload)


discord_provider = DiscordProvider()
