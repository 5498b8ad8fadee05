"""
Telegram notification provider.

Sends HTML formatted messages through the Telegram Bot API.
"""
import logging
import time

import httpx
from django.conf import settings

from notifications.services.types import (
    LEAD_CREATED,
    TELEGRAM,
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
from notifications.services.validation import TelegramConfigSerializer, validate_config_with

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = 'https://api.telegram.org'
MAX_MESSAGE_LENGTH = 500


def escape_html(text: str) -> str:
    """
    Escape the characters Telegram's HTML parse mode treats as markup.
    """
    return (
        text.replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
    )


def format_lead_created_message(payload: LeadCreatedNotification) -> str:
    """
    Format a lead.created notification as a Telegram HTML message.

    Example output:
        <b>🆕 New Lead: John Doe</b>

        <b>Email:</b> john@acme.com
        ...
    """
    lead = payload.lead
    lines = [
        f"<b>🆕 New Lead: {escape_html(lead.name)}</b>",
        '',
        f"<b>Email:</b> {escape_html(lead.email)}",
    ]

    optional_fields = (
        ('Company', lead.company),
        ('Phone', lead.phone),
        ('Budget', lead.budget),
        ('Project', lead.project_type),
        ('Source', lead.source),
    )
    for label, value in optional_fields:
        if value:
            lines.append(f"<b>{label}:</b> {escape_html(value)}")

    lines.append('')
    lines.append(f"<i>{escape_html(truncate(lead.message, MAX_MESSAGE_LENGTH))}</i>")

    lines.append('')
    lines.append(f'<a href="{get_lead_url(lead.id)}">View in CRM →</a>')

    return '\n'.join(lines)


def format_lead_status_changed_message(payload: LeadStatusChangedNotification) -> str:
    lead = payload.lead
    lines = [
        f"<b>📊 Status Changed: {escape_html(lead.name)}</b>",
        '',
        f"<b>Email:</b> {escape_html(lead.email)}",
    ]
    if lead.company:
        lines.append(f"<b>Company:</b> {escape_html(lead.company)}")

    lines.append('')
    lines.append(
        f"<b>Status:</b> {escape_html(payload.previous_status)} → {escape_html(payload.new_status)}"
    )

    lines.append('')
    lines.append(f'<a href="{get_lead_url(lead.id)}">View in CRM →</a>')

    return '\n'.join(lines)


def format_telegram_message(payload: NotificationPayload) -> str:
    if payload.event == LEAD_CREATED:
        return format_lead_created_message(payload)
    return format_lead_status_changed_message(payload)


def validate_telegram_config(config) -> ValidationResult:
    return validate_config_with(TelegramConfigSerializer, config)


def get_api_base_url() -> str:
    return getattr(settings, 'TELEGRAM_API_BASE_URL', None) or DEFAULT_API_BASE_URL


async def send_telegram_notification(config: dict, payload: NotificationPayload) -> DeliveryResult:
    """
    Send a notification via the Telegram Bot API sendMessage method.

    Success is decided by the 'ok' flag in the JSON body, not the HTTP status.
    """
    started = time.monotonic()

    validation = validate_telegram_config(config)
    if not validation.valid:
        return DeliveryResult(success=False, error=validation.error, duration_ms=elapsed_ms(started))

    api_url = f"{get_api_base_url()}/bot{config['bot_token']}/sendMessage"
    body = {
        'chat_id': config['chat_id'],
        'text': format_telegram_message(payload),
        'parse_mode': 'HTML',
        'disable_web_page_preview': True,
    }
    timeout = get_timeout_seconds()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                api_url,
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

    try:
        api_response = response.json()
    except ValueError:
        return DeliveryResult(
            success=False,
            error='Invalid JSON response from Telegram API',
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    if not isinstance(api_response, dict):
        api_response = {}

    if api_response.get('ok'):
        return DeliveryResult(success=True, status_code=response.status_code, duration_ms=duration_ms)

    description = api_response.get('description')

    if api_response.get('error_code') == 429:
        return DeliveryResult(
            success=False,
            error=f"Telegram rate limited: {description}",
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    return DeliveryResult(
        success=False,
        error=f"Telegram API error: {description or 'Unknown error'}",
        status_code=response.status_code,
        duration_ms=duration_ms,
    )


class TelegramProvider(NotificationProvider):
    name = TELEGRAM

    def validate_config(self, config) -> ValidationResult:
        return validate_telegram_config(config)

    async def send(self, config: dict, payload: NotificationPayload) -> DeliveryResult:
        return await send_telegram_notification(config, payload)


telegram_provider = TelegramProvider()
