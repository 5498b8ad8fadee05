"""
Email notification provider.

Sends HTML email through the Resend REST API. The API key comes from the
RESEND_API_KEY setting and is checked at send time, so a channel can be
saved before the key is configured.
"""
import logging
import time
from typing import Optional, Tuple

import httpx
from django.conf import settings

from notifications.services.types import (
    EMAIL,
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
)
from notifications.services.validation import (
    EmailConfigSerializer,
    split_recipients,
    validate_config_with,
)

logger = logging.getLogger(__name__)

DEFAULT_API_BASE_URL = 'https://api.resend.com'

ROW_TEMPLATE = """
        <tr>
          <td style="padding: 8px; border-bottom: 1px solid #eee;"><strong>{label}</strong></td>
          <td style="padding: 8px; border-bottom: 1px solid #eee;">{value}</td>
        </tr>"""

CTA_AND_FOOTER = """
  <p style="margin-bottom: 24px;">
    <a href="{lead_url}"
       style="display: inline-block; background: #6366f1; color: white;
              padding: 12px 24px; text-decoration: none; border-radius: 8px;
              font-weight: 500;">
      View Lead in CRM
    </a>
  </p>

  <hr style="border: none; border-top: 1px solid #eee; margin: 24px 0;">
  <p style="color: #666; font-size: 12px;">
    Octatech CRM • <a href="https://octatech.xyz" style="color: #6366f1;">octatech.xyz</a>
  </p>"""

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px; color: #333;">
  <h2 style="color: #6366f1; margin-bottom: 24px;">{heading}</h2>

  <table style="width: 100%; border-collapse: collapse; margin-bottom: 24px;">{rows}
  </table>
{body}{footer}
</body>
</html>"""

MESSAGE_BLOCK = """
  <h3 style="color: #333; margin-bottom: 12px;">Message</h3>
  <p style="background: #f5f5f5; padding: 16px; border-radius: 8px; white-space: pre-wrap; margin-bottom: 24px;">
{message}
  </p>
"""


def escape_html(text: str) -> str:
    """Escape text for safe inclusion in HTML content and attributes."""
    return (
        text.replace('&', '&amp;')
        .replace('<', '&lt;')
        .replace('>', '&gt;')
        .replace('"', '&quot;')
        .replace("'", '&#39;')
    )


def _render_rows(rows) -> str:
    return ''.join(
        ROW_TEMPLATE.format(label=escape_html(label), value=value)
        for label, value in rows
    )


def _render_document(heading: str, rows, body: str, lead_id: str) -> str:
    return DOCUMENT_TEMPLATE.format(
        heading=heading,
        rows=_render_rows(rows),
        body=body,
        footer=CTA_AND_FOOTER.format(lead_url=escape_html(get_lead_url(lead_id))),
    )


def format_lead_created_email(payload: LeadCreatedNotification) -> Tuple[str, str]:
    """
    Format a lead.created notification as an email.

    Args:
        payload: The notification payload

    Returns:
        Tuple of (subject, html)
    """
    lead = payload.lead
    if lead.company:
        subject = f"New Lead: {lead.name} - {lead.company}"
    else:
        subject = f"New Lead: {lead.name}"

    rows = [('Name', lead.name), ('Email', lead.email)]
    optional_rows = (
        ('Company', lead.company),
        ('Phone', lead.phone),
        ('Budget', lead.budget),
        ('Project Type', lead.project_type),
        ('Source', lead.source),
    )
    rows.extend((label, value) for label, value in optional_rows if value)
    escaped_rows = [(label, escape_html(value)) for label, value in rows]

    html = _render_document(
        heading='🆕 New Lead Received',
        rows=escaped_rows,
        body=MESSAGE_BLOCK.format(message=escape_html(lead.message)),
        lead_id=lead.id,
    )
    return subject, html


def format_lead_status_changed_email(payload: LeadStatusChangedNotification) -> Tuple[str, str]:
    """
    Format a lead.status_changed notification as an email.

    Returns:
        Tuple of (subject, html)
    """
    lead = payload.lead
    transition = f"({payload.previous_status} → {payload.new_status})"
    if lead.company:
        subject = f"Status Changed: {lead.name} - {lead.company} {transition}"
    else:
        subject = f"Status Changed: {lead.name} {transition}"

    rows = [('Name', escape_html(lead.name)), ('Email', escape_html(lead.email))]
    if lead.company:
        rows.append(('Company', escape_html(lead.company)))
    rows.append(('Previous Status', escape_html(payload.previous_status)))
    rows.append((
        'New Status',
        f'<strong style="color: #6366f1;">{escape_html(payload.new_status)}</strong>',
    ))

    html = _render_document(
        heading='📊 Lead Status Changed',
        rows=rows,
        body='\n',
        lead_id=lead.id,
    )
    return subject, html


def format_email(payload: NotificationPayload) -> Tuple[str, str]:
    if payload.event == LEAD_CREATED:
        return format_lead_created_email(payload)
    return format_lead_status_changed_email(payload)


def validate_email_config(config) -> ValidationResult:
    return validate_config_with(EmailConfigSerializer, config)


def get_resend_api_key() -> Optional[str]:
    return getattr(settings, 'RESEND_API_KEY', None) or None


def get_api_base_url() -> str:
    return getattr(settings, 'RESEND_API_BASE_URL', None) or DEFAULT_API_BASE_URL


async def send_email_notification(config: dict, payload: NotificationPayload) -> DeliveryResult:
    """
    Send a notification email via Resend.

    Args:
        config: Channel config with 'to' (comma separated) and 'from'
        payload: The notification payload

    Returns:
        DeliveryResult; success requires a 2xx status and a message id
    """
    started = time.monotonic()

    validation = validate_email_config(config)
    if not validation.valid:
        return DeliveryResult(success=False, error=validation.error, duration_ms=elapsed_ms(started))

    api_key = get_resend_api_key()
    if not api_key:
        logger.error('Email notification skipped: RESEND_API_KEY is not configured')
        return DeliveryResult(
            success=False,
            error='RESEND_API_KEY environment variable is not configured',
            duration_ms=elapsed_ms(started),
        )

    subject, html = format_email(payload)
    body = {
        'from': config['from'],
        'to': split_recipients(config['to']),
        'subject': subject,
        'html': html,
    }
    timeout = get_timeout_seconds()

    try:
        async with httpx.AsyncClient(timeout=timeout) as client:
            response = await client.post(
                f"{get_api_base_url()}/emails",
                json=body,
                headers={
                    'Content-Type': 'application/json',
                    'Authorization': f"Bearer {api_key}",
                },
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
            error='Invalid JSON response from Resend API',
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    if not isinstance(api_response, dict):
        api_response = {}

    if response.is_success and api_response.get('id'):
        return DeliveryResult(success=True, status_code=response.status_code, duration_ms=duration_ms)

    if response.status_code == 429:
        return DeliveryResult(
            success=False,
            error='Resend rate limited. Try again later.',
            status_code=response.status_code,
            duration_ms=duration_ms,
        )

    return DeliveryResult(
        success=False,
        error=f"Resend API error: {api_response.get('message') or 'Unknown error'}",
        status_code=response.status_code,
        duration_ms=duration_ms,
    )


class EmailProvider(NotificationProvider):
    name = EMAIL

    def validate_config(self, config) -> ValidationResult:
        return validate_email_config(config)

    async def send(self, config: dict, payload: NotificationPayload) -> DeliveryResult:
        return await send_email_notification(config, payload)


email_provider = EmailProvider()
