"""
Shared types for notification channels and outbound webhooks.

Holds the event whitelists, the lead snapshot carried in every payload,
the delivery result types and the provider interface implemented by the
Discord, Telegram and Email adapters.
"""
import abc
import time
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, Union

from django.conf import settings


# Channel types
DISCORD = 'discord'
TELEGRAM = 'telegram'
EMAIL = 'email'
CHANNEL_TYPES = (DISCORD, TELEGRAM, EMAIL)

# Event names
LEAD_CREATED = 'lead.created'
LEAD_UPDATED = 'lead.updated'
LEAD_STATUS_CHANGED = 'lead.status_changed'
LEAD_DELETED = 'lead.deleted'
LEAD_ACTIVITY_ADDED = 'lead.activity_added'

# Chat/email channels only understand these two events
NOTIFICATION_EVENTS = (LEAD_CREATED, LEAD_STATUS_CHANGED)
VALID_NOTIFICATION_EVENTS = frozenset(NOTIFICATION_EVENTS)

WEBHOOK_EVENTS = (
    LEAD_CREATED,
    LEAD_UPDATED,
    LEAD_STATUS_CHANGED,
    LEAD_DELETED,
    LEAD_ACTIVITY_ADDED,
)
VALID_WEBHOOK_EVENTS = frozenset(WEBHOOK_EVENTS)

WEBHOOK_EVENT_DESCRIPTIONS = {
    LEAD_CREATED: 'Triggered when a new lead is added',
    LEAD_UPDATED: 'Triggered when lead information is changed',
    LEAD_STATUS_CHANGED: "Triggered when a lead's status changes",
    LEAD_DELETED: 'Triggered when a lead is removed',
    LEAD_ACTIVITY_ADDED: 'Triggered when an activity is added to a lead',
}

DEFAULT_CRM_BASE_URL = 'https://api.octatech.xyz'


@dataclass
class NotificationLeadData:
    """Snapshot of the lead fields rendered into notifications."""
    id: str
    name: str
    email: str
    message: str
    status: str
    created_at: str
    company: Optional[str] = None
    phone: Optional[str] = None
    budget: Optional[str] = None
    project_type: Optional[str] = None
    source: Optional[str] = None

    @classmethod
    def from_lead(cls, lead) -> 'NotificationLeadData':
        created_at = lead.created_at
        if isinstance(created_at, datetime):
            created_at = created_at.isoformat()
        return cls(
            id=str(lead.id),
            name=lead.name,
            email=lead.email,
            message=lead.message or '',
            status=lead.status,
            created_at=str(created_at),
            company=lead.company or None,
            phone=lead.phone or None,
            budget=lead.budget or None,
            project_type=lead.project_type or None,
            source=lead.source or None,
        )


@dataclass
class LeadCreatedNotification:
    lead: NotificationLeadData
    event: str = field(default=LEAD_CREATED, init=False)

    def to_dict(self) -> dict:
        return {'event': self.event, 'lead': asdict(self.lead)}


@dataclass
class LeadStatusChangedNotification:
    lead: NotificationLeadData
    previous_status: str
    new_status: str
    event: str = field(default=LEAD_STATUS_CHANGED, init=False)

    def to_dict(self) -> dict:
        return {
            'event': self.event,
            'lead': asdict(self.lead),
            'previous_status': self.previous_status,
            'new_status': self.new_status,
        }


NotificationPayload = Union[LeadCreatedNotification, LeadStatusChangedNotification]


def payload_from_dict(data: dict) -> NotificationPayload:
    """
    Rebuild a notification payload from its dict form (e.g. after a trip
    through the task broker).

    Raises:
        ValueError: If the event is not a notification event
    """
    lead = NotificationLeadData(**data['lead'])
    event = data.get('event')
    if event == LEAD_CREATED:
        return LeadCreatedNotification(lead=lead)
    if event == LEAD_STATUS_CHANGED:
        return LeadStatusChangedNotification(
            lead=lead,
            previous_status=data['previous_status'],
            new_status=data['new_status'],
        )
    raise ValueError(f"Unsupported notification event: {event}")


@dataclass
class ValidationResult:
    valid: bool
    error: Optional[str] = None


@dataclass
class DeliveryResult:
    """Outcome of one delivery attempt to a notification provider."""
    success: bool
    duration_ms: int = 0
    error: Optional[str] = None
    status_code: Optional[int] = None


@dataclass
class ChannelDispatchResult(DeliveryResult):
    channel_id: str = ''
    channel_name: str = ''
    channel_type: str = ''

    def to_dict(self) -> dict:
        return {
            'channel_id': self.channel_id,
            'channel_name': self.channel_name,
            'channel_type': self.channel_type,
            'success': self.success,
            'error': self.error,
            'status_code': self.status_code,
            'duration_ms': self.duration_ms,
        }


@dataclass
class WebhookDeliveryResult:
    """Outcome of one POST to a webhook subscriber."""
    success: bool
    status_code: Optional[int]
    response_body: Optional[str]
    duration_ms: int
    error: Optional[str] = None


class NotificationProvider(abc.ABC):
    """
    Contract shared by every notification channel adapter.

    validate_config() must be side-effect free; send() must never raise for
    expected failures (bad config, timeouts, provider errors) and instead
    report them in the returned DeliveryResult.
    """

    name = ''

    @abc.abstractmethod
    def validate_config(self, config) -> ValidationResult:
        """Check a channel config dict for this provider."""

    @abc.abstractmethod
    async def send(self, config: dict, payload: NotificationPayload) -> DeliveryResult:
        """Format the payload for this provider and deliver it."""


def get_crm_base_url() -> str:
    return getattr(settings, 'CRM_BASE_URL', None) or DEFAULT_CRM_BASE_URL


def get_lead_url(lead_id: str) -> str:
    """Link to the lead detail page in the CRM admin UI."""
    return f"{get_crm_base_url()}/leads/{lead_id}"


def get_timeout_seconds() -> float:
    return float(getattr(settings, 'NOTIFICATION_TIMEOUT_SECONDS', 10))


def timeout_error_message(timeout_seconds: float) -> str:
    return f"Request timeout after {int(timeout_seconds * 1000)}ms"


def elapsed_ms(started: float) -> int:
    return max(0, int((time.monotonic() - started) * 1000))


def truncate(text: str, max_length: int) -> str:
    """Cut text to max_length characters, appending '...' when cut."""
    if len(text) > max_length:
        return text[:max_length] + '...'
    return text
