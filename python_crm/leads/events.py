"""
Lead lifecycle events.

Each function schedules the notification and webhook fan-out for one lead
event to run after the current transaction commits, so subscribers never
hear about a change that was rolled back. The fan-out is fire-and-forget
and cannot fail the calling request.
"""
import logging

from django.db import transaction

from notifications.services.dispatcher import (
    trigger_lead_created_notification,
    trigger_lead_status_changed_notification,
)
from notifications.services.webhooks import (
    trigger_lead_activity_added_webhooks,
    trigger_lead_created_webhooks,
    trigger_lead_deleted_webhooks,
    trigger_lead_status_changed_webhooks,
    trigger_lead_updated_webhooks,
)

logger = logging.getLogger(__name__)


def lead_created(lead) -> None:
    def fan_out():
        trigger_lead_created_notification(lead)
        trigger_lead_created_webhooks(lead)

    logger.debug(f"Lead {lead.id}: lead.created scheduled")
    transaction.on_commit(fan_out)


def lead_updated(lead, changes: dict) -> None:
    if not changes:
        return
    logger.debug(f"Lead {lead.id}: lead.updated scheduled for {', '.join(changes)}")
    transaction.on_commit(lambda: trigger_lead_updated_webhooks(lead, changes))


def lead_status_changed(lead, previous_status: str, new_status: str) -> None:
    if previous_status == new_status:
        return

    def fan_out():
        trigger_lead_status_changed_notification(lead, previous_status, new_status)
        trigger_lead_status_changed_webhooks(lead, previous_status, new_status)

    logger.debug(f"Lead {lead.id}: lead.status_changed {previous_status} -> {new_status} scheduled")
    transaction.on_commit(fan_out)


def lead_deleted(lead_id, name: str, email: str) -> None:
    logger.debug(f"Lead {lead_id}: lead.deleted scheduled")
    transaction.on_commit(lambda: trigger_lead_deleted_webhooks(lead_id, name, email))


def activity_added(lead, activity) -> None:
    logger.debug(f"Lead {lead.id}: lead.activity_added scheduled for activity {activity.id}")
    transaction.on_commit(lambda: trigger_lead_activity_added_webhooks(lead, activity))
