import os
import sys
import pytest

# Add the project root to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crm_gateway.settings')


@pytest.fixture
def lead_data():
    """Return a NotificationLeadData snapshot with every field populated."""
    from notifications.services.types import NotificationLeadData

    return NotificationLeadData(
        id='3f2b8c1e-5d4a-4e7b-9c6f-1a2b3c4d5e6f',
        name='Jane Doe',
        email='jane@acme.com',
        company='Acme Corp',
        phone='+1-555-0100',
        budget='$10,000 - $50,000',
        project_type='Web App',
        message='We need a customer portal for our field technicians.',
        source='Website',
        status='new',
        created_at='2026-01-15T10:30:00+00:00',
    )


@pytest.fixture
def minimal_lead_data():
    """Return a NotificationLeadData snapshot with only required fields."""
    from notifications.services.types import NotificationLeadData

    return NotificationLeadData(
        id='8a7b6c5d-4e3f-4a2b-8c1d-0e9f8a7b6c5d',
        name='John Smith',
        email='john@example.com',
        message='Just saying hi.',
        status='new',
        created_at='2026-01-15T10:30:00+00:00',
    )


@pytest.fixture
def created_payload(lead_data):
    from notifications.services.types import LeadCreatedNotification

    return LeadCreatedNotification(lead=lead_data)


@pytest.fixture
def status_changed_payload(lead_data):
    from notifications.services.types import LeadStatusChangedNotification

    return LeadStatusChangedNotification(lead=lead_data, previous_status='new', new_status='contacted')


@pytest.fixture
def discord_config():
    return {'webhook_url': 'https://discord.com/api/webhooks/123456789/abcDEF-ghi_jkl'}


@pytest.fixture
def telegram_config():
    return {'bot_token': '123456:ABC-DEF_ghi', 'chat_id': '-1001234567890'}


@pytest.fixture
def email_config():
    return {'to': 'sales@acme.com, CEO <ceo@acme.com>', 'from': 'CRM <crm@octatech.xyz>'}


@pytest.fixture
def lead(db):
    """A stored Lead row."""
    from leads.models import Lead

    return Lead.objects.create(
        name='Jane Doe',
        email='jane@acme.com',
        company='Acme Corp',
        phone='+1-555-0100',
        budget='$10,000 - $50,000',
        project_type='Web App',
        message='We need a customer portal.',
        source='Website',
    )


@pytest.fixture
def webhook(db):
    """An enabled webhook subscribed to every lead event, with a secret."""
    from notifications.models import Webhook
    from notifications.services.types import WEBHOOK_EVENTS

    return Webhook.objects.create(
        name='Zapier',
        url='https://hooks.example.com/crm',
        events=list(WEBHOOK_EVENTS),
        secret='a-very-secret-signing-key',
    )


@pytest.fixture
def admin_client(db):
    """DRF APIClient authenticated as a staff user."""
    from django.contrib.auth import get_user_model
    from rest_framework.test import APIClient

    user = get_user_model().objects.create_user(
        username='admin',
        email='admin@octatech.xyz',
        password='not-used',
        is_staff=True,
    )
    client = APIClient()
    client.force_authenticate(user=user)
    return client
