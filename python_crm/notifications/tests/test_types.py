"""
Tests for shared notification types and helpers.
"""
import pytest
from datetime import datetime, timezone as dt_timezone
from types import SimpleNamespace
from hypothesis import given, settings as hypothesis_settings
import hypothesis.strategies as st

from notifications.services.types import (
    ChannelDispatchResult,
    LeadCreatedNotification,
    LeadStatusChangedNotification,
    NotificationLeadData,
    get_lead_url,
    payload_from_dict,
    timeout_error_message,
    truncate,
)


class TestTruncateProperty:
    """
    A truncated text is never longer than the limit plus the '...' suffix,
    and text within the limit is returned unchanged.
    """

    @hypothesis_settings(max_examples=100)
    @given(text=st.text(), limit=st.integers(min_value=0, max_value=1200))
    def test_truncate_bounds(self, text, limit):
        result = truncate(text, limit)

        if len(text) <= limit:
            assert result == text
        else:
            assert result == text[:limit] + '...'
            assert len(result) == limit + 3


class TestNotificationLeadData:
    """Tests for building the lead snapshot from a model instance."""

    def test_from_lead_normalises_blank_optionals(self):
        lead = SimpleNamespace(
            id='abc',
            name='Jane',
            email='jane@acme.com',
            company='',
            phone=None,
            budget='$5k',
            project_type='',
            message='Hello',
            source=None,
            status='new',
            created_at=datetime(2026, 1, 15, 10, 30, tzinfo=dt_timezone.utc),
        )

        data = NotificationLeadData.from_lead(lead)

        assert data.company is None
        assert data.phone is None
        assert data.budget == '$5k'
        assert data.project_type is None
        assert data.created_at == '2026-01-15T10:30:00+00:00'


class TestPayloadDictForm:
    """Payloads cross the task broker as plain dicts."""

    def test_created_payload_rebuilds(self, created_payload):
        rebuilt = payload_from_dict(created_payload.to_dict())

        assert isinstance(rebuilt, LeadCreatedNotification)
        assert rebuilt == created_payload

    def test_status_changed_payload_rebuilds(self, status_changed_payload):
        data = status_changed_payload.to_dict()
        rebuilt = payload_from_dict(data)

        assert data['event'] == 'lead.status_changed'
        assert isinstance(rebuilt, LeadStatusChangedNotification)
        assert rebuilt.previous_status == 'new'
        assert rebuilt.new_status == 'contacted'

    def test_unknown_event_raises(self, created_payload):
        data = created_payload.to_dict()
        data['event'] = 'lead.deleted'

        with pytest.raises(ValueError, match='Unsupported notification event'):
            payload_from_dict(data)


class TestHelpers:

    def test_lead_url_default(self):
        assert get_lead_url('123') == 'https://api.octatech.xyz/leads/123'

    def test_lead_url_falls_back_when_setting_blank(self, settings):
        settings.CRM_BASE_URL = ''
        assert get_lead_url('123') == 'https://api.octatech.xyz/leads/123'

    def test_timeout_message(self):
        assert timeout_error_message(10) == 'Request timeout after 10000ms'

    def test_channel_result_dict(self):
        result = ChannelDispatchResult(
            success=False,
            error='boom',
            duration_ms=12,
            channel_id='c1',
            channel_name='Sales',
            channel_type='discord',
        )
        assert result.to_dict() == {
            'channel_id': 'c1',
            'channel_name': 'Sales',
            'channel_type': 'discord',
            'success': False,
            'error': 'boom',
            'status_code': None,
            'duration_ms': 12,
        }
