"""
Unit tests for the Email (Resend) notification provider.
"""
import pytest
from unittest.mock import patch, AsyncMock
import httpx
from asgiref.sync import async_to_sync

from notifications.services.email import (
    escape_html,
    format_email,
    format_lead_created_email,
    format_lead_status_changed_email,
    send_email_notification,
    validate_email_config,
)
from notifications.services.types import LeadCreatedNotification, LeadStatusChangedNotification

send = async_to_sync(send_email_notification)


@pytest.fixture
def resend_key(settings):
    settings.RESEND_API_KEY = 're_test_123'
    return settings.RESEND_API_KEY


class TestValidateEmailConfig:
    """Tests for validate_email_config."""

    def test_valid_config_with_display_names(self, email_config):
        assert validate_email_config(email_config).valid is True

    def test_invalid_recipient_in_list(self):
        result = validate_email_config({'to': 'ok@acme.com, not-an-email', 'from': 'crm@acme.com'})
        assert result.valid is False
        assert result.error == "Invalid email address in 'to' field: not-an-email"

    def test_invalid_sender(self):
        result = validate_email_config({'to': 'ok@acme.com', 'from': 'CRM <crm@nowhere>'})
        assert result.valid is False
        assert result.error == "Invalid email address in 'from' field: CRM <crm@nowhere>"

    def test_missing_from(self):
        result = validate_email_config({'to': 'ok@acme.com'})
        assert result.valid is False
        assert result.error == 'from is required and must be a string'

    def test_missing_to(self):
        result = validate_email_config({'from': 'crm@acme.com'})
        assert result.valid is False
        assert result.error == 'to is required and must be a string'


class TestFormatEmail:
    """Tests for subject and HTML formatting."""

    def test_escape_html_covers_quotes(self):
        assert escape_html('<a href="x">\'&\'</a>') == (
            '&lt;a href=&quot;x&quot;&gt;&#39;&amp;&#39;&lt;/a&gt;'
        )

    def test_created_subject_with_company(self, created_payload):
        subject, _ = format_lead_created_email(created_payload)
        assert subject == 'New Lead: Jane Doe - Acme Corp'

    def test_created_subject_without_company(self, minimal_lead_data):
        subject, _ = format_lead_created_email(LeadCreatedNotification(lead=minimal_lead_data))
        assert subject == 'New Lead: John Smith'

    def test_created_html(self, created_payload):
        _, html = format_lead_created_email(created_payload)

        assert html.startswith('<!DOCTYPE html>')
        assert '🆕 New Lead Received' in html
        assert '<strong>Project Type</strong>' in html
        assert 'We need a customer portal for our field technicians.' in html
        assert 'View Lead in CRM' in html
        assert 'https://api.octatech.xyz/leads/3f2b8c1e-5d4a-4e7b-9c6f-1a2b3c4d5e6f' in html

    def test_created_html_skips_absent_rows(self, minimal_lead_data):
        _, html = format_lead_created_email(LeadCreatedNotification(lead=minimal_lead_data))

        assert '<strong>Company</strong>' not in html
        assert '<strong>Phone</strong>' not in html

    def test_html_escapes_lead_content(self, lead_data):
        lead_data.message = '<img src=x onerror="alert(1)">'
        _, html = format_lead_created_email(LeadCreatedNotification(lead=lead_data))

        assert '<img' not in html
        assert '&lt;img src=x onerror=&quot;alert(1)&quot;&gt;' in html

    def test_status_changed_subject(self, status_changed_payload, minimal_lead_data):
        subject, html = format_lead_status_changed_email(status_changed_payload)
        assert subject == 'Status Changed: Jane Doe - Acme Corp (new → contacted)'
        assert '<strong>Previous Status</strong>' in html
        assert '📊 Lead Status Changed' in html

        payload = LeadStatusChangedNotification(lead=minimal_lead_data, previous_status='won', new_status='lost')
        subject, _ = format_email(payload)
        assert subject == 'Status Changed: John Smith (won → lost)'


class TestSendEmailNotification:
    """Tests for send_email_notification."""

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_success_requires_id(self, mock_post, resend_key, email_config, created_payload):
        mock_post.return_value = httpx.Response(200, json={'id': 'email_abc'})

        result = send(email_config, created_payload)

        assert result.success is True
        assert result.status_code == 200
        assert mock_post.call_args.args[0] == 'https://api.resend.com/emails'
        kwargs = mock_post.call_args.kwargs
        assert kwargs['headers']['Authorization'] == 'Bearer re_test_123'
        assert kwargs['json']['to'] == ['sales@acme.com', 'CEO <ceo@acme.com>']
        assert kwargs['json']['from'] == 'CRM <crm@octatech.xyz>'
        assert kwargs['json']['subject'] == 'New Lead: Jane Doe - Acme Corp'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_2xx_without_id_is_failure(self, mock_post, resend_key, email_config, created_payload):
        mock_post.return_value = httpx.Response(200, json={})

        result = send(email_config, created_payload)

        assert result.success is False
        assert result.error == 'Resend API error: Unknown error'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_missing_api_key(self, mock_post, settings, email_config, created_payload):
        settings.RESEND_API_KEY = None

        result = send(email_config, created_payload)

        assert result.success is False
        assert 'RESEND_API_KEY' in result.error
        assert 'not configured' in result.error
        mock_post.assert_not_called()

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_rate_limited(self, mock_post, resend_key, email_config, created_payload):
        mock_post.return_value = httpx.Response(429, json={'message': 'Too many requests'})

        result = send(email_config, created_payload)

        assert result.error == 'Resend rate limited. Try again later.'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_api_error_message(self, mock_post, resend_key, email_config, created_payload):
        mock_post.return_value = httpx.Response(422, json={'message': 'Invalid `from` field'})

        result = send(email_config, created_payload)

        assert result.success is False
        assert result.status_code == 422
        assert result.error == 'Resend API error: Invalid `from` field'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_non_json_response(self, mock_post, resend_key, email_config, created_payload):
        mock_post.return_value = httpx.Response(500, text='Internal Server Error')

        result = send(email_config, created_payload)

        assert result.error == 'Invalid JSON response from Resend API'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_network_error(self, mock_post, resend_key, email_config, created_payload):
        mock_post.side_effect = httpx.ConnectError('Name or service not known')

        result = send(email_config, created_payload)

        assert result.error == 'Network error: Name or service not known'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_timeout(self, mock_post, resend_key, email_config, created_payload):
        mock_post.side_effect = httpx.ReadTimeout('timed out')

        result = send(email_config, created_payload)

        assert result.success is False
        assert result.status_code is None
        assert result.error == 'Request timeout after 10000ms'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_invalid_url_error_is_a_failure(self, mock_post, settings, resend_key, email_config, created_payload):
        settings.RESEND_API_BASE_URL = 'https://api.resend.com\n'
        mock_post.side_effect = httpx.InvalidURL('Invalid non-printable ASCII character in URL')

        result = send(email_config, created_payload)

        assert result.success is False
        assert result.error == 'Network error: Invalid non-printable ASCII character in URL'

    @patch('notifications.services.email.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_padded_sender_makes_no_request(self, mock_post, resend_key, created_payload):
        result = send({'to': 'sales@acme.com', 'from': 'crm@acme.com\n'}, created_payload)

        assert result.success is False
        assert result.error.startswith("Invalid email address in 'from' field")
        mock_post.assert_not_called()
