"""
Tests for the notification channel and webhook admin API.
"""
import uuid
import pytest
from unittest.mock import patch, AsyncMock
import httpx
from django.urls import reverse
from rest_framework.test import APIClient

from notifications.models import NotificationChannel, Webhook, WebhookDelivery


@pytest.mark.django_db
class TestPermissions:

    def test_anonymous_is_rejected(self):
        response = APIClient().get(reverse('notification-channel-list'))
        assert response.status_code == 403

    def test_non_staff_is_rejected(self, django_user_model):
        user = django_user_model.objects.create_user(username='rep', password='x')
        client = APIClient()
        client.force_authenticate(user=user)

        response = client.get(reverse('webhook-list'))

        assert response.status_code == 403


@pytest.mark.django_db
class TestNotificationChannelAPI:

    def test_create_and_list(self, admin_client, discord_config):
        response = admin_client.post(reverse('notification-channel-list'), {
            'type': 'discord',
            'name': 'Sales alerts',
            'config': discord_config,
            'events': ['lead.created', 'lead.status_changed'],
        }, format='json')

        assert response.status_code == 201
        assert response.data['type'] == 'discord'
        assert response.data['enabled'] is True

        listing = admin_client.get(reverse('notification-channel-list'))
        assert listing.status_code == 200
        assert [channel['name'] for channel in listing.data['channels']] == ['Sales alerts']

    def test_create_rejects_bad_config(self, admin_client):
        response = admin_client.post(reverse('notification-channel-list'), {
            'type': 'discord',
            'name': 'Sales',
            'config': {'webhook_url': 'https://example.com/not-discord'},
            'events': ['lead.created'],
        }, format='json')

        assert response.status_code == 400
        assert response.data['errors']['config.webhook_url'].startswith('Invalid Discord webhook URL')
        assert NotificationChannel.objects.count() == 0

    def test_get_patch_delete(self, admin_client, telegram_config):
        channel = NotificationChannel.objects.create(
            type='telegram', name='Ops', config=telegram_config, events=['lead.created'],
        )
        url = reverse('notification-channel-detail', args=[channel.id])

        assert admin_client.get(url).data['name'] == 'Ops'

        response = admin_client.patch(url, {'enabled': False}, format='json')
        assert response.status_code == 200
        assert response.data['enabled'] is False

        response = admin_client.delete(url)
        assert response.status_code == 200
        assert response.data == {'success': True, 'message': 'Notification channel deleted'}
        assert not NotificationChannel.objects.filter(id=channel.id).exists()

    def test_missing_channel_is_404(self, admin_client):
        url = reverse('notification-channel-detail', args=[uuid.uuid4()])
        assert admin_client.get(url).status_code == 404

    @patch('notifications.services.discord.httpx.AsyncClient.post', new_callable=AsyncMock)
    def test_send_test_notification(self, mock_post, admin_client, discord_config):
        channel = NotificationChannel.objects.create(
            type='discord', name='Sales', config=discord_config, events=['lead.created'],
        )
        mock_post.return_value = httpx.Response(429, headers={'Retry-After': '5'})

        response = admin_client.post(reverse('notification-channel-test', args=[channel.id]))

        assert response.status_code == 200
        assert response.data['success'] is False
        assert response.data['error'] == 'Discord rate limited. Retry after 5 seconds'
        assert response.data['message'].startswith('Test notification failed: ')
        assert response.data['status_code'] == 429

    def test_send_test_notification_missing_channel(self, admin_client):
        response = admin_client.post(reverse('notification-channel-test', args=[uuid.uuid4()]))
        assert response.status_code == 404

    def test_events_and_types(self, admin_client):
        events = admin_client.get(reverse('notification-event-list')).data['events']
        assert [event['event'] for event in events] == ['lead.created', 'lead.status_changed']
        assert events[0]['default_enabled'] is True

        types = admin_client.get(reverse('notification-type-list')).data['types']
        assert {t['type'] for t in types} == {'discord', 'telegram', 'email'}


@pytest.mark.django_db
class TestWebhookAPI:

    def test_create_never_returns_secret(self, admin_client):
        response = admin_client.post(reverse('webhook-list'), {
            'name': 'Zapier',
            'url': 'https://hooks.example.com/crm',
            'events': ['lead.created'],
            'secret': 'x' * 24,
        }, format='json')

        assert response.status_code == 201
        assert 'secret' not in response.data
        assert Webhook.objects.get(id=response.data['id']).secret == 'x' * 24

        listing = admin_client.get(reverse('webhook-list'))
        assert 'secret' not in listing.data['webhooks'][0]

    def test_private_url_rejected(self, admin_client):
        response = admin_client.post(reverse('webhook-list'), {
            'name': 'Internal',
            'url': 'https://127.0.0.1/hook',
            'events': ['lead.created'],
        }, format='json')

        assert response.status_code == 400
        assert response.data['errors']['url'] == 'URL must not point to a private/internal network'

    def test_reenable_resets_failure_count(self, admin_client, webhook):
        Webhook.objects.filter(pk=webhook.pk).update(enabled=False, failure_count=10)

        response = admin_client.patch(
            reverse('webhook-detail', args=[webhook.id]), {'enabled': True}, format='json',
        )

        assert response.status_code == 200
        assert response.data['enabled'] is True
        assert response.data['failure_count'] == 0

    def test_delete_removes_deliveries(self, admin_client, webhook):
        WebhookDelivery.objects.create(webhook=webhook, event='lead.created', payload={}, status_code=200)

        response = admin_client.delete(reverse('webhook-detail', args=[webhook.id]))

        assert response.data == {'success': True, 'message': 'Webhook deleted'}
        assert WebhookDelivery.objects.count() == 0

    @patch('notifications.services.webhooks.httpx.post')
    def test_send_test_webhook(self, mock_post, admin_client, webhook):
        mock_post.return_value = httpx.Response(200, text='received')

        response = admin_client.post(reverse('webhook-test', args=[webhook.id]))

        assert response.status_code == 200
        assert response.data['success'] is True
        assert response.data['status_code'] == 200
        assert response.data['response_body'] == 'received'
        assert isinstance(response.data['response_time'], int)

    def test_send_test_webhook_missing(self, admin_client):
        response = admin_client.post(reverse('webhook-test', args=[uuid.uuid4()]))
        assert response.status_code == 404

    def test_deliveries_pagination(self, admin_client, webhook):
        for index in range(25):
            WebhookDelivery.objects.create(
                webhook=webhook, event='lead.created', payload={'n': index}, status_code=200,
            )
        url = reverse('webhook-delivery-list', args=[webhook.id])

        first = admin_client.get(url).data
        assert len(first['deliveries']) == 20
        assert first['pagination'] == {
            'page': 1, 'limit': 20, 'total': 25, 'total_pages': 2, 'has_more': True,
        }

        second = admin_client.get(url, {'page': 2}).data
        assert len(second['deliveries']) == 5
        assert second['pagination']['has_more'] is False

    def test_deliveries_limit_is_capped(self, admin_client, webhook):
        url = reverse('webhook-delivery-list', args=[webhook.id])

        assert admin_client.get(url, {'limit': 500}).data['pagination']['limit'] == 100
        assert admin_client.get(url, {'limit': 'abc'}).data['pagination']['limit'] == 20
        assert admin_client.get(url, {'page': 0}).data['pagination']['page'] == 1

    def test_webhook_events(self, admin_client):
        events = admin_client.get(reverse('webhook-event-list')).data['events']
        assert len(events) == 5
        assert events[0] == {'event': 'lead.created', 'description': 'Triggered when a new lead is added'}
