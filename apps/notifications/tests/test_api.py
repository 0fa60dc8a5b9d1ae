"""Integration tests for the WhatsApp endpoints."""
import hashlib
import hmac
import json
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import Client, TestCase, override_settings

from apps.identity.models import UserRole
from apps.notifications.models import ContactStatus, MessageDirection, WhatsAppContact, WhatsAppMessage

User = get_user_model()


@override_settings(
    WHATSAPP_WEBHOOK_VERIFY_TOKEN='verify-me',
    WHATSAPP_WEBHOOK_SECRET='secret',
    WHATSAPP_PHONE_NUMBER_ID='',
    WHATSAPP_ACCESS_TOKEN='',
)
class WebhookAPITest(TestCase):

    def setUp(self):
        self.client = Client()

    def test_verification_echoes_challenge(self):
        response = self.client.get('/api/whatsapp/webhook', {
            'hub.mode': 'subscribe', 'hub.verify_token': 'verify-me', 'hub.challenge': '424242',
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b'424242')

    def test_verification_rejects_wrong_token(self):
        response = self.client.get('/api/whatsapp/webhook', {
            'hub.mode': 'subscribe', 'hub.verify_token': 'nope', 'hub.challenge': '1',
        })
        self.assertEqual(response.status_code, 403)

    def test_post_requires_valid_signature(self):
        response = self.client.post(
            '/api/whatsapp/webhook', data='{}', content_type='application/json',
            HTTP_X_HUB_SIGNATURE_256='sha256=bad',
        )
        self.assertEqual(response.status_code, 401)

    def test_signed_post_logs_inbound_message(self):
        body = json.dumps({'entry': [{'changes': [{'field': 'messages', 'value': {'messages': [
            {'from': '212611111111', 'id': 'wamid.in', 'type': 'text', 'text': {'body': 'hi'}, 'timestamp': '0'},
        ]}}]}]}).encode()
        signature = 'sha256=' + hmac.new(b'secret', body, hashlib.sha256).hexdigest()

        response = self.client.post(
            '/api/whatsapp/webhook', data=body, content_type='application/json',
            HTTP_X_HUB_SIGNATURE_256=signature,
        )

        self.assertEqual(response.status_code, 200)
        self.assertTrue(WhatsAppMessage.objects.filter(
            direction=MessageDirection.INBOUND, whatsapp_id='wamid.in',
        ).exists())


class AdminAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(
            username='admin@test.com', password='testpass123', role=UserRole.ADMIN,
        )
        self.owner = User.objects.create_user(
            username='owner@test.com', password='testpass123', role=UserRole.OWNER,
            phone_number='+212600000001',
        )

    def _post(self, url, payload):
        return self.client.post(url, data=json.dumps(payload), content_type='application/json')

    def test_owner_cannot_broadcast(self):
        self.client.force_login(self.owner)
        response = self._post('/api/whatsapp/broadcast', {'message': 'Hi'})
        self.assertEqual(response.status_code, 403)

    @patch('apps.notifications.services.get_whatsapp_client')
    def test_admin_broadcast(self, mock_client):
        mock_client.return_value.send_text_message.return_value = 'wamid.1'
        self.client.force_login(self.admin)

        response = self._post('/api/whatsapp/broadcast', {'message': 'Hi', 'phone_numbers': ['212611111111']})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['results'], ['212611111111:wamid.1'])

    def test_broadcast_with_invalid_number(self):
        self.client.force_login(self.admin)
        response = self._post('/api/whatsapp/broadcast', {'message': 'Hi', 'phone_numbers': ['12']})
        self.assertEqual(response.status_code, 400)

    def test_owner_opts_in_own_number(self):
        self.client.force_login(self.owner)

        response = self._post('/api/whatsapp/contacts/opt-in', {'categories': ['polls']})

        self.assertEqual(response.status_code, 200)
        contact = WhatsAppContact.objects.get(phone_number='212600000001')
        self.assertEqual(contact.user, self.owner)
        self.assertEqual(contact.status, ContactStatus.OPTED_IN)

    def test_owner_cannot_manage_other_numbers(self):
        self.client.force_login(self.owner)
        response = self._post('/api/whatsapp/contacts/opt-out', {'phone_number': '212699999999'})
        self.assertEqual(response.status_code, 403)

    def test_stats_and_history(self):
        WhatsAppMessage.objects.create(
            phone_number='212611111111', direction=MessageDirection.INBOUND, status='received', content='hi',
        )
        self.client.force_login(self.admin)

        self.assertEqual(self.client.get('/api/whatsapp/stats').json()['received'], 1)
        history = self.client.get('/api/whatsapp/messages?direction=inbound').json()
        self.assertEqual(history['total'], 1)
        self.assertEqual(history['items'][0]['content'], 'hi')
