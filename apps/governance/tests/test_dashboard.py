from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import Client, TestCase
from django.utils import timezone

from apps.documents.models import Document
from apps.governance.services import get_dashboard_stats
from apps.identity.models import OwnerRegistration, UserRole
from apps.notifications.models import MessageDirection, MessageStatus, WhatsAppMessage
from apps.polls.models import Poll, PollStatus

User = get_user_model()


class DashboardTest(TestCase):

    def setUp(self):
        self.admin = User.objects.create_user(username='admin', password='pw', role=UserRole.ADMIN)
        self.owner = User.objects.create_user(
            username='owner', password='pw', role=UserRole.OWNER, is_verified_owner=True,
            last_login=timezone.now() - timedelta(days=3),
        )
        User.objects.filter(id=self.admin.id).update(last_login=timezone.now())
        OwnerRegistration.objects.create(
            name='N', email='n@test.com', building_number='A', apartment_number='1', phone_number='1',
        )
        original = Document.objects.create(title='Budget', file='a.pdf', file_type='application/pdf')
        Document.objects.create(
            title='Budget (EN)', file='a.pdf', file_type='application/pdf', language='english',
            original_document=original, is_translation=True, download_count=4,
        )
        Poll.objects.create(question='Q?', status=PollStatus.PUBLISHED, created_by=self.admin)
        Poll.objects.create(question='Draft?', created_by=self.admin)
        WhatsAppMessage.objects.create(
            phone_number='1', direction=MessageDirection.OUTBOUND, status=MessageStatus.DELIVERED,
        )
        WhatsAppMessage.objects.create(
            phone_number='1', direction=MessageDirection.OUTBOUND, status=MessageStatus.FAILED,
        )

    def test_counters(self):
        stats = get_dashboard_stats()

        self.assertEqual(stats['total_users'], 2)
        self.assertEqual(stats['active_users'], 1)
        self.assertEqual(stats['verified_owners'], 1)
        self.assertEqual(stats['pending_registrations'], 1)
        self.assertEqual(stats['total_documents'], 1)
        self.assertEqual(stats['total_downloads'], 4)
        self.assertEqual(stats['total_polls'], 2)
        self.assertEqual(stats['active_polls'], 1)
        self.assertEqual(stats['messages_sent'], 1)
        self.assertEqual(stats['messages_failed'], 1)
        self.assertEqual(stats['translations']['total'], 0)

    def test_endpoint_permissions(self):
        client = Client()
        client.force_login(self.owner)
        self.assertEqual(client.get('/api/governance/dashboard/stats').status_code, 403)

        client.force_login(self.admin)
        response = client.get('/api/governance/dashboard/stats')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['pending_registrations'], 1)
