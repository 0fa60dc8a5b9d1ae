import json

from django.contrib.auth import get_user_model
from django.test import Client, TestCase

from apps.governance import settings_service
from apps.governance.models import AuditLog, SystemSetting
from apps.identity.models import UserRole

User = get_user_model()


class SettingsServiceTest(TestCase):

    def test_defaults(self):
        values = settings_service.get_settings()
        self.assertEqual(values['default_language'], 'french')
        self.assertEqual(values['max_file_upload_size_mb'], 10)
        self.assertTrue(settings_service.get_setting('whatsapp_notifications_enabled'))

    def test_update_persists_only_changes(self):
        values = settings_service.update_settings({'site_name': 'Costa Beach'})
        self.assertEqual(values['site_name'], 'Costa Beach')
        self.assertEqual(list(SystemSetting.objects.values_list('key', flat=True)), ['site_name'])

    def test_unknown_key(self):
        with self.assertRaisesMessage(ValueError, 'Unknown settings: colour'):
            settings_service.update_settings({'colour': 'blue'})

    def test_type_and_range_validation(self):
        with self.assertRaises(ValueError):
            settings_service.update_settings({'maintenance_mode': 'yes'})
        with self.assertRaises(ValueError):
            settings_service.update_settings({'session_timeout_minutes': 0})
        self.assertFalse(SystemSetting.objects.exists())

    def test_default_language_must_be_allowed(self):
        with self.assertRaisesMessage(ValueError, 'Default language must be one of the allowed languages'):
            settings_service.update_settings({'allowed_languages': ['english', 'arabic']})

        values = settings_service.update_settings({
            'allowed_languages': ['english', 'arabic'],
            'default_language': 'english',
        })
        self.assertEqual(values['default_language'], 'english')

    def test_reset(self):
        settings_service.update_settings({'site_name': 'X'})
        self.assertEqual(settings_service.reset_settings()['site_name'], 'Costa Beach 3')
        self.assertEqual(settings_service.get_setting('site_name'), 'Costa Beach 3')

    def test_get_unknown_setting(self):
        with self.assertRaises(KeyError):
            settings_service.get_setting('colour')


class SettingsAPITest(TestCase):

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='pw', role=UserRole.ADMIN)
        self.editor = User.objects.create_user(username='editor', password='pw', role=UserRole.CONTENT_EDITOR)

    def _put(self, values):
        return self.client.put(
            '/api/governance/settings', data=json.dumps({'values': values}), content_type='application/json',
        )

    def test_public_settings_without_login(self):
        response = self.client.get('/api/governance/settings/public')
        self.assertEqual(response.status_code, 200)
        self.assertNotIn('session_timeout_minutes', response.json())

    def test_editor_cannot_read_settings(self):
        self.client.force_login(self.editor)
        self.assertEqual(self.client.get('/api/governance/settings').status_code, 403)

    def test_admin_update_is_audited(self):
        self.client.force_login(self.admin)

        response = self._put({'maintenance_mode': True})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.json()['maintenance_mode'])
        self.assertTrue(AuditLog.objects.filter(entity_type='Settings', action='update').exists())

    def test_invalid_update(self):
        self.client.force_login(self.admin)
        self.assertEqual(self._put({'max_file_upload_size_mb': -1}).status_code, 400)
