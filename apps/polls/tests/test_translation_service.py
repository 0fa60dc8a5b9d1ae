from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase

from apps.identity.models import UserRole
from apps.polls import services
from apps.polls.models import PollTranslation
from apps.polls.translation_service import PollTranslationService
from apps.translations.translator import TranslationProviderError

User = get_user_model()


class PollTranslationServiceTest(TestCase):

    def setUp(self):
        self.editor = User.objects.create_user(
            username='editor@test.com', password='testpass123', role=UserRole.CONTENT_EDITOR,
        )
        self.poll = services.create_poll(
            question='Faut-il changer le gardien ?',
            description='Vote du comité',
            options=['Oui', 'Non'],
            created_by=self.editor,
        )

    def test_duplicate_language_rejected(self):
        PollTranslationService.create_translation(self.poll.id, 'english', 'Change the caretaker?')
        with self.assertRaisesMessage(ValueError, 'Translation already exists for this language'):
            PollTranslationService.create_translation(self.poll.id, 'english', 'Again?')

    def test_unknown_poll(self):
        with self.assertRaisesMessage(ValueError, 'Poll not found'):
            PollTranslationService.create_translation(
                '00000000-0000-0000-0000-000000000000', 'english', 'Question?',
            )

    def test_localized_description_falls_back(self):
        PollTranslationService.create_translation(self.poll.id, 'english', 'Change the caretaker?')
        localized = PollTranslationService.get_localized_poll(self.poll.id, 'english')

        self.assertEqual(localized.question, 'Change the caretaker?')
        self.assertEqual(localized.description, 'Vote du comité')
        self.assertEqual(len(localized.options), 2)

    @patch('apps.polls.translation_service.translate_text')
    def test_request_translations_reports_each_language(self, mock_translate):
        PollTranslationService.create_translation(self.poll.id, 'arabic', 'هل يجب تغيير الحارس؟')

        def fake_translate(text, source, target, **kwargs):
            if target == 'english':
                return f'[en] {text}'
            raise TranslationProviderError('quota exceeded')

        mock_translate.side_effect = fake_translate
        results = PollTranslationService.request_translations(
            self.poll.id, ['english', 'arabic', 'french', 'english'],
        )

        statuses = {r['language']: r['status'] for r in results}
        self.assertEqual(statuses, {'english': 'created', 'arabic': 'already_exists', 'french': 'failed'})
        self.assertEqual(
            PollTranslation.objects.get(poll=self.poll, language='english').question,
            '[en] Faut-il changer le gardien ?',
        )

    def test_update_and_delete(self):
        PollTranslationService.create_translation(self.poll.id, 'english', 'Change?')
        updated = PollTranslationService.update_translation(self.poll.id, 'english', question='Replace the caretaker?')
        self.assertEqual(updated.question, 'Replace the caretaker?')

        self.assertTrue(PollTranslationService.delete_translation(self.poll.id, 'english'))
        self.assertFalse(PollTranslationService.delete_translation(self.poll.id, 'english'))
