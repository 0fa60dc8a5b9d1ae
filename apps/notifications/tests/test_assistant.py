from unittest.mock import MagicMock

from django.test import SimpleTestCase

from apps.notifications import templates
from apps.notifications.assistant import (
    DEFAULT_RESPONSE,
    WhatsAppAssistant,
    search_knowledge_base,
)
from apps.notifications.whatsapp_client import WhatsAppError


class KnowledgeBaseTest(SimpleTestCase):

    def test_matches_english_question(self):
        entry = search_knowledge_base("How do I report a broken elevator? Maintenance please")
        self.assertEqual(entry.category, 'maintenance')

    def test_matches_french_question(self):
        entry = search_knowledge_base("Comment contacter le bureau de gestion ?")
        self.assertEqual(entry.category, 'contact')
        self.assertEqual(entry.language, 'fr')

    def test_no_match_below_threshold(self):
        self.assertIsNone(search_knowledge_base("ok"))
        self.assertIsNone(search_knowledge_base(""))


class AssistantTest(SimpleTestCase):

    def setUp(self):
        self.client = MagicMock()
        self.assistant = WhatsAppAssistant(self.client)

    def test_reply_wraps_answer(self):
        reply = self.assistant.handle_incoming_message('212600000000', 'What are the building hours?')

        self.assertIn('Building Hours', reply)
        self.assertTrue(reply.startswith('🏖️ *Costa Beach Community*'))
        self.client.send_text_message.assert_called_once_with('212600000000', reply)

    def test_unknown_question_gets_default(self):
        self.assertEqual(self.assistant.answer('xyzzy'), DEFAULT_RESPONSE)

    def test_error_response_never_raises(self):
        self.client.send_text_message.side_effect = WhatsAppError('down')
        self.assistant.send_error_response('212600000000')


class TemplatesTest(SimpleTestCase):

    def test_locale_fallback(self):
        self.assertEqual(templates.qa_welcome('de'), templates.qa_welcome('en'))

    def test_poll_notification_end_date(self):
        text = templates.poll_notification('Repaint?', 'https://portal/fr/polls/1', '31/12/2026', locale='fr')
        self.assertIn('Nouveau sondage: "Repaint?"', text)
        self.assertIn('Se termine le: 31/12/2026', text)

    def test_poll_notification_without_end_date(self):
        text = templates.poll_notification('Repaint?', 'https://portal', locale='en')
        self.assertNotIn('Ends:', text)

    def test_verification_code_arabic(self):
        self.assertIn('123456', templates.verification_code('123456', 'ar'))

    def test_unknown_template(self):
        with self.assertRaises(KeyError):
            templates.render('missing')
