"""Tests for the DeepL client, chunking and the translation cache."""
from unittest.mock import MagicMock, patch

import requests
from django.core.cache import cache
from django.test import TestCase, override_settings

from apps.translations.translator import (
    DeepLTranslator,
    TranslationProviderError,
    get_translation_service_status,
    split_into_chunks,
    translate_text,
)


def deepl_response(texts, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = {'translations': [{'text': t} for t in texts]}
    response.text = 'error'
    return response


class ChunkingTest(TestCase):

    def test_short_text_is_one_chunk(self):
        self.assertEqual(split_into_chunks('Bonjour\nMerci'), ['Bonjour\nMerci'])

    def test_splits_on_paragraphs(self):
        text = '\n'.join(['a' * 30] * 4)
        chunks = split_into_chunks(text, max_chars=70)
        self.assertEqual(len(chunks), 2)
        self.assertTrue(all(len(c) <= 70 for c in chunks))
        self.assertEqual('\n'.join(chunks), text)

    def test_hard_wraps_long_paragraph(self):
        chunks = split_into_chunks('x' * 250, max_chars=100)
        self.assertEqual([len(c) for c in chunks], [100, 100, 50])


@override_settings(DEEPL_API_KEY='test-key', DEEPL_API_URL='https://api-free.deepl.com/v2/translate')
class DeepLTranslatorTest(TestCase):

    def setUp(self):
        cache.clear()
        self.translator = DeepLTranslator()
        self.translator.session = MagicMock()

    def test_translate_batch_sends_deepl_codes(self):
        self.translator.session.post.return_value = deepl_response(['Hello'])

        result = self.translator.translate_batch(['Bonjour'], 'french', 'english', formality='more')

        self.assertEqual(result, ['Hello'])
        _, kwargs = self.translator.session.post.call_args
        self.assertEqual(kwargs['json']['target_lang'], 'EN')
        self.assertEqual(kwargs['json']['source_lang'], 'FR')
        self.assertEqual(kwargs['json']['formality'], 'more')
        self.assertEqual(kwargs['headers']['Authorization'], 'DeepL-Auth-Key test-key')

    def test_http_error_raises_provider_error(self):
        self.translator.session.post.return_value = deepl_response([], status_code=456)
        with self.assertRaises(TranslationProviderError):
            self.translator.translate_batch(['Bonjour'], 'french', 'english')

    def test_network_error_raises_provider_error(self):
        self.translator.session.post.side_effect = requests.exceptions.ConnectionError('down')
        with self.assertRaises(TranslationProviderError):
            self.translator.translate_batch(['Bonjour'], 'french', 'english')

    def test_translate_text_uses_cache(self):
        self.translator.session.post.return_value = deepl_response(['Hello'])

        first = translate_text('Bonjour', 'french', 'english', translator=self.translator)
        second = translate_text('Bonjour', 'french', 'english', translator=self.translator)

        self.assertEqual(first, 'Hello')
        self.assertEqual(second, 'Hello')
        self.assertEqual(self.translator.session.post.call_count, 1)

    def test_cache_tells_apart_texts_with_a_shared_letterhead(self):
        letterhead = 'Syndic Costa Beach, Résidence Costa Beach, Route côtière, Casablanca. ' * 2
        self.translator.session.post.side_effect = [deepl_response(['Meeting']), deepl_response(['Budget'])]

        first = translate_text(letterhead + 'Réunion', 'french', 'english', translator=self.translator)
        second = translate_text(letterhead + 'Budget', 'french', 'english', translator=self.translator)

        self.assertEqual(first, 'Meeting')
        self.assertEqual(second, 'Budget')
        self.assertEqual(self.translator.session.post.call_count, 2)

    def test_same_language_and_blank_text_skip_provider(self):
        self.assertEqual(translate_text('Bonjour', 'french', 'french', translator=self.translator), 'Bonjour')
        self.assertEqual(translate_text('  ', 'french', 'english', translator=self.translator), '  ')
        self.translator.session.post.assert_not_called()


class UnconfiguredTranslatorTest(TestCase):

    @override_settings(DEEPL_API_KEY='')
    def test_missing_key(self):
        with self.assertRaises(TranslationProviderError):
            DeepLTranslator().translate_batch(['Bonjour'], 'french', 'english')

    @override_settings(DEEPL_API_KEY='')
    def test_status_when_unconfigured(self):
        status = get_translation_service_status()
        self.assertFalse(status['configured'])
        self.assertFalse(status['available'])

    @override_settings(DEEPL_API_KEY='test-key')
    @patch('apps.translations.translator.DeepLTranslator.get_usage', return_value={'character_count': 10, 'character_limit': 500000})
    def test_status_with_usage(self, mock_usage):
        status = get_translation_service_status()
        self.assertTrue(status['available'])
        self.assertEqual(status['character_limit'], 500000)
