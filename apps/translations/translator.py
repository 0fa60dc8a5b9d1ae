"""
DeepL translation client.

Results are cached in the Django cache for 24 hours, keyed by a digest of
the whole source text and the target language.
"""
import hashlib
import logging
from typing import Dict, List, Optional

import requests
from django.conf import settings
from django.core.cache import cache

from apps.core.languages import Language

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 24 * 60 * 60

# DeepL limits a request body to 128 KiB and 50 texts
MAX_CHUNK_CHARS = 5000
MAX_TEXTS_PER_REQUEST = 50

DEEPL_LANGUAGE_CODES = {
    Language.ENGLISH: 'EN',
    Language.FRENCH: 'FR',
    Language.ARABIC: 'AR',
}

FORMALITY_OPTIONS = ('default', 'more', 'less', 'prefer_more', 'prefer_less')


class TranslationProviderError(Exception):
    """Raised when the translation provider is unavailable or rejects a request."""


def _cache_key(text: str, target_language: str) -> str:
    digest = hashlib.sha256(text.encode('utf-8')).hexdigest()
    return f"translation:{target_language}:{digest}"


def get_cached_translation(text: str, target_language: str) -> Optional[str]:
    return cache.get(_cache_key(text, target_language))


def cache_translation(text: str, target_language: str, translated: str) -> None:
    cache.set(_cache_key(text, target_language), translated, CACHE_TTL_SECONDS)


def split_into_chunks(text: str, max_chars: int = MAX_CHUNK_CHARS) -> List[str]:
    """Split on paragraph boundaries, hard-wrapping paragraphs that are still too long."""
    chunks: List[str] = []
    current = ""
    for paragraph in text.split("\n"):
        while len(paragraph) > max_chars:
            if current:
                chunks.append(current)
                current = ""
            chunks.append(paragraph[:max_chars])
            paragraph = paragraph[max_chars:]
        candidate = f"{current}\n{paragraph}" if current else paragraph
        if len(candidate) > max_chars:
            chunks.append(current)
            current = paragraph
        else:
            current = candidate
    if current or not chunks:
        chunks.append(current)
    return chunks


class DeepLTranslator:
    """Thin wrapper over the DeepL v2 REST API."""

    def __init__(self, api_key: Optional[str] = None, api_url: Optional[str] = None, timeout: Optional[int] = None):
        self.api_key = api_key if api_key is not None else settings.DEEPL_API_KEY
        self.api_url = api_url or settings.DEEPL_API_URL
        self.timeout = timeout or getattr(settings, 'HTTP_TIMEOUT_SECONDS', 30)
        self.session = requests.Session()

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {
            'Authorization': f'DeepL-Auth-Key {self.api_key}',
            'Content-Type': 'application/json',
        }

    def translate_batch(
        self,
        texts: List[str],
        source_language: Optional[str],
        target_language: str,
        formality: str = 'default',
        context: Optional[str] = None,
    ) -> List[str]:
        if not self.is_configured:
            raise TranslationProviderError("DeepL API key is not configured")
        if target_language not in DEEPL_LANGUAGE_CODES:
            raise TranslationProviderError(f"Unsupported target language: {target_language}")
        if formality not in FORMALITY_OPTIONS:
            raise ValueError(f"Invalid formality: {formality}")

        body = {
            'text': texts,
            'target_lang': DEEPL_LANGUAGE_CODES[target_language],
        }
        if source_language in DEEPL_LANGUAGE_CODES:
            body['source_lang'] = DEEPL_LANGUAGE_CODES[source_language]
        if formality != 'default':
            body['formality'] = formality
        if context:
            body['context'] = context

        try:
            response = self.session.post(self.api_url, json=body, headers=self._headers(), timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise TranslationProviderError(f"DeepL request failed: {e}") from e

        if response.status_code != 200:
            raise TranslationProviderError(f"DeepL API error: {response.status_code} {response.text[:200]}")

        try:
            translations = response.json()['translations']
        except (ValueError, KeyError) as e:
            raise TranslationProviderError("Malformed DeepL response") from e

        if len(translations) != len(texts):
            raise TranslationProviderError("DeepL returned an unexpected number of translations")
        return [t['text'] for t in translations]

    def get_usage(self) -> Dict[str, int]:
        """Character usage for the current billing period."""
        if not self.is_configured:
            raise TranslationProviderError("DeepL API key is not configured")
        usage_url = self.api_url.rsplit('/', 1)[0] + '/usage'
        try:
            response = self.session.get(usage_url, headers=self._headers(), timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            raise TranslationProviderError(f"DeepL usage request failed: {e}") from e
        return {
            'character_count': int(data.get('character_count', 0)),
            'character_limit': int(data.get('character_limit', 0)),
        }


def get_translator() -> DeepLTranslator:
    return DeepLTranslator()


def translate_text(
    text: str,
    source_language: Optional[str],
    target_language: str,
    formality: str = 'default',
    context: Optional[str] = None,
    translator: Optional[DeepLTranslator] = None,
) -> str:
    """
    Translate text, serving repeated requests from the cache.

    Raises:
        TranslationProviderError: provider unavailable or request rejected
    """
    if not text or not text.strip():
        return text
    if source_language == target_language:
        return text

    cached = get_cached_translation(text, target_language)
    if cached is not None:
        return cached

    translator = translator or get_translator()
    chunks = split_into_chunks(text)
    translated: List[str] = []
    for start in range(0, len(chunks), MAX_TEXTS_PER_REQUEST):
        batch = chunks[start:start + MAX_TEXTS_PER_REQUEST]
        translated.extend(translator.translate_batch(batch, source_language, target_language, formality, context))

    result = "\n".join(translated)
    cache_translation(text, target_language, result)
    return result


def get_translation_service_status() -> Dict[str, object]:
    translator = get_translator()
    status: Dict[str, object] = {
        'provider': 'deepl',
        'configured': translator.is_configured,
        'available': False,
    }
    if not translator.is_configured:
        return status
    try:
        status.update(translator.get_usage())
        status['available'] = True
    except TranslationProviderError as e:
        logger.warning(f"DeepL status check failed: {e}")
        status['error'] = str(e)
    return status
