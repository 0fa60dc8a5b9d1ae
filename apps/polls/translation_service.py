"""
Poll translations: manual entries per language, machine translation through
the shared DeepL client, and localized reads with fallback to the original.
"""
import logging
from typing import Dict, List, Optional

from django.db import IntegrityError, transaction

from apps.core.languages import ALL_LANGUAGES, DEFAULT_LANGUAGE
from apps.governance.audit_service import AuditAction, log_action
from apps.translations.translator import TranslationProviderError, translate_text
from .dtos import LocalizedPollDTO
from .models import Poll, PollTranslation
from .services import option_dtos

logger = logging.getLogger(__name__)


def _validate_language(language: str) -> None:
    if language not in ALL_LANGUAGES:
        raise ValueError(f"Unsupported language: {language}")


class PollTranslationService:

    @staticmethod
    def get_translations(poll_id) -> List[PollTranslation]:
        return list(PollTranslation.objects.filter(poll_id=poll_id).order_by('language'))

    @staticmethod
    def get_translation(poll_id, language: str) -> Optional[PollTranslation]:
        return PollTranslation.objects.filter(poll_id=poll_id, language=language).first()

    @staticmethod
    @transaction.atomic
    def create_translation(poll_id, language: str, question: str, description: str = '', user=None) -> PollTranslation:
        _validate_language(language)
        question = (question or '').strip()
        if not question:
            raise ValueError("Translated question is required")

        poll = Poll.objects.filter(id=poll_id).first()
        if not poll:
            raise ValueError("Poll not found")
        if PollTranslation.objects.filter(poll=poll, language=language).exists():
            raise ValueError("Translation already exists for this language")

        try:
            with transaction.atomic():
                translation = PollTranslation.objects.create(
                    poll=poll,
                    language=language,
                    question=question,
                    description=description or '',
                )
        except IntegrityError:
            raise ValueError("Translation already exists for this language")

        log_action(
            action=AuditAction.TRANSLATE,
            entity_type="Poll",
            entity_id=poll.id,
            entity_label=poll.question,
            user=user,
            details={"language": language},
        )
        return translation

    @staticmethod
    def update_translation(poll_id, language: str, question: Optional[str] = None,
                           description: Optional[str] = None) -> PollTranslation:
        translation = PollTranslationService.get_translation(poll_id, language)
        if not translation:
            raise ValueError("Translation not found")

        if question is not None:
            question = question.strip()
            if not question:
                raise ValueError("Translated question is required")
            translation.question = question
        if description is not None:
            translation.description = description
        translation.save()
        return translation

    @staticmethod
    def delete_translation(poll_id, language: str) -> bool:
        deleted, _ = PollTranslation.objects.filter(poll_id=poll_id, language=language).delete()
        return deleted > 0

    @staticmethod
    def get_localized_poll(poll_id, language: str) -> Optional[LocalizedPollDTO]:
        """
        The poll in the requested language. Without a translation the
        original text is returned, labelled with the default language.
        """
        poll = Poll.objects.filter(id=poll_id).first()
        if not poll:
            return None

        translation = PollTranslationService.get_translation(poll_id, language)
        if translation:
            question = translation.question
            description = translation.description or poll.description
            resolved_language = language
        else:
            question = poll.question
            description = poll.description
            resolved_language = DEFAULT_LANGUAGE.value

        return LocalizedPollDTO(
            id=poll.id,
            question=question,
            description=description,
            poll_type=poll.poll_type,
            status=poll.status,
            is_anonymous=poll.is_anonymous,
            end_date=poll.end_date,
            created_at=poll.created_at,
            language=resolved_language,
            is_translated=translation is not None,
            options=option_dtos(poll),
        )

    @staticmethod
    def request_translations(poll_id, target_languages: List[str], user=None) -> List[Dict[str, object]]:
        """
        Machine-translate question and description into each language.

        Returns one result per language with status created, already_exists
        or failed. A failure for one language does not stop the others.
        """
        poll = Poll.objects.filter(id=poll_id).first()
        if not poll:
            raise ValueError("Poll not found")

        results = []
        for language in dict.fromkeys(target_languages):
            if PollTranslationService.get_translation(poll_id, language):
                results.append({'language': language, 'status': 'already_exists'})
                continue

            try:
                _validate_language(language)
                question = translate_text(poll.question, None, language, context="Community poll question")
                description = translate_text(poll.description, None, language) if poll.description else ''
                translation = PollTranslationService.create_translation(
                    poll_id, language, question, description, user=user,
                )
            except (TranslationProviderError, ValueError) as e:
                logger.warning(f"Poll {poll_id} translation to {language} failed: {e}")
                results.append({'language': language, 'status': 'failed', 'error': str(e)})
                continue

            results.append({'language': language, 'status': 'created', 'translation': translation})

        return results
