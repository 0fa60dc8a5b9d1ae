"""
Translation request workflow: requesting, tracking, costing and rating
translations of documents.
"""
import logging
import math
from typing import List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Avg, Sum
from django.utils import timezone

from apps.core.languages import Language
from apps.documents.models import Document, DocumentTranslationStatus
from apps.governance.audit_service import AuditAction, log_action
from .models import DocumentTranslationJob, TranslationServiceName, TranslationStatus

logger = logging.getLogger(__name__)

# USD per 1000 characters
SERVICE_RATES = {
    TranslationServiceName.DEEPL: 0.02,
    TranslationServiceName.OPENAI: 0.03,
}
DEFAULT_RATE = 0.025
CHARS_PER_BYTE = 0.5
COST_BUFFER = 1.2

CANCELLED_MESSAGE = "Cancelled by user"


def calculate_cost_cents(char_count: int, service: Optional[str] = None) -> int:
    rate = SERVICE_RATES.get(service, DEFAULT_RATE)
    return math.ceil(char_count / 1000 * rate * 100)


def estimate_translation_cost(file_size: int, service: Optional[str] = None) -> int:
    """
    Estimated cost in cents: about half a character per byte of file,
    priced per 1000 characters, plus a 20% buffer.
    """
    estimated_chars = file_size * CHARS_PER_BYTE
    rate = SERVICE_RATES.get(service, DEFAULT_RATE)
    return math.ceil(estimated_chars / 1000 * rate * 100 * COST_BUFFER)


def assess_quality(original_text: str, translated_text: str) -> float:
    """
    Heuristic quality score in [0, 1]. Translations of similar length to
    their source and with actual content score higher.
    """
    score = 0.7
    if original_text:
        ratio = len(translated_text or "") / len(original_text)
        if 0.8 <= ratio <= 1.2:
            score += 0.2
    if translated_text and translated_text.strip():
        score += 0.1
    return min(1.0, round(score, 2))


def _get_job(job_id) -> DocumentTranslationJob:
    try:
        return DocumentTranslationJob.objects.select_related('document').get(id=job_id)
    except DocumentTranslationJob.DoesNotExist:
        raise ValueError("Translation not found")


class TranslationService:
    @staticmethod
    def request_translation(
        document_id,
        target_language: str,
        requested_by,
        service: Optional[str] = None,
    ) -> DocumentTranslationJob:
        if target_language not in Language.values:
            raise ValueError(f"Unsupported language: {target_language}")
        if service and service not in TranslationServiceName.values:
            raise ValueError(f"Unsupported translation service: {service}")

        document = Document.objects.filter(id=document_id).first()
        if not document:
            raise ValueError("Document not found")

        source_language = document.effective_source_language
        if source_language == target_language:
            raise ValueError("Target language must differ from the document language")

        if DocumentTranslationJob.objects.filter(document=document, target_language=target_language).exists():
            raise ValueError("Translation already requested for this language")

        try:
            with transaction.atomic():
                job = DocumentTranslationJob.objects.create(
                    document=document,
                    source_language=source_language,
                    target_language=target_language,
                    requested_by=requested_by,
                    service_used=service or "",
                    estimated_cost_cents=estimate_translation_cost(document.file_size, service),
                )
        except IntegrityError:
            raise ValueError("Translation already requested for this language")

        Document.objects.filter(id=document.id).update(translation_status=DocumentTranslationStatus.PENDING)

        log_action(
            action=AuditAction.TRANSLATE,
            entity_type="Document",
            entity_id=document.id,
            entity_label=document.title,
            user=requested_by,
            details={"target_language": target_language, "job_id": str(job.id)},
        )
        logger.info(f"Translation requested: {document.id} -> {target_language}")
        return job

    @staticmethod
    def start_translation(job_id, service: str) -> DocumentTranslationJob:
        if service not in TranslationServiceName.values:
            raise ValueError(f"Unsupported translation service: {service}")

        job = _get_job(job_id)
        if job.status != TranslationStatus.PENDING:
            raise ValueError(f"Cannot start translation with status '{job.status}'")

        job.status = TranslationStatus.PROCESSING
        job.service_used = service
        job.progress = 10
        job.attempts += 1
        job.started_at = timezone.now()
        job.save()
        return job

    @staticmethod
    def update_progress(job_id, progress: int) -> DocumentTranslationJob:
        if not 0 <= progress <= 100:
            raise ValueError("Progress must be between 0 and 100")
        job = _get_job(job_id)
        job.progress = progress
        job.save(update_fields=['progress', 'updated_at'])
        return job

    @staticmethod
    def complete_translation(
        job_id,
        translated_content: str,
        confidence_score: Optional[float] = None,
        actual_cost_cents: Optional[int] = None,
    ) -> DocumentTranslationJob:
        job = _get_job(job_id)
        job.status = TranslationStatus.COMPLETED
        job.translated_content = translated_content
        job.confidence_score = confidence_score
        job.actual_cost_cents = (
            actual_cost_cents if actual_cost_cents is not None
            else calculate_cost_cents(len(translated_content), job.service_used)
        )
        job.progress = 100
        job.error_message = None
        job.completed_at = timezone.now()
        job.save()
        return job

    @staticmethod
    def fail_translation(job_id, error_message: str) -> DocumentTranslationJob:
        job = _get_job(job_id)
        job.status = TranslationStatus.FAILED
        job.error_message = error_message
        job.save(update_fields=['status', 'error_message', 'updated_at'])
        return job

    @staticmethod
    def cancel_translation(job_id) -> DocumentTranslationJob:
        """Only pending jobs can be cancelled. A cancelled job is never retried."""
        job = _get_job(job_id)
        if job.status != TranslationStatus.PENDING:
            raise ValueError("Can only cancel pending translations")

        job.status = TranslationStatus.FAILED
        job.error_message = CANCELLED_MESSAGE
        job.attempts = job.max_attempts
        job.save(update_fields=['status', 'error_message', 'attempts', 'updated_at'])
        return job

    @staticmethod
    def update_quality_score(job_id, quality_score: float) -> DocumentTranslationJob:
        if not 0 <= quality_score <= 1:
            raise ValueError("Quality score must be between 0 and 1")
        job = _get_job(job_id)
        job.quality_score = quality_score
        job.save(update_fields=['quality_score', 'updated_at'])
        return job

    @staticmethod
    def add_user_feedback(job_id, rating: int, feedback: Optional[str] = None) -> DocumentTranslationJob:
        if not 1 <= rating <= 5:
            raise ValueError("Rating must be between 1 and 5")
        job = _get_job(job_id)
        job.user_rating = rating
        job.user_feedback = feedback or ""
        job.save(update_fields=['user_rating', 'user_feedback', 'updated_at'])
        return job

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def get_translation(job_id) -> Optional[DocumentTranslationJob]:
        return DocumentTranslationJob.objects.select_related('document').filter(id=job_id).first()

    @staticmethod
    def get_translations_by_document(document_id) -> List[DocumentTranslationJob]:
        return list(DocumentTranslationJob.objects.filter(document_id=document_id).order_by('-created_at'))

    @staticmethod
    def get_translations_by_user(user_id) -> List[DocumentTranslationJob]:
        return list(DocumentTranslationJob.objects.filter(requested_by_id=user_id).order_by('-created_at'))

    @staticmethod
    def get_translation_queue() -> List[DocumentTranslationJob]:
        return list(
            DocumentTranslationJob.objects.select_related('document')
            .filter(status__in=[TranslationStatus.PENDING, TranslationStatus.PROCESSING])
            .order_by('created_at')
        )

    @staticmethod
    def get_translation_stats() -> dict:
        qs = DocumentTranslationJob.objects.all()
        costs = qs.filter(actual_cost_cents__isnull=False).aggregate(
            total=Sum('actual_cost_cents'),
            average=Avg('actual_cost_cents'),
        )
        return {
            'total': qs.count(),
            'pending': qs.filter(status=TranslationStatus.PENDING).count(),
            'in_progress': qs.filter(status=TranslationStatus.PROCESSING).count(),
            'completed': qs.filter(status=TranslationStatus.COMPLETED).count(),
            'failed': qs.filter(status=TranslationStatus.FAILED).count(),
            'total_cost_cents': costs['total'] or 0,
            'average_cost_cents': round(costs['average'] or 0),
        }
