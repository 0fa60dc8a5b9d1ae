"""
Translation job queue.

Jobs move pending -> processing -> completed | failed. A job is claimed
with a conditional UPDATE, so two workers polling the same table never
process the same job twice.
"""
import logging
from typing import Iterable, List, Optional

from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.db.models import F
from django.utils import timezone

from apps.core.languages import ALL_LANGUAGES, get_language_label
from apps.documents.file_validation import sanitize_filename
from apps.documents.models import (
    Document,
    DocumentTranslationStatus,
    TranslationQuality,
)
from .extraction import ExtractionError, extract_text, is_content_extractable
from .models import DocumentTranslationJob, TranslationServiceName, TranslationStatus
from .services import assess_quality, calculate_cost_cents
from .translator import translate_text

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5


class TranslationQueueService:
    @staticmethod
    def create_translation_jobs(
        document: Document,
        source_language: str,
        target_languages: Optional[Iterable[str]] = None,
        requested_by=None,
    ) -> List[DocumentTranslationJob]:
        """
        Queue one job per target language, skipping the source language
        and languages that already have a job for this document.
        """
        targets = [lang for lang in (target_languages or ALL_LANGUAGES) if lang != source_language]
        created = []

        for target_language in targets:
            job, was_created = DocumentTranslationJob.objects.get_or_create(
                document=document,
                target_language=target_language,
                defaults={
                    'source_language': source_language,
                    'requested_by': requested_by,
                },
            )
            if was_created:
                created.append(job)
                logger.info(f"Created translation job: {document.id} -> {target_language}")

        return created

    @staticmethod
    def get_pending_jobs(batch_size: int = DEFAULT_BATCH_SIZE) -> List[DocumentTranslationJob]:
        """Oldest pending jobs that still have attempts left."""
        return list(
            DocumentTranslationJob.objects.filter(
                status=TranslationStatus.PENDING,
                attempts__lt=F('max_attempts'),
            ).order_by('created_at')[:batch_size]
        )

    @staticmethod
    def process_pending_jobs(batch_size: int = DEFAULT_BATCH_SIZE) -> int:
        """Process up to batch_size pending jobs. Returns how many completed."""
        completed = 0
        for job in TranslationQueueService.get_pending_jobs(batch_size):
            if TranslationQueueService.process_translation_job(job.id):
                completed += 1
        return completed

    @staticmethod
    def claim_job(job_id) -> bool:
        """Atomically move a pending job to processing."""
        claimed = DocumentTranslationJob.objects.filter(
            id=job_id,
            status=TranslationStatus.PENDING,
            attempts__lt=F('max_attempts'),
        ).update(
            status=TranslationStatus.PROCESSING,
            started_at=timezone.now(),
            attempts=F('attempts') + 1,
            progress=10,
            error_message=None,
            updated_at=timezone.now(),
        )
        return claimed == 1

    @staticmethod
    def process_translation_job(job_id) -> bool:
        """
        Run one job to completion. Failures are recorded on the job rather
        than raised. Returns True when the job completed.
        """
        if not TranslationQueueService.claim_job(job_id):
            logger.warning(f"Translation job {job_id} not found or not claimable")
            return False

        job = DocumentTranslationJob.objects.select_related('document').get(id=job_id)
        document = job.document

        try:
            if is_content_extractable(document.file_type):
                try:
                    translated = _create_full_translation(job)
                except ExtractionError as e:
                    logger.warning(f"Falling back to metadata translation for {document.id}: {e}")
                    translated = _create_metadata_only_translation(job)
            else:
                translated = _create_metadata_only_translation(job)

            job.status = TranslationStatus.COMPLETED
            job.translated_document = translated
            # The queue only runs DeepL, whatever service was requested
            job.service_used = TranslationServiceName.DEEPL
            job.progress = 100
            job.completed_at = timezone.now()
            job.save()
            logger.info(f"Translation job completed: {job_id}")
            return True

        except Exception as e:
            logger.exception(f"Translation job failed: {job_id}")
            job.status = TranslationStatus.FAILED
            job.error_message = str(e) or e.__class__.__name__
            job.save(update_fields=['status', 'error_message', 'updated_at'])
            return False

        finally:
            refresh_document_translation_status(document)

    @staticmethod
    def retry_failed_jobs() -> int:
        """Failed jobs with attempts left go back to pending."""
        count = DocumentTranslationJob.objects.filter(
            status=TranslationStatus.FAILED,
            attempts__lt=F('max_attempts'),
        ).update(
            status=TranslationStatus.PENDING,
            error_message=None,
            updated_at=timezone.now(),
        )
        logger.info(f"Queued {count} failed jobs for retry")
        return count

    @staticmethod
    def get_translation_stats() -> dict:
        qs = DocumentTranslationJob.objects.all()
        return {
            'pending': qs.filter(status=TranslationStatus.PENDING).count(),
            'processing': qs.filter(status=TranslationStatus.PROCESSING).count(),
            'completed': qs.filter(status=TranslationStatus.COMPLETED).count(),
            'failed': qs.filter(status=TranslationStatus.FAILED).count(),
            'total': qs.count(),
        }


# =============================================================================
# Job execution helpers
# =============================================================================

def _existing_translation(document: Document, language: str) -> Optional[Document]:
    return Document.objects.filter(original_document=document, language=language).first()


def _translate_metadata(document: Document, source: str, target: str):
    title = translate_text(document.title, source, target)
    description = translate_text(document.description, source, target) if document.description else ""
    return title, description


def _create_full_translation(job: DocumentTranslationJob) -> Document:
    document = job.document
    source, target = document.effective_source_language, job.target_language

    existing = _existing_translation(document, target)
    if existing:
        return existing

    with default_storage.open(document.file.name, 'rb') as handle:
        original_text = extract_text(handle.read(), document.file_type)

    translated_text = translate_text(original_text, source, target)
    job.progress = 70
    job.save(update_fields=['progress', 'updated_at'])

    title, description = _translate_metadata(document, source, target)
    content = translated_text.encode('utf-8')

    base_name = (document.file_name or document.file.name.rsplit('/', 1)[-1]).rsplit('.', 1)[0]
    path = f"documents/{document.category}/{target}/translations/{document.id}_{sanitize_filename(base_name)}.txt"
    saved_path = default_storage.save(path, ContentFile(content))

    job.translated_content = translated_text
    job.quality_score = assess_quality(original_text, translated_text)
    job.actual_cost_cents = calculate_cost_cents(len(original_text), TranslationServiceName.DEEPL)

    return Document.objects.create(
        title=f"{title} ({get_language_label(target)})",
        description=description or f"Translated from {get_language_label(source)}",
        file=saved_path,
        file_name=f"{base_name}.txt",
        file_size=len(content),
        file_type='text/plain',
        category=document.category,
        language=target,
        source_language=source,
        translation_quality=TranslationQuality.MACHINE,
        translation_status=DocumentTranslationStatus.COMPLETED,
        content_extractable=True,
        original_document=document,
        is_translation=True,
        is_published=document.is_published,
        created_by=document.created_by,
    )


def _create_metadata_only_translation(job: DocumentTranslationJob) -> Document:
    """Same file, translated title and description."""
    document = job.document
    source, target = document.effective_source_language, job.target_language

    existing = _existing_translation(document, target)
    if existing:
        return existing

    title, description = _translate_metadata(document, source, target)
    source_label = get_language_label(source)

    if description:
        description = f"{description} [{source_label} original]"
    else:
        description = f"[Original document in {source_label}]"

    job.actual_cost_cents = calculate_cost_cents(
        len(document.title) + len(document.description or ""),
        TranslationServiceName.DEEPL,
    )

    return Document.objects.create(
        title=f"{title} ({get_language_label(target)})",
        description=description,
        file=document.file.name,
        file_name=document.file_name,
        file_size=document.file_size,
        file_type=document.file_type,
        category=document.category,
        language=target,
        source_language=source,
        translation_quality=TranslationQuality.MACHINE,
        translation_status=DocumentTranslationStatus.COMPLETED,
        content_extractable=False,
        original_document=document,
        is_translation=True,
        is_published=document.is_published,
        created_by=document.created_by,
    )


def refresh_document_translation_status(document: Document) -> str:
    """Roll job states up onto the original document."""
    statuses = set(
        DocumentTranslationJob.objects.filter(document=document).values_list('status', flat=True)
    )
    if not statuses:
        status = DocumentTranslationStatus.NOT_REQUESTED
    elif TranslationStatus.PROCESSING in statuses:
        status = DocumentTranslationStatus.PROCESSING
    elif TranslationStatus.PENDING in statuses:
        status = DocumentTranslationStatus.PENDING
    elif TranslationStatus.FAILED in statuses:
        status = DocumentTranslationStatus.FAILED
    else:
        status = DocumentTranslationStatus.COMPLETED

    Document.objects.filter(id=document.id).update(translation_status=status)
    return status
