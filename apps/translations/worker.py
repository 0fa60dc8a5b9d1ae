"""
Long-running translation worker.

Polls the job table on a fixed interval, processing a small batch each
tick. Used by the run_translation_worker management command; Celery beat
and the Lambda scheduled handlers call the same batch/recovery methods.
"""
import logging
import threading
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import close_old_connections
from django.db.models import F
from django.utils import timezone

from apps.documents.models import Document
from .models import DocumentTranslationJob, TranslationStatus
from .queue_service import TranslationQueueService, refresh_document_translation_status

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 30
DEFAULT_BATCH_SIZE = 3
DEFAULT_STALL_TIMEOUT_MINUTES = 30
STALLED_MESSAGE = "Job stalled and recovered"


class TranslationWorker:
    def __init__(
        self,
        interval_seconds: Optional[int] = None,
        batch_size: Optional[int] = None,
        stall_timeout_minutes: Optional[int] = None,
    ):
        self.interval_seconds = interval_seconds or getattr(
            settings, 'TRANSLATION_WORKER_INTERVAL_SECONDS', DEFAULT_INTERVAL_SECONDS
        )
        self.batch_size = batch_size or getattr(
            settings, 'TRANSLATION_WORKER_BATCH_SIZE', DEFAULT_BATCH_SIZE
        )
        self.stall_timeout_minutes = stall_timeout_minutes or getattr(
            settings, 'TRANSLATION_STALL_TIMEOUT_MINUTES', DEFAULT_STALL_TIMEOUT_MINUTES
        )
        self._stop_event = threading.Event()
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    def start(self, max_iterations: Optional[int] = None) -> None:
        """
        Process a batch immediately, then one batch per interval until
        stop() is called. Blocks the calling thread.
        """
        if self._running:
            logger.warning("[WORKER] Translation worker is already running")
            return

        self._running = True
        self._stop_event.clear()
        logger.info(f"[WORKER] Starting translation worker (interval={self.interval_seconds}s, batch={self.batch_size})")

        iterations = 0
        try:
            while not self._stop_event.is_set():
                self._tick()
                iterations += 1
                if max_iterations is not None and iterations >= max_iterations:
                    break
                self._stop_event.wait(self.interval_seconds)
        finally:
            self._running = False
            logger.info("[WORKER] Translation worker stopped")

    def stop(self) -> None:
        if self._running:
            logger.info("[WORKER] Stopping translation worker")
        self._stop_event.set()

    def _tick(self) -> None:
        close_old_connections()
        try:
            self.process_batch()
        except Exception:
            # A broken tick must not kill the loop
            logger.exception("[WORKER] Error while processing translation batch")
        finally:
            close_old_connections()

    def process_batch(self) -> int:
        """Process up to batch_size pending jobs. Returns how many completed."""
        jobs = TranslationQueueService.get_pending_jobs(self.batch_size)
        if not jobs:
            logger.debug("[WORKER] No pending translation jobs")
            return 0

        logger.info(f"[WORKER] Processing {len(jobs)} translation jobs")
        completed = 0
        for job in jobs:
            if self._running and self._stop_event.is_set():
                break
            if TranslationQueueService.process_translation_job(job.id):
                completed += 1
        return completed

    def process_job(self, job_id) -> bool:
        return TranslationQueueService.process_translation_job(job_id)

    def _stalled_jobs(self):
        cutoff = timezone.now() - timedelta(minutes=self.stall_timeout_minutes)
        return DocumentTranslationJob.objects.filter(
            status=TranslationStatus.PROCESSING,
            started_at__lt=cutoff,
        )

    def recover_stalled_jobs(self) -> int:
        """
        Jobs stuck in processing past the timeout go back to pending, or to
        failed when they have no attempts left.
        """
        stalled = self._stalled_jobs()
        documents = list(Document.objects.filter(
            id__in=stalled.values_list('document_id', flat=True)
        ))
        now = timezone.now()

        exhausted = stalled.filter(attempts__gte=F('max_attempts')).update(
            status=TranslationStatus.FAILED,
            error_message=STALLED_MESSAGE,
            updated_at=now,
        )
        requeued = stalled.filter(attempts__lt=F('max_attempts')).update(
            status=TranslationStatus.PENDING,
            started_at=None,
            error_message=STALLED_MESSAGE,
            updated_at=now,
        )

        for document in documents:
            refresh_document_translation_status(document)

        count = exhausted + requeued
        if count:
            logger.warning(f"[WORKER] Recovered {count} stalled translation jobs ({exhausted} out of attempts)")
        return count

    def retry_failed_jobs(self) -> int:
        return TranslationQueueService.retry_failed_jobs()

    def health_check(self) -> dict:
        stats = TranslationQueueService.get_translation_stats()
        stalled = self._stalled_jobs().count()
        return {
            'is_running': self._running,
            'healthy': stalled == 0,
            'stats': stats,
            'stalled_jobs': stalled,
            'interval_seconds': self.interval_seconds,
            'batch_size': self.batch_size,
        }


_worker: Optional[TranslationWorker] = None


def get_worker() -> TranslationWorker:
    """Process-wide worker instance."""
    global _worker
    if _worker is None:
        _worker = TranslationWorker()
    return _worker
