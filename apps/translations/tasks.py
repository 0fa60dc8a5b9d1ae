"""Celery tasks for Translations app."""
import logging

from celery import shared_task

from .queue_service import TranslationQueueService
from .worker import get_worker

logger = logging.getLogger(__name__)


@shared_task
def process_translation_job(job_id):
    """Process a single translation job."""
    completed = TranslationQueueService.process_translation_job(job_id)
    logger.info(f"Translation job {job_id} {'completed' if completed else 'not completed'}")
    return completed


@shared_task
def process_translation_queue():
    """Process one batch of pending translation jobs."""
    return get_worker().process_batch()


@shared_task
def recover_stalled_translations():
    return get_worker().recover_stalled_jobs()


@shared_task
def retry_failed_translations():
    return TranslationQueueService.retry_failed_jobs()
