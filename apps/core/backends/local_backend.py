"""
Local Task Backend - Synchronous execution for development.

This backend executes tasks immediately in the same process.
No Redis, SQS, or external dependencies required.

Usage:
    Set TASK_BACKEND=local in your .env file.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskNames, TaskServiceInterface

logger = logging.getLogger(__name__)


# Task handler registry - maps task names to handler functions
TASK_HANDLERS = {}


def register_handler(task_name: str):
    """Decorator to register a task handler."""
    def decorator(func):
        TASK_HANDLERS[task_name] = func
        return func
    return decorator


class LocalTaskService(TaskServiceInterface):
    """
    Execute tasks synchronously in the same process.

    Tasks run in the request cycle and block the response, so this
    backend is meant for development and tests.
    """

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Execute task synchronously."""
        task_id = str(uuid.uuid4())

        logger.info(f"[LOCAL] Executing task {task_name} (id={task_id})")

        if delay_seconds > 0:
            logger.warning(
                f"[LOCAL] delay_seconds={delay_seconds} ignored in local backend"
            )

        handler = TASK_HANDLERS.get(task_name)
        if handler:
            try:
                result = handler(**payload)
                logger.info(f"[LOCAL] Task {task_name} completed: {result}")
            except Exception as e:
                logger.exception(f"[LOCAL] Task {task_name} failed: {e}")
                raise
        else:
            logger.warning(f"[LOCAL] No handler registered for task: {task_name}")

        return task_id


# =============================================================================
# Task Handlers
# =============================================================================

@register_handler(TaskNames.PROCESS_TRANSLATION_JOB)
def handle_process_translation_job(job_id: str):
    from apps.translations.queue_service import TranslationQueueService

    completed = TranslationQueueService.process_translation_job(job_id)
    return f"Translation job {job_id} {'completed' if completed else 'not completed'}"


@register_handler(TaskNames.PROCESS_TRANSLATION_QUEUE)
def handle_process_translation_queue():
    from apps.translations.worker import get_worker

    count = get_worker().process_batch()
    return f"Completed {count} translation jobs"


@register_handler(TaskNames.RECOVER_STALLED_TRANSLATIONS)
def handle_recover_stalled_translations():
    from apps.translations.worker import get_worker

    count = get_worker().recover_stalled_jobs()
    return f"Recovered {count} stalled jobs"


@register_handler(TaskNames.RETRY_FAILED_TRANSLATIONS)
def handle_retry_failed_translations():
    from apps.translations.queue_service import TranslationQueueService

    count = TranslationQueueService.retry_failed_jobs()
    return f"Requeued {count} failed jobs"


@register_handler(TaskNames.SEND_DOCUMENT_NOTIFICATION)
def handle_send_document_notification(document_id: str):
    from apps.notifications.services import NotificationService

    sent = NotificationService.send_document_notification(document_id)
    return f"Notified {sent} contacts about document {document_id}"


@register_handler(TaskNames.SEND_POLL_NOTIFICATION)
def handle_send_poll_notification(poll_id: str):
    from apps.notifications.services import NotificationService

    sent = NotificationService.send_poll_notification(poll_id)
    return f"Notified {sent} contacts about poll {poll_id}"
