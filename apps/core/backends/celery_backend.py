"""
Celery Task Backend - Async execution via Celery + Redis.

Usage:
    Set TASK_BACKEND=celery in your .env file.
    Requires Redis and a Celery worker running.
"""

import uuid
import logging
from typing import Any, Dict
from apps.core.task_service import TaskNames, TaskServiceInterface

logger = logging.getLogger(__name__)


# Task name -> (Celery task path, payload key passed as the positional argument)
TASK_MAP = {
    TaskNames.PROCESS_TRANSLATION_JOB: ("apps.translations.tasks.process_translation_job", "job_id"),
    TaskNames.PROCESS_TRANSLATION_QUEUE: ("apps.translations.tasks.process_translation_queue", None),
    TaskNames.RECOVER_STALLED_TRANSLATIONS: ("apps.translations.tasks.recover_stalled_translations", None),
    TaskNames.RETRY_FAILED_TRANSLATIONS: ("apps.translations.tasks.retry_failed_translations", None),
    TaskNames.SEND_DOCUMENT_NOTIFICATION: ("apps.notifications.tasks.send_document_notification", "document_id"),
    TaskNames.SEND_POLL_NOTIFICATION: ("apps.notifications.tasks.send_poll_notification", "poll_id"),
}


def _get_celery_task(task_name: str):
    """Get the Celery task function for a task name."""
    entry = TASK_MAP.get(task_name)
    if not entry:
        raise ValueError(f"No Celery task mapped for: {task_name}")

    from celery import current_app
    return current_app.tasks.get(entry[0])


class CeleryTaskService(TaskServiceInterface):
    """Execute tasks via Celery + Redis."""

    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """Queue task via Celery."""
        task_id = str(uuid.uuid4())

        logger.info(f"[CELERY] Queueing task {task_name} (id={task_id})")

        task = _get_celery_task(task_name)

        if task is None:
            logger.error(f"[CELERY] Task not found: {task_name}")
            raise ValueError(f"Celery task not found: {task_name}")

        arg_key = TASK_MAP[task_name][1]
        args = [payload.get(arg_key)] if arg_key else []

        if delay_seconds > 0:
            task.apply_async(args=args, countdown=delay_seconds, task_id=task_id)
        else:
            task.apply_async(args=args, task_id=task_id)

        return task_id
