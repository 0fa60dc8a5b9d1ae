"""
TaskService - Abstraction layer for background task execution.

The backend is chosen by the TASK_BACKEND setting.

Usage:
    from apps.core.task_service import TaskService

    # Translate one queued document job
    TaskService.process_translation_job(job_id=uuid)

    # Tell opted-in owners about a new document
    TaskService.send_document_notification(document_id=uuid)

Environment Configuration:
    TASK_BACKEND=local   # Sync execution (development, tests)
    TASK_BACKEND=lambda  # AWS Lambda + SQS (production)
    TASK_BACKEND=celery  # Celery + Redis
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict
from uuid import UUID

from django.conf import settings

logger = logging.getLogger(__name__)


class TaskNames:
    PROCESS_TRANSLATION_JOB = "process_translation_job"
    PROCESS_TRANSLATION_QUEUE = "process_translation_queue"
    RECOVER_STALLED_TRANSLATIONS = "recover_stalled_translations"
    RETRY_FAILED_TRANSLATIONS = "retry_failed_translations"
    SEND_DOCUMENT_NOTIFICATION = "send_document_notification"
    SEND_POLL_NOTIFICATION = "send_poll_notification"


class TaskServiceInterface(ABC):
    """
    Abstract interface for background task execution.

    Implementations:
    - LocalTaskService: Sync execution for development/testing
    - LambdaTaskService: AWS Lambda + SQS for production
    - CeleryTaskService: Celery + Redis
    """

    @abstractmethod
    def send_task(
        self,
        task_name: str,
        payload: Dict[str, Any],
        delay_seconds: int = 0,
    ) -> str:
        """
        Queue a task for execution.

        Args:
            task_name: Identifier for the task handler
            payload: Keyword arguments for the task
            delay_seconds: Delay before execution (0 = immediate)

        Returns:
            Task ID for tracking
        """
        pass


def _get_backend() -> TaskServiceInterface:
    """Get the configured task backend based on the TASK_BACKEND setting."""
    backend = getattr(settings, 'TASK_BACKEND', 'local')

    if backend == 'local':
        from apps.core.backends.local_backend import LocalTaskService
        return LocalTaskService()
    elif backend == 'lambda':
        from apps.core.backends.lambda_backend import LambdaTaskService
        return LambdaTaskService()
    elif backend == 'celery':
        from apps.core.backends.celery_backend import CeleryTaskService
        return CeleryTaskService()
    else:
        raise ValueError(f"Unknown TASK_BACKEND: {backend}")


class TaskService:
    """
    Facade for sending background tasks.

    One static method per task type, delegating to the configured backend.
    """

    @staticmethod
    def process_translation_job(job_id: UUID) -> str:
        """
        Queue translation of a single job.

        Used by: the translation worker API.
        """
        logger.info(f"Queueing process_translation_job for job {job_id}")
        return _get_backend().send_task(
            task_name=TaskNames.PROCESS_TRANSLATION_JOB,
            payload={"job_id": str(job_id)}
        )

    @staticmethod
    def process_translation_queue() -> str:
        """Queue one batch of pending translation jobs."""
        logger.info("Queueing process_translation_queue task")
        return _get_backend().send_task(
            task_name=TaskNames.PROCESS_TRANSLATION_QUEUE,
            payload={}
        )

    @staticmethod
    def recover_stalled_translations() -> str:
        logger.info("Queueing recover_stalled_translations task")
        return _get_backend().send_task(
            task_name=TaskNames.RECOVER_STALLED_TRANSLATIONS,
            payload={}
        )

    @staticmethod
    def retry_failed_translations() -> str:
        logger.info("Queueing retry_failed_translations task")
        return _get_backend().send_task(
            task_name=TaskNames.RETRY_FAILED_TRANSLATIONS,
            payload={}
        )

    @staticmethod
    def send_document_notification(document_id: UUID) -> str:
        """
        Queue a WhatsApp notification for a newly published document.

        Used by: Documents app after upload.
        """
        logger.info(f"Queueing send_document_notification for document {document_id}")
        return _get_backend().send_task(
            task_name=TaskNames.SEND_DOCUMENT_NOTIFICATION,
            payload={"document_id": str(document_id)}
        )

    @staticmethod
    def send_poll_notification(poll_id: UUID) -> str:
        """
        Queue a WhatsApp notification for a newly published poll.

        Used by: Polls app on publish.
        """
        logger.info(f"Queueing send_poll_notification for poll {poll_id}")
        return _get_backend().send_task(
            task_name=TaskNames.SEND_POLL_NOTIFICATION,
            payload={"poll_id": str(poll_id)}
        )
