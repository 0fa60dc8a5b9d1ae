"""
Translation endpoints: request and follow document translations, and
operate the translation worker.
"""
import logging
import threading
from typing import List
from uuid import UUID

from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from apps.core.task_service import TaskService
from apps.identity.decorators import require_auth, require_permission
from apps.identity.permissions import Permissions, get_user_permissions
from .dtos import (
    TranslationFeedbackIn,
    TranslationJobOut,
    TranslationRequestIn,
    TranslationStatsOut,
    WorkerActionIn,
    WorkerActionOut,
    WorkerStatusOut,
)
from .models import DocumentTranslationJob
from .services import TranslationService
from .translator import get_translation_service_status
from .worker import get_worker

logger = logging.getLogger(__name__)

router = Router(tags=["Translations"])

WORKER_ACTIONS = ('start', 'stop', 'process', 'process_job', 'recover_stalled', 'retry_failed')


def _get_owned_job(request: HttpRequest, job_id: UUID) -> DocumentTranslationJob:
    """Requesters see their own jobs; translation managers see all."""
    user = require_auth(request)
    job = TranslationService.get_translation(job_id)
    if not job:
        raise HttpError(404, "Translation not found")
    if job.requested_by_id != user.id and Permissions.MANAGE_TRANSLATIONS not in get_user_permissions(user):
        raise HttpError(404, "Translation not found")
    return job


# =============================================================================
# Requests
# =============================================================================

@router.post("/request", response=List[TranslationJobOut], auth=None)
def request_translation(request: HttpRequest, payload: TranslationRequestIn):
    """Request translations of a document into one or more languages."""
    user = require_permission(request, Permissions.VIEW_DOCUMENTS)

    if not payload.target_languages:
        raise HttpError(400, "At least one target language is required")

    jobs, errors = [], []
    for language in dict.fromkeys(payload.target_languages):
        try:
            jobs.append(TranslationService.request_translation(
                payload.document_id, language, user, service=payload.service,
            ))
        except ValueError as e:
            if str(e) == "Document not found":
                raise HttpError(404, str(e))
            errors.append(f"{language}: {e}")

    if not jobs:
        raise HttpError(400, "; ".join(errors))
    return jobs


@router.get("/mine", response=List[TranslationJobOut], auth=None)
def my_translations(request: HttpRequest):
    user = require_auth(request)
    return TranslationService.get_translations_by_user(user.id)


@router.get("/document/{document_id}", response=List[TranslationJobOut], auth=None)
def document_translations(request: HttpRequest, document_id: UUID):
    require_permission(request, Permissions.VIEW_DOCUMENTS)
    return TranslationService.get_translations_by_document(document_id)


# =============================================================================
# Administration
# =============================================================================

@router.get("/queue", response=List[TranslationJobOut], auth=None)
def translation_queue(request: HttpRequest):
    """Pending and processing jobs, oldest first."""
    require_permission(request, Permissions.MANAGE_TRANSLATIONS)
    return TranslationService.get_translation_queue()


@router.get("/stats", response=TranslationStatsOut, auth=None)
def translation_stats(request: HttpRequest):
    require_permission(request, Permissions.MANAGE_TRANSLATIONS)
    return TranslationService.get_translation_stats()


@router.get("/worker", response=WorkerStatusOut, auth=None)
def worker_status(request: HttpRequest):
    require_permission(request, Permissions.MANAGE_TRANSLATIONS)
    health = get_worker().health_check()
    health['provider'] = get_translation_service_status()
    return health


@router.post("/worker", response=WorkerActionOut, auth=None)
def worker_action(request: HttpRequest, payload: WorkerActionIn):
    """
    Operate the worker: start, stop, process, process_job (job_id required),
    recover_stalled, retry_failed.
    Everything but start/stop goes through the configured task backend.
    """
    require_permission(request, Permissions.MANAGE_TRANSLATIONS)
    worker = get_worker()
    action = payload.action

    if action not in WORKER_ACTIONS:
        raise HttpError(400, f"Invalid action. Use one of: {', '.join(WORKER_ACTIONS)}")

    if action == 'start':
        if worker.is_running:
            return WorkerActionOut(action=action, success=False, message="Worker is already running")
        threading.Thread(target=worker.start, name="translation-worker", daemon=True).start()
        return WorkerActionOut(action=action, success=True, message="Worker started")

    if action == 'stop':
        worker.stop()
        return WorkerActionOut(action=action, success=True, message="Worker stopped")

    if action == 'process_job':
        if not payload.job_id:
            raise HttpError(400, "job_id is required for process_job")
        task_id = TaskService.process_translation_job(payload.job_id)
        return WorkerActionOut(action=action, success=True, message=f"Job {payload.job_id} queued", task_id=task_id)

    dispatch = {
        'process': TaskService.process_translation_queue,
        'recover_stalled': TaskService.recover_stalled_translations,
        'retry_failed': TaskService.retry_failed_translations,
    }
    task_id = dispatch[action]()
    return WorkerActionOut(action=action, success=True, message=f"Task {action} queued", task_id=task_id)


# =============================================================================
# Single job
# =============================================================================

@router.get("/{job_id}", response=TranslationJobOut, auth=None)
def get_translation(request: HttpRequest, job_id: UUID):
    return _get_owned_job(request, job_id)


@router.post("/{job_id}/cancel", response=TranslationJobOut, auth=None)
def cancel_translation(request: HttpRequest, job_id: UUID):
    job = _get_owned_job(request, job_id)
    try:
        return TranslationService.cancel_translation(job.id)
    except ValueError as e:
        raise HttpError(400, str(e))


@router.post("/{job_id}/feedback", response=TranslationJobOut, auth=None)
def translation_feedback(request: HttpRequest, job_id: UUID, payload: TranslationFeedbackIn):
    job = _get_owned_job(request, job_id)
    try:
        return TranslationService.add_user_feedback(job.id, payload.rating, payload.feedback)
    except ValueError as e:
        raise HttpError(400, str(e))
