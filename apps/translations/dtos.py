"""DTOs for Translations app."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from ninja import Schema


class TranslationJobOut(Schema):
    id: UUID
    document_id: UUID
    document_title: Optional[str] = None
    source_language: str
    target_language: str
    status: str
    attempts: int
    max_attempts: int
    progress: int
    error_message: Optional[str] = None
    service_used: str
    estimated_cost_cents: Optional[int] = None
    actual_cost_cents: Optional[int] = None
    translated_document_id: Optional[UUID] = None
    confidence_score: Optional[float] = None
    quality_score: Optional[float] = None
    user_rating: Optional[int] = None
    user_feedback: str
    requested_by_id: Optional[UUID] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_at: datetime

    @staticmethod
    def resolve_document_title(obj):
        return obj.document.title if obj.document_id else None


class TranslationRequestIn(Schema):
    document_id: UUID
    target_languages: List[str]
    service: Optional[str] = None


class TranslationFeedbackIn(Schema):
    rating: int
    feedback: Optional[str] = None


class TranslationStatsOut(Schema):
    total: int
    pending: int
    in_progress: int
    completed: int
    failed: int
    total_cost_cents: int
    average_cost_cents: int


class WorkerActionIn(Schema):
    action: str
    job_id: Optional[UUID] = None


class WorkerActionOut(Schema):
    action: str
    success: bool
    message: str
    count: Optional[int] = None
    task_id: Optional[str] = None


class WorkerStatusOut(Schema):
    is_running: bool
    healthy: bool
    stats: Dict[str, int]
    stalled_jobs: int
    interval_seconds: int
    batch_size: int
    provider: Dict[str, Any]
