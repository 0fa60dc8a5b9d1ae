"""
Centralized audit logging service.

Use log_action() to record any meaningful mutation or access. It never
raises, so a logging failure will never break the calling request.

Usage:
    from apps.governance.audit_service import log_action, AuditAction

    log_action(
        action=AuditAction.CREATE,
        entity_type="Document",
        entity_id=document.id,
        entity_label=document.title,
        user=request.user,
        details={"category": document.category},
    )
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

from .models import AuditLog

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 500
ENTITY_HISTORY_LIMIT = 10


class AuditAction:
    """
    Canonical string constants for audit log actions.
    """
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    VIEW = "view"
    DOWNLOAD = "download"
    TRANSLATE = "translate"
    APPROVE = "approve"
    REJECT = "reject"
    PUBLISH = "publish"
    CLOSE = "close"
    VOTE = "vote"
    BROADCAST = "broadcast"
    LOGIN = "login"


def log_action(
    *,
    action: str,
    entity_type: str,
    entity_id,
    user=None,
    entity_label: str = "",
    details: Optional[dict] = None,
    ip_address: str = "",
) -> Optional[AuditLog]:
    """
    Create an AuditLog entry.

    Args:
        action:        Constant from AuditAction.
        entity_type:   Type of the object acted on (e.g. "Document").
        entity_id:     Primary key of the object acted on.
        user:          Acting user, or None for system actions.
        entity_label:  Optional human-readable description of the object.
        details:       Optional JSON-serializable metadata.

    Returns:
        The created AuditLog instance, or None if creation failed.
    """
    if user is not None and not getattr(user, 'is_authenticated', False):
        user = None
    try:
        return AuditLog.objects.create(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            entity_label=(entity_label or "")[:255],
            user=user,
            details=details or {},
            ip_address=ip_address or "",
        )
    except Exception:
        logger.exception(f"Failed to write audit log for {action} {entity_type} {entity_id}")
        return None


def get_audit_logs(
    filters: Optional[Dict[str, Any]] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> Tuple[List[AuditLog], int]:
    """
    Filtered, newest-first page of audit logs.

    Supported filters: entity_type, entity_id, user_id, action,
    start_date, end_date.
    """
    filters = filters or {}
    qs = AuditLog.objects.select_related('user')

    if filters.get('entity_type'):
        qs = qs.filter(entity_type=filters['entity_type'])
    if filters.get('entity_id'):
        qs = qs.filter(entity_id=str(filters['entity_id']))
    if filters.get('user_id'):
        qs = qs.filter(user_id=filters['user_id'])
    if filters.get('action'):
        qs = qs.filter(action=filters['action'])
    if filters.get('start_date'):
        qs = qs.filter(created_at__date__gte=filters['start_date'])
    if filters.get('end_date'):
        qs = qs.filter(created_at__date__lte=filters['end_date'])

    total = qs.count()
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    return list(qs[offset:offset + limit]), total


def get_entity_audit_history(entity_type: str, entity_id, limit: int = ENTITY_HISTORY_LIMIT) -> List[AuditLog]:
    return list(
        AuditLog.objects.select_related('user')
        .filter(entity_type=entity_type, entity_id=str(entity_id))[:limit]
    )
