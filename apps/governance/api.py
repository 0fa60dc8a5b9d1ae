from datetime import date
from typing import List, Optional
from uuid import UUID

from django.shortcuts import get_object_or_404
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import has_permission, require_any_permission, require_permission
from apps.identity.permissions import Permissions
from .audit_service import AuditAction, get_audit_logs, get_entity_audit_history, log_action
from .dtos import AuditLogOut, AuditLogPageOut, DashboardStatsOut, PublicSettingsOut, SettingsUpdateIn
from .models import AuditLog
from . import settings_service
from .services import get_dashboard_stats

router = Router(tags=["Governance"])


# =============================================================================
# Audit Log Endpoints
# =============================================================================

def serialize_log(log: AuditLog) -> AuditLogOut:
    """Convert an AuditLog model instance to its output schema."""
    user_name = None
    if log.user_id and log.user:
        user_name = log.user.display_name

    return AuditLogOut(
        id=log.id,
        action=log.action,
        entity_type=log.entity_type,
        entity_id=log.entity_id,
        entity_label=log.entity_label,
        user_id=log.user_id,
        user_name=user_name,
        details=log.details,
        created_at=log.created_at,
    )


@router.get("/audit-logs", response=AuditLogPageOut, auth=None)
def list_audit_logs(
    request,
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    user_id: Optional[UUID] = None,
    action: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    limit: int = 50,
    offset: int = 0,
):
    """
    List audit log entries, newest first.
    Requires viewAuditLogs.
    """
    require_permission(request, Permissions.VIEW_AUDIT_LOGS)

    logs, total = get_audit_logs(
        filters={
            'entity_type': entity_type,
            'entity_id': entity_id,
            'user_id': user_id,
            'action': action,
            'start_date': start_date,
            'end_date': end_date,
        },
        limit=limit,
        offset=offset,
    )
    return AuditLogPageOut(
        items=[serialize_log(log) for log in logs],
        total=total,
        limit=max(1, min(limit, 500)),
        offset=max(0, offset),
    )


@router.get("/audit-logs/entity/{entity_type}/{entity_id}", response=List[AuditLogOut], auth=None)
def get_entity_history(request, entity_type: str, entity_id: str, limit: int = 10):
    require_permission(request, Permissions.VIEW_AUDIT_LOGS)
    return [serialize_log(log) for log in get_entity_audit_history(entity_type, entity_id, limit)]


@router.get("/audit-logs/{log_id}", response=AuditLogOut, auth=None)
def get_audit_log(request, log_id: UUID):
    require_permission(request, Permissions.VIEW_AUDIT_LOGS)
    log = get_object_or_404(AuditLog.objects.select_related("user"), id=log_id)
    return serialize_log(log)


# =============================================================================
# System Settings
# =============================================================================

@router.get("/settings/public", response=PublicSettingsOut, auth=None)
def get_public_settings(request):
    """Branding and language options the UI needs before login."""
    return settings_service.get_settings()


@router.get("/settings", response=dict, auth=None)
@has_permission(Permissions.MANAGE_SETTINGS)
def get_settings(request):
    return settings_service.get_settings()


@router.put("/settings", response=dict, auth=None)
def update_settings(request, payload: SettingsUpdateIn):
    """Partial update of portal settings. Requires manageSettings."""
    user = require_permission(request, Permissions.MANAGE_SETTINGS)

    try:
        values = settings_service.update_settings(payload.values, updated_by=user)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        action=AuditAction.UPDATE,
        entity_type="Settings",
        entity_id="system",
        entity_label="System settings",
        user=user,
        details={"changes": payload.values},
    )
    return values


# =============================================================================
# Dashboard
# =============================================================================

@router.get("/dashboard/stats", response=DashboardStatsOut, auth=None)
def dashboard_stats(request):
    """Admin dashboard counters. Requires user or document management access."""
    require_any_permission(request, [
        Permissions.VIEW_USERS,
        Permissions.MANAGE_USERS,
        Permissions.MANAGE_DOCUMENTS,
    ])
    return get_dashboard_stats()
