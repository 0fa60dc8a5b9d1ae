from ninja import Schema
from uuid import UUID
from datetime import datetime
from typing import Any, Dict, List, Optional


class AuditLogOut(Schema):
    id: UUID
    action: str
    entity_type: str
    entity_id: str
    entity_label: str
    user_id: Optional[UUID] = None
    user_name: Optional[str] = None
    details: Any
    created_at: datetime


class AuditLogPageOut(Schema):
    items: List[AuditLogOut]
    total: int
    limit: int
    offset: int


class SettingsUpdateIn(Schema):
    values: Dict[str, Any]


class PublicSettingsOut(Schema):
    site_name: str
    site_description: str
    contact_email: str
    support_phone: str
    maintenance_mode: bool
    registration_enabled: bool
    default_language: str
    allowed_languages: List[str]


class DashboardStatsOut(Schema):
    total_users: int
    active_users: int
    verified_owners: int
    pending_registrations: int
    total_documents: int
    total_downloads: int
    total_polls: int
    active_polls: int
    messages_sent: int
    messages_failed: int
    translations: Dict[str, int]
