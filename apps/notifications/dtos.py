"""DTOs and schemas for the WhatsApp notification endpoints."""
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ninja import Schema


class BroadcastIn(Schema):
    message: str
    phone_numbers: Optional[List[str]] = None


class BroadcastOut(Schema):
    total: int
    sent: int
    failed: int
    results: List[str]


class EmergencyAlertIn(Schema):
    title: str
    message: str
    severity: str = 'medium'
    alert_type: str = 'other'


class SendTestMessageIn(Schema):
    phone_number: str
    message_type: str = 'community'


class SendResultOut(Schema):
    success: bool


class MessageOut(Schema):
    id: UUID
    phone_number: str
    direction: str
    message_type: str
    content: str
    whatsapp_id: str
    status: str
    notification_type: str
    error: str
    sent_at: Optional[datetime] = None
    created_at: datetime


class MessagePageOut(Schema):
    items: List[MessageOut]
    total: int
    limit: int
    offset: int


class StatsOut(Schema):
    sent: int
    failed: int
    received: int
    opted_in_contacts: int
    opted_out_contacts: int
    emergency_alerts: int


class ContactOut(Schema):
    id: UUID
    phone_number: str
    user_id: Optional[UUID] = None
    status: str
    categories: List[str]
    opted_in_at: Optional[datetime] = None
    opted_out_at: Optional[datetime] = None


class ContactPreferenceIn(Schema):
    phone_number: Optional[str] = None
    categories: List[str] = []
