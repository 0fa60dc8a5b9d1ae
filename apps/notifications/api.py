"""
WhatsApp endpoints: the Meta webhook, admin broadcasts and alerts, message
history and contact preferences.
"""
import json
import logging
from typing import List, Optional, Tuple

from django.conf import settings
from django.http import HttpRequest, HttpResponse
from ninja import Router
from ninja.errors import HttpError

from apps.identity.decorators import require_any_permission, require_auth, require_permission
from apps.identity.permissions import Permissions, get_user_permissions
from .dtos import (
    BroadcastIn,
    BroadcastOut,
    ContactOut,
    ContactPreferenceIn,
    EmergencyAlertIn,
    MessageOut,
    MessagePageOut,
    SendResultOut,
    SendTestMessageIn,
    StatsOut,
)
from .models import WhatsAppContact
from .services import NotificationService, normalize_phone_number
from .whatsapp_client import get_whatsapp_client

logger = logging.getLogger(__name__)

router = Router(tags=["WhatsApp"])

MESSAGE_VIEW_PERMISSIONS = (Permissions.MANAGE_WHATSAPP, Permissions.SEND_WHATSAPP_MESSAGES)


def _contact_out(contact: WhatsAppContact) -> ContactOut:
    return ContactOut(
        id=contact.id,
        phone_number=contact.phone_number,
        user_id=contact.user_id,
        status=contact.status,
        categories=contact.categories or [],
        opted_in_at=contact.opted_in_at,
        opted_out_at=contact.opted_out_at,
    )


def _resolve_contact_number(request: HttpRequest, payload: ContactPreferenceIn) -> Tuple[str, bool]:
    """
    Owners manage their own profile number; WhatsApp managers may manage
    any number. Returns the number and whether it is the caller's own.
    """
    user = require_auth(request)
    try:
        own_number = normalize_phone_number(user.phone_number) if user.phone_number else None
        number = normalize_phone_number(payload.phone_number) if payload.phone_number else own_number
    except ValueError as e:
        raise HttpError(400, str(e))

    if not number:
        raise HttpError(400, "Phone number is required")
    if number != own_number and Permissions.MANAGE_WHATSAPP not in get_user_permissions(user):
        raise HttpError(403, "Permission denied")
    return number, number == own_number


# =============================================================================
# Webhook
# =============================================================================

@router.get("/webhook", auth=None)
def verify_webhook(request: HttpRequest):
    """Meta subscription handshake: echo the challenge when the token matches."""
    mode = request.GET.get('hub.mode')
    token = request.GET.get('hub.verify_token')
    challenge = request.GET.get('hub.challenge', '')

    verify_token = settings.WHATSAPP_WEBHOOK_VERIFY_TOKEN
    if mode == 'subscribe' and verify_token and token == verify_token:
        logger.info("WhatsApp webhook verified")
        return HttpResponse(challenge)
    return HttpResponse('Forbidden', status=403)


@router.post("/webhook", auth=None)
def receive_webhook(request: HttpRequest):
    client = get_whatsapp_client()
    signature = request.headers.get('x-hub-signature-256')
    if not client.verify_webhook_signature(request.body, signature):
        return HttpResponse('Unauthorized', status=401)

    try:
        body = json.loads(request.body)
    except ValueError:
        return HttpResponse('Invalid payload', status=400)

    handled = NotificationService.handle_webhook(body, client)
    logger.info(f"WhatsApp webhook handled {handled} messages")
    return HttpResponse('OK')


# =============================================================================
# Sending
# =============================================================================

@router.post("/broadcast", response=BroadcastOut, auth=None)
def broadcast(request: HttpRequest, payload: BroadcastIn):
    """Send a message to the given numbers or to every opted-in contact."""
    user = require_permission(request, Permissions.SEND_WHATSAPP_MESSAGES)
    try:
        result = NotificationService.broadcast(payload.message, payload.phone_numbers, user=user)
    except ValueError as e:
        raise HttpError(400, str(e))
    return BroadcastOut(**result)


@router.post("/emergency", response=SendResultOut, auth=None)
def emergency_alert(request: HttpRequest, payload: EmergencyAlertIn):
    user = require_any_permission(request, (Permissions.MANAGE_WHATSAPP, Permissions.MANAGE_NOTIFICATIONS))
    try:
        success = NotificationService.send_emergency_alert(
            title=payload.title,
            message=payload.message,
            severity=payload.severity,
            alert_type=payload.alert_type,
            created_by=user,
        )
    except ValueError as e:
        raise HttpError(400, str(e))
    return SendResultOut(success=success)


@router.post("/test", response=SendResultOut, auth=None)
def send_test_message(request: HttpRequest, payload: SendTestMessageIn):
    require_permission(request, Permissions.MANAGE_WHATSAPP)
    try:
        success = NotificationService.send_test_message(payload.phone_number, payload.message_type)
    except ValueError as e:
        raise HttpError(400, str(e))
    return SendResultOut(success=success)


# =============================================================================
# History and stats
# =============================================================================

@router.get("/messages", response=MessagePageOut, auth=None)
def message_history(
    request: HttpRequest,
    direction: Optional[str] = None,
    status: Optional[str] = None,
    phone_number: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
):
    require_any_permission(request, MESSAGE_VIEW_PERMISSIONS)
    messages, total = NotificationService.get_message_history(direction, status, phone_number, limit, offset)
    return MessagePageOut(
        items=[MessageOut.from_orm(m) for m in messages],
        total=total,
        limit=max(1, min(limit, 200)),
        offset=max(0, offset),
    )


@router.get("/stats", response=StatsOut, auth=None)
def stats(request: HttpRequest):
    require_any_permission(request, MESSAGE_VIEW_PERMISSIONS)
    return StatsOut(**NotificationService.get_stats())


# =============================================================================
# Contacts
# =============================================================================

@router.get("/contacts", response=List[ContactOut], auth=None)
def list_contacts(request: HttpRequest, status: Optional[str] = None):
    require_permission(request, Permissions.MANAGE_WHATSAPP)
    return [_contact_out(c) for c in NotificationService.list_contacts(status)]


@router.post("/contacts/opt-in", response=ContactOut, auth=None)
def opt_in(request: HttpRequest, payload: ContactPreferenceIn):
    number, own = _resolve_contact_number(request, payload)
    user = request.user if own else None
    try:
        contact = NotificationService.opt_in(number, user=user, categories=payload.categories)
    except ValueError as e:
        raise HttpError(400, str(e))
    return _contact_out(contact)


@router.post("/contacts/opt-out", response=ContactOut, auth=None)
def opt_out(request: HttpRequest, payload: ContactPreferenceIn):
    number, _ = _resolve_contact_number(request, payload)
    return _contact_out(NotificationService.opt_out(number))
