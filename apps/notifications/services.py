"""
WhatsApp notification services: recipients, outbound notifications,
admin broadcasts, contact preferences and inbound webhook handling.

Every outbound attempt is recorded as a WhatsAppMessage, sent or failed.
"""
import logging
import re
from datetime import datetime, timezone as dt_timezone
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from django.conf import settings
from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Count
from django.utils import timezone

from apps.core.languages import to_locale_code
from apps.governance.audit_service import AuditAction, log_action
from apps.governance.settings_service import get_setting
from . import templates
from .assistant import WhatsAppAssistant
from .models import (
    AlertSeverity,
    AlertType,
    ContactStatus,
    EmergencyAlert,
    MessageDirection,
    MessageStatus,
    MessageType,
    NotificationCategory,
    WhatsAppContact,
    WhatsAppMessage,
)
from .whatsapp_client import (
    FAILED_PREFIX,
    WhatsAppClient,
    WhatsAppError,
    get_whatsapp_client,
    is_failed_result,
)

logger = logging.getLogger(__name__)

User = get_user_model()

PHONE_NUMBER_RE = re.compile(r'^\d{8,15}$')
HEADER = "🏖️ *Costa Beach Community*"

SEVERITY_EMOJI = {
    AlertSeverity.LOW: '💡',
    AlertSeverity.MEDIUM: '⚠️',
    AlertSeverity.HIGH: '🚨',
    AlertSeverity.CRITICAL: '🔴',
}

ALERT_TYPE_EMOJI = {
    AlertType.MAINTENANCE: '🔧',
    AlertType.SECURITY: '🔒',
    AlertType.WEATHER: '🌩️',
    AlertType.UTILITIES: '⚡',
    AlertType.OTHER: '📢',
}

TEST_MESSAGES = {
    NotificationCategory.DOCUMENTS: "📄 *Test Document Notification*\n\nThis is a test of the document notification system.",
    NotificationCategory.POLLS: "🗳️ *Test Poll Notification*\n\nThis is a test of the poll notification system.",
    NotificationCategory.EMERGENCY: "🚨 *TEST ALERT* 🚨\n\nThis is a test of the emergency alert system.",
    NotificationCategory.COMMUNITY: "📢 *Test Message*\n\nHello! This is a test message from the Costa Beach Community Platform.",
}


def normalize_phone_number(phone_number: str) -> str:
    """Digits only, as WhatsApp reports senders. Raises ValueError if implausible."""
    digits = re.sub(r'\D', '', phone_number or '')
    if not PHONE_NUMBER_RE.match(digits):
        raise ValueError(f"Invalid phone number: {phone_number}")
    return digits


@dataclass(frozen=True)
class Recipient:
    phone_number: str
    locale: str
    contact: Optional[WhatsAppContact] = None


class NotificationService:

    # =========================================================================
    # Recipients and logging
    # =========================================================================

    @staticmethod
    def is_enabled() -> bool:
        return bool(get_setting('whatsapp_notifications_enabled'))

    @staticmethod
    def get_recipients(category: str) -> List[Recipient]:
        """
        Opted-in contacts subscribed to the category, then active users who
        opted in on their profile. Numbers that opted out are never included.
        """
        recipients: Dict[str, Recipient] = {}
        opted_out = set(
            WhatsAppContact.objects.filter(status=ContactStatus.OPTED_OUT).values_list('phone_number', flat=True)
        )

        contacts = WhatsAppContact.objects.select_related('user').filter(status=ContactStatus.OPTED_IN)
        for contact in contacts:
            if not contact.wants(category):
                continue
            language = contact.user.preferred_language if contact.user else None
            recipients[contact.phone_number] = Recipient(
                phone_number=contact.phone_number,
                locale=to_locale_code(language),
                contact=contact,
            )

        users = User.objects.filter(is_active=True, whatsapp_opt_in=True).exclude(phone_number='')
        for user in users:
            try:
                number = normalize_phone_number(user.phone_number)
            except ValueError:
                logger.warning(f"Skipping user {user.id} with invalid phone number")
                continue
            if number in recipients or number in opted_out:
                continue
            recipients[number] = Recipient(phone_number=number, locale=to_locale_code(user.preferred_language))

        return list(recipients.values())

    @staticmethod
    def log_message(
        *,
        phone_number: str,
        direction: str,
        status: str,
        content: str = '',
        message_type: str = MessageType.TEXT,
        whatsapp_id: str = '',
        notification_type: str = '',
        error: str = '',
        contact: Optional[WhatsAppContact] = None,
        sent_at=None,
    ) -> WhatsAppMessage:
        if contact is None:
            contact = WhatsAppContact.objects.filter(phone_number=phone_number).first()
        return WhatsAppMessage.objects.create(
            contact=contact,
            phone_number=phone_number,
            direction=direction,
            status=status,
            content=content,
            message_type=message_type,
            whatsapp_id=whatsapp_id or '',
            notification_type=notification_type,
            error=error,
            sent_at=sent_at,
        )

    @staticmethod
    def send_text(
        phone_number: str,
        text: str,
        notification_type: str = '',
        contact: Optional[WhatsAppContact] = None,
        client: Optional[WhatsAppClient] = None,
    ) -> WhatsAppMessage:
        """Send one text message and return its log entry. Never raises WhatsAppError."""
        client = client or get_whatsapp_client()
        try:
            message_id = client.send_text_message(phone_number, text)
        except WhatsAppError as e:
            logger.error(f"WhatsApp message to {phone_number} failed: {e}")
            return NotificationService.log_message(
                phone_number=phone_number,
                direction=MessageDirection.OUTBOUND,
                status=MessageStatus.FAILED,
                content=text,
                notification_type=notification_type,
                error=str(e),
                contact=contact,
            )

        return NotificationService.log_message(
            phone_number=phone_number,
            direction=MessageDirection.OUTBOUND,
            status=MessageStatus.SENT,
            content=text,
            whatsapp_id=message_id,
            notification_type=notification_type,
            contact=contact,
            sent_at=timezone.now(),
        )

    @staticmethod
    def _notify(category: str, build_text: Callable[[Recipient], str], client: Optional[WhatsAppClient] = None) -> int:
        recipients = NotificationService.get_recipients(category)
        if not recipients:
            logger.info(f"No phone numbers configured for {category} notifications")
            return 0

        client = client or get_whatsapp_client()
        sent = sum(
            NotificationService.send_text(r.phone_number, build_text(r), category, r.contact, client).status
            == MessageStatus.SENT
            for r in recipients
        )
        logger.info(f"{category} notification sent: {sent} successful, {len(recipients) - sent} failed")
        return sent

    # =========================================================================
    # Notifications
    # =========================================================================

    @staticmethod
    def send_document_notification(document_id, client: Optional[WhatsAppClient] = None) -> int:
        """Tell subscribed owners about a new document. Returns messages sent."""
        from apps.documents.models import Document

        if not NotificationService.is_enabled():
            logger.info("WhatsApp notifications disabled; skipping document notification")
            return 0

        document = Document.objects.filter(id=document_id).first()
        if not document:
            logger.warning(f"Document {document_id} not found for notification")
            return 0

        def build(recipient: Recipient) -> str:
            return templates.document_notification(
                title=document.title,
                category=document.get_category_display(),
                link=f"{settings.SITE_URL}/{recipient.locale}/documents/{document.id}",
                locale=recipient.locale,
            )

        return NotificationService._notify(NotificationCategory.DOCUMENTS, build, client)

    @staticmethod
    def send_poll_notification(poll_id, client: Optional[WhatsAppClient] = None) -> int:
        """Tell subscribed owners about a newly published poll. Returns messages sent."""
        from apps.polls.models import Poll

        if not NotificationService.is_enabled():
            logger.info("WhatsApp notifications disabled; skipping poll notification")
            return 0

        poll = Poll.objects.filter(id=poll_id).first()
        if not poll:
            logger.warning(f"Poll {poll_id} not found for notification")
            return 0

        end_date = timezone.localtime(poll.end_date).strftime('%d/%m/%Y') if poll.end_date else None

        def build(recipient: Recipient) -> str:
            return templates.poll_notification(
                question=poll.question,
                link=f"{settings.SITE_URL}/{recipient.locale}/polls/{poll.id}",
                end_date=end_date,
                locale=recipient.locale,
            )

        return NotificationService._notify(NotificationCategory.POLLS, build, client)

    @staticmethod
    def send_emergency_alert(
        *,
        title: str,
        message: str,
        severity: str = AlertSeverity.MEDIUM,
        alert_type: str = AlertType.OTHER,
        created_by=None,
        client: Optional[WhatsAppClient] = None,
    ) -> bool:
        """
        Alert every subscribed number. Sent even when routine notifications
        are disabled. Returns False when nobody could be reached.
        """
        if not (title or '').strip() or not (message or '').strip():
            raise ValueError("Alert title and message are required")
        if severity not in AlertSeverity.values:
            raise ValueError(f"Invalid severity: {severity}")
        if alert_type not in AlertType.values:
            raise ValueError(f"Invalid alert type: {alert_type}")

        severity_emoji = SEVERITY_EMOJI[severity]
        text = (
            f"{HEADER}\n\n"
            f"{severity_emoji} *{severity.upper()} ALERT* {severity_emoji}\n\n"
            f"{ALERT_TYPE_EMOJI[alert_type]} *{title}*\n\n"
            f"📢 {message}\n\n"
            "⚠️ Please take appropriate action and stay safe.\n\n"
            "For immediate assistance, contact building management."
        )

        recipients = NotificationService.get_recipients(NotificationCategory.EMERGENCY)
        sent = 0
        if recipients:
            client = client or get_whatsapp_client()
            sent = sum(
                NotificationService.send_text(
                    r.phone_number, text, NotificationCategory.EMERGENCY, r.contact, client,
                ).status == MessageStatus.SENT
                for r in recipients
            )
        else:
            logger.warning("No phone numbers configured for emergency alerts")

        alert = EmergencyAlert.objects.create(
            title=title,
            message=message,
            severity=severity,
            alert_type=alert_type,
            created_by=created_by,
            recipients_count=len(recipients),
            success_count=sent,
        )
        log_action(
            action=AuditAction.BROADCAST,
            entity_type="EmergencyAlert",
            entity_id=alert.id,
            entity_label=title,
            user=created_by,
            details={"severity": severity, "recipients": len(recipients), "sent": sent},
        )
        return sent > 0

    @staticmethod
    def send_community_update(title: str, message: str, client: Optional[WhatsAppClient] = None) -> int:
        if not NotificationService.is_enabled():
            logger.info("WhatsApp notifications disabled; skipping community update")
            return 0

        text = f"{HEADER}\n\n📢 *Community Update*\n\n*{title}*\n\n{message}"
        return NotificationService._notify(NotificationCategory.COMMUNITY, lambda r: text, client)

    @staticmethod
    def send_test_message(
        phone_number: str,
        message_type: str = NotificationCategory.COMMUNITY,
        client: Optional[WhatsAppClient] = None,
    ) -> bool:
        if message_type not in TEST_MESSAGES:
            raise ValueError(f"Invalid test message type: {message_type}")
        number = normalize_phone_number(phone_number)
        text = f"{HEADER}\n\n{TEST_MESSAGES[message_type]}\n\n✅ WhatsApp integration is working correctly!"
        logged = NotificationService.send_text(number, text, message_type, client=client)
        return logged.status == MessageStatus.SENT

    # =========================================================================
    # Admin broadcast
    # =========================================================================

    @staticmethod
    def broadcast(
        message: str,
        phone_numbers: Optional[List[str]] = None,
        user=None,
        client: Optional[WhatsAppClient] = None,
    ) -> Dict[str, object]:
        """
        Send a text to the given numbers, or to every opted-in contact.
        Results follow broadcast_to_numbers: '<number>:<id>' or 'FAILED:<number>'.
        """
        if not (message or '').strip():
            raise ValueError("Message is required")

        if phone_numbers:
            numbers = list(dict.fromkeys(normalize_phone_number(n) for n in phone_numbers))
        else:
            numbers = [r.phone_number for r in NotificationService.get_recipients(NotificationCategory.COMMUNITY)]
        if not numbers:
            raise ValueError("No recipients to broadcast to")

        client = client or get_whatsapp_client()
        results = []
        for number in numbers:
            logged = NotificationService.send_text(number, message, NotificationCategory.COMMUNITY, client=client)
            if logged.status == MessageStatus.SENT:
                results.append(f"{number}:{logged.whatsapp_id}")
            else:
                results.append(f"{FAILED_PREFIX}{number}")

        sent = sum(1 for r in results if not is_failed_result(r))
        log_action(
            action=AuditAction.BROADCAST,
            entity_type="WhatsAppMessage",
            entity_id="broadcast",
            entity_label=message[:100],
            user=user,
            details={"recipients": len(numbers), "sent": sent},
        )
        return {'total': len(numbers), 'sent': sent, 'failed': len(numbers) - sent, 'results': results}

    # =========================================================================
    # Contacts
    # =========================================================================

    @staticmethod
    @transaction.atomic
    def opt_in(phone_number: str, user=None, categories: Optional[List[str]] = None) -> WhatsAppContact:
        number = normalize_phone_number(phone_number)
        categories = list(categories or [])
        unknown = [c for c in categories if c not in NotificationCategory.values]
        if unknown:
            raise ValueError(f"Unknown notification categories: {', '.join(unknown)}")

        contact, _ = WhatsAppContact.objects.get_or_create(phone_number=number)
        contact.status = ContactStatus.OPTED_IN
        contact.categories = categories
        contact.opted_in_at = timezone.now()
        if user is not None:
            contact.user = user
        contact.save()
        return contact

    @staticmethod
    @transaction.atomic
    def opt_out(phone_number: str) -> WhatsAppContact:
        number = normalize_phone_number(phone_number)
        contact, _ = WhatsAppContact.objects.get_or_create(phone_number=number)
        contact.status = ContactStatus.OPTED_OUT
        contact.opted_out_at = timezone.now()
        contact.save()
        return contact

    @staticmethod
    def list_contacts(status: Optional[str] = None) -> List[WhatsAppContact]:
        qs = WhatsAppContact.objects.select_related('user')
        if status:
            qs = qs.filter(status=status)
        return list(qs)

    # =========================================================================
    # History and stats
    # =========================================================================

    @staticmethod
    def get_message_history(
        direction: Optional[str] = None,
        status: Optional[str] = None,
        phone_number: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ):
        qs = WhatsAppMessage.objects.all()
        if direction:
            qs = qs.filter(direction=direction)
        if status:
            qs = qs.filter(status=status)
        if phone_number:
            qs = qs.filter(phone_number=re.sub(r'\D', '', phone_number))
        total = qs.count()
        limit = max(1, min(limit, 200))
        offset = max(0, offset)
        return list(qs[offset:offset + limit]), total

    @staticmethod
    def get_stats() -> Dict[str, int]:
        counts = {
            (row['direction'], row['status']): row['total']
            for row in WhatsAppMessage.objects.values('direction', 'status').annotate(total=Count('id'))
        }
        outbound = {s: n for (d, s), n in counts.items() if d == MessageDirection.OUTBOUND}
        return {
            'sent': sum(n for s, n in outbound.items() if s != MessageStatus.FAILED),
            'failed': outbound.get(MessageStatus.FAILED, 0),
            'received': sum(n for (d, _), n in counts.items() if d == MessageDirection.INBOUND),
            'opted_in_contacts': WhatsAppContact.objects.filter(status=ContactStatus.OPTED_IN).count(),
            'opted_out_contacts': WhatsAppContact.objects.filter(status=ContactStatus.OPTED_OUT).count(),
            'emergency_alerts': EmergencyAlert.objects.count(),
        }

    # =========================================================================
    # Inbound webhook
    # =========================================================================

    @staticmethod
    def handle_webhook(body: dict, client: Optional[WhatsAppClient] = None) -> int:
        """
        Log inbound messages, answer text messages through the assistant and
        apply delivery receipts. Returns the number of messages handled.
        """
        client = client or get_whatsapp_client()
        assistant = WhatsAppAssistant(client)

        for update in client.parse_status_updates(body):
            if update.status in MessageStatus.values:
                WhatsAppMessage.objects.filter(
                    whatsapp_id=update.message_id, direction=MessageDirection.OUTBOUND,
                ).update(status=update.status)

        messages = client.parse_webhook(body)
        for message in messages:
            contact = WhatsAppContact.objects.select_related('user').filter(
                phone_number=message.sender, status=ContactStatus.OPTED_IN,
            ).first()

            NotificationService.log_message(
                phone_number=message.sender,
                direction=MessageDirection.INBOUND,
                status=MessageStatus.RECEIVED,
                content=message.text or '',
                message_type=message.type if message.type in MessageType.values else MessageType.TEXT,
                whatsapp_id=message.message_id,
                contact=contact,
                sent_at=datetime.fromtimestamp(message.timestamp, tz=dt_timezone.utc) if message.timestamp else None,
            )

            try:
                if contact is None:
                    reply = assistant.send_welcome_message(message.sender)
                elif message.type == 'text' and message.text:
                    reply = assistant.handle_incoming_message(message.sender, message.text)
                else:
                    continue
            except WhatsAppError as e:
                logger.error(f"Failed to answer {message.sender}: {e}")
                assistant.send_error_response(message.sender)
                continue

            NotificationService.log_message(
                phone_number=message.sender,
                direction=MessageDirection.OUTBOUND,
                status=MessageStatus.SENT,
                content=reply,
                contact=contact,
                sent_at=timezone.now(),
            )

        return len(messages)
