"""Admin dashboard statistics."""
from datetime import timedelta

from django.db.models import Sum
from django.utils import timezone

from apps.documents.models import Document
from apps.identity.models import OwnerRegistration, RegistrationStatus, User
from apps.notifications.models import MessageDirection, MessageStatus, WhatsAppMessage
from apps.polls.models import Poll, PollStatus
from apps.translations.queue_service import TranslationQueueService

ACTIVE_USER_WINDOW = timedelta(hours=24)


def get_dashboard_stats() -> dict:
    since = timezone.now() - ACTIVE_USER_WINDOW
    outbound = WhatsAppMessage.objects.filter(direction=MessageDirection.OUTBOUND)

    return {
        'total_users': User.objects.filter(is_active=True).count(),
        'active_users': User.objects.filter(is_active=True, last_login__gte=since).count(),
        'verified_owners': User.objects.filter(is_active=True, is_verified_owner=True).count(),
        'pending_registrations': OwnerRegistration.objects.filter(
            status=RegistrationStatus.PENDING
        ).count(),
        'total_documents': Document.objects.filter(is_translation=False).count(),
        'total_downloads': Document.objects.aggregate(total=Sum('download_count'))['total'] or 0,
        'total_polls': Poll.objects.count(),
        'active_polls': Poll.objects.filter(status=PollStatus.PUBLISHED).count(),
        'messages_sent': outbound.exclude(status=MessageStatus.FAILED).count(),
        'messages_failed': outbound.filter(status=MessageStatus.FAILED).count(),
        'translations': TranslationQueueService.get_translation_stats(),
    }
