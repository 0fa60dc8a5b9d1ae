import uuid
from django.db import models


class ContactStatus(models.TextChoices):
    OPTED_IN = 'opted_in', 'Opted in'
    OPTED_OUT = 'opted_out', 'Opted out'


class NotificationCategory(models.TextChoices):
    DOCUMENTS = 'documents', 'Documents'
    POLLS = 'polls', 'Polls'
    EMERGENCY = 'emergency', 'Emergency'
    COMMUNITY = 'community', 'Community'


class WhatsAppContact(models.Model):
    """
    A phone number that agreed (or refused) to receive WhatsApp messages.
    An empty category list means every category.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    phone_number = models.CharField(max_length=20, unique=True)
    user = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='whatsapp_contacts'
    )
    status = models.CharField(
        max_length=20,
        choices=ContactStatus.choices,
        default=ContactStatus.OPTED_IN,
        db_index=True,
    )
    categories = models.JSONField(default=list, blank=True)
    opted_in_at = models.DateTimeField(null=True, blank=True)
    opted_out_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['phone_number']

    def __str__(self):
        return f"{self.phone_number} ({self.status})"

    def wants(self, category: str) -> bool:
        return self.status == ContactStatus.OPTED_IN and (not self.categories or category in self.categories)


class MessageDirection(models.TextChoices):
    INBOUND = 'inbound', 'Inbound'
    OUTBOUND = 'outbound', 'Outbound'


class MessageType(models.TextChoices):
    TEXT = 'text', 'Text'
    TEMPLATE = 'template', 'Template'
    DOCUMENT = 'document', 'Document'
    IMAGE = 'image', 'Image'


class MessageStatus(models.TextChoices):
    SENT = 'sent', 'Sent'
    DELIVERED = 'delivered', 'Delivered'
    READ = 'read', 'Read'
    FAILED = 'failed', 'Failed'
    RECEIVED = 'received', 'Received'


class WhatsAppMessage(models.Model):
    """Log of every message sent to or received from WhatsApp."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    contact = models.ForeignKey(
        WhatsAppContact,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='messages'
    )
    phone_number = models.CharField(max_length=20, db_index=True)
    direction = models.CharField(max_length=10, choices=MessageDirection.choices, db_index=True)
    message_type = models.CharField(max_length=20, default=MessageType.TEXT)
    content = models.TextField(blank=True)
    whatsapp_id = models.CharField(max_length=128, blank=True, db_index=True)
    status = models.CharField(max_length=20, choices=MessageStatus.choices, db_index=True)
    notification_type = models.CharField(max_length=20, blank=True)
    error = models.TextField(blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.direction} {self.phone_number} [{self.status}]"


class AlertSeverity(models.TextChoices):
    LOW = 'low', 'Low'
    MEDIUM = 'medium', 'Medium'
    HIGH = 'high', 'High'
    CRITICAL = 'critical', 'Critical'


class AlertType(models.TextChoices):
    MAINTENANCE = 'maintenance', 'Maintenance'
    SECURITY = 'security', 'Security'
    WEATHER = 'weather', 'Weather'
    UTILITIES = 'utilities', 'Utilities'
    OTHER = 'other', 'Other'


class EmergencyAlert(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    title = models.CharField(max_length=255)
    message = models.TextField()
    severity = models.CharField(max_length=10, choices=AlertSeverity.choices, default=AlertSeverity.MEDIUM)
    alert_type = models.CharField(max_length=20, choices=AlertType.choices, default=AlertType.OTHER)
    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='emergency_alerts'
    )
    recipients_count = models.PositiveIntegerField(default=0)
    success_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"[{self.severity}] {self.title}"
