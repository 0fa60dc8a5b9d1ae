import uuid
from django.db import models


class AuditLog(models.Model):
    """
    Audit trail of who did what to which entity, and when.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    action = models.CharField(max_length=50, db_index=True, help_text="Action performed (e.g., create)")
    entity_type = models.CharField(max_length=50, db_index=True, help_text="Type of object acted on (e.g., Document)")
    entity_id = models.CharField(max_length=64, db_index=True, help_text="ID of the object acted on")
    entity_label = models.CharField(max_length=255, blank=True, help_text="Human-readable label of the object")

    user = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs'
    )
    details = models.JSONField(default=dict, blank=True, help_text="Additional context/metadata")
    ip_address = models.CharField(max_length=64, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ['-created_at']
        verbose_name = "Audit Log"
        verbose_name_plural = "Audit Logs"

    def __str__(self):
        return f"{self.action} on {self.entity_type} by {self.user}"


class SystemSetting(models.Model):
    """
    One row per overridden portal setting. Missing keys fall back to the
    defaults in settings_service.DEFAULT_SETTINGS.
    """
    key = models.CharField(max_length=100, primary_key=True)
    value = models.JSONField()
    updated_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['key']

    def __str__(self):
        return f"{self.key}={self.value!r}"
