import uuid
from django.db import models
from django.core.validators import MaxValueValidator, MinValueValidator

from apps.core.languages import Language


class TranslationStatus(models.TextChoices):
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class TranslationServiceName(models.TextChoices):
    DEEPL = 'deepl', 'DeepL'
    OPENAI = 'openai', 'OpenAI'


class DocumentTranslationJob(models.Model):
    """
    One requested translation of a document into one target language.
    Rows form the work queue polled by the translation worker.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document = models.ForeignKey(
        'documents.Document',
        on_delete=models.CASCADE,
        related_name='translation_jobs'
    )
    source_language = models.CharField(max_length=10, choices=Language.choices)
    target_language = models.CharField(max_length=10, choices=Language.choices)

    status = models.CharField(
        max_length=20,
        choices=TranslationStatus.choices,
        default=TranslationStatus.PENDING,
        db_index=True,
    )
    attempts = models.PositiveIntegerField(default=0)
    max_attempts = models.PositiveIntegerField(default=3)
    progress = models.PositiveSmallIntegerField(default=0)
    error_message = models.TextField(blank=True, null=True)

    requested_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='translation_requests'
    )
    service_used = models.CharField(max_length=20, choices=TranslationServiceName.choices, blank=True)

    # Cost tracking, in cents
    estimated_cost_cents = models.PositiveIntegerField(null=True, blank=True)
    actual_cost_cents = models.PositiveIntegerField(null=True, blank=True)

    # Result
    translated_content = models.TextField(blank=True)
    translated_document = models.ForeignKey(
        'documents.Document',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    confidence_score = models.FloatField(null=True, blank=True)
    quality_score = models.FloatField(null=True, blank=True)

    # Requester feedback
    user_rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)]
    )
    user_feedback = models.TextField(blank=True)

    started_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['document', 'target_language'],
                name='unique_document_translation_target',
            ),
        ]

    def __str__(self):
        return f"{self.document_id} -> {self.target_language} ({self.status})"

    @property
    def can_retry(self) -> bool:
        return self.attempts < self.max_attempts
