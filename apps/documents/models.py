import uuid
from django.db import models

from apps.core.languages import Language


class DocumentCategory(models.TextChoices):
    COMITE_DE_SUIVI = 'comiteDeSuivi', 'Comité de Suivi'
    SOCIETE_DE_GESTION = 'societeDeGestion', 'Société de Gestion'
    LEGAL = 'legal', 'Legal Documents'
    GENERAL = 'general', 'General'
    FINANCE = 'finance', 'Finance'


class TranslationQuality(models.TextChoices):
    ORIGINAL = 'original', 'Original'
    MACHINE = 'machine', 'Machine'
    HUMAN = 'human', 'Human'


class DocumentTranslationStatus(models.TextChoices):
    NOT_REQUESTED = 'not_requested', 'Not requested'
    PENDING = 'pending', 'Pending'
    PROCESSING = 'processing', 'Processing'
    COMPLETED = 'completed', 'Completed'
    FAILED = 'failed', 'Failed'


class Document(models.Model):
    """
    A file in the community library. Translations are Documents too,
    pointing back to their original through original_document.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    title = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    file = models.FileField(max_length=500)
    file_name = models.CharField(max_length=255, blank=True)
    file_size = models.BigIntegerField(default=0)
    file_type = models.CharField(max_length=150)

    category = models.CharField(
        max_length=30,
        choices=DocumentCategory.choices,
        default=DocumentCategory.GENERAL,
        db_index=True,
    )
    language = models.CharField(
        max_length=10,
        choices=Language.choices,
        default=Language.FRENCH,
        db_index=True,
    )
    source_language = models.CharField(max_length=10, choices=Language.choices, blank=True)

    is_published = models.BooleanField(default=True)
    view_count = models.PositiveIntegerField(default=0)
    download_count = models.PositiveIntegerField(default=0)

    # Translation bookkeeping
    original_document = models.ForeignKey(
        'self',
        on_delete=models.CASCADE,
        null=True,
        blank=True,
        related_name='translations'
    )
    is_translation = models.BooleanField(default=False)
    translation_quality = models.CharField(
        max_length=20,
        choices=TranslationQuality.choices,
        default=TranslationQuality.ORIGINAL
    )
    translation_status = models.CharField(
        max_length=20,
        choices=DocumentTranslationStatus.choices,
        default=DocumentTranslationStatus.NOT_REQUESTED
    )
    content_extractable = models.BooleanField(default=False)

    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='documents'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['category', 'language']),
        ]

    def __str__(self):
        return f"{self.title} ({self.language})"

    @property
    def effective_source_language(self) -> str:
        return self.source_language or self.language
