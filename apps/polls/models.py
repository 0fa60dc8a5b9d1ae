import uuid
from django.db import models
from django.utils import timezone

from apps.core.languages import Language


class PollType(models.TextChoices):
    SINGLE_CHOICE = 'single_choice', 'Single choice'
    MULTIPLE_CHOICE = 'multiple_choice', 'Multiple choice'


class PollStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PUBLISHED = 'published', 'Published'
    CLOSED = 'closed', 'Closed'


class Poll(models.Model):
    """A community poll. Only published polls accept votes."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    question = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    poll_type = models.CharField(
        max_length=20,
        choices=PollType.choices,
        default=PollType.SINGLE_CHOICE
    )
    status = models.CharField(
        max_length=20,
        choices=PollStatus.choices,
        default=PollStatus.DRAFT,
        db_index=True,
    )
    is_anonymous = models.BooleanField(default=True)
    max_choices = models.PositiveSmallIntegerField(null=True, blank=True)
    require_explanation = models.BooleanField(default=False)
    end_date = models.DateTimeField(null=True, blank=True)

    created_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='polls'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.question

    @property
    def is_expired(self) -> bool:
        return self.end_date is not None and timezone.now() > self.end_date


class PollOption(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    poll = models.ForeignKey(Poll, on_delete=models.CASCADE, related_name='options')
    text = models.CharField(max_length=255)
    order_index = models.PositiveSmallIntegerField(default=0)

    class Meta:
        ordering = ['order_index']

    def __str__(self):
        return self.text


class Vote(models.Model):
    """
    One row per selected option. A multiple-choice ballot is several rows
    sharing poll and user.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    poll = models.ForeignKey(Poll, on_delete=models.CASCADE, related_name='votes')
    option = models.ForeignKey(PollOption, on_delete=models.CASCADE, related_name='votes')
    user = models.ForeignKey('identity.User', on_delete=models.CASCADE, related_name='poll_votes')
    explanation = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['poll', 'user', 'option'],
                name='unique_vote_per_option',
            ),
        ]


class PollTranslation(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    poll = models.ForeignKey(Poll, on_delete=models.CASCADE, related_name='translations')
    language = models.CharField(max_length=10, choices=Language.choices)
    question = models.CharField(max_length=500)
    description = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['poll', 'language'],
                name='unique_poll_translation_language',
            ),
        ]

    def __str__(self):
        return f"{self.poll_id} ({self.language})"
