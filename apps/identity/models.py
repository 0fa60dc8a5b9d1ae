import uuid
from django.db import models
from django.contrib.auth.models import AbstractUser

from apps.core.languages import Language


class UserRole(models.TextChoices):
    ADMIN = 'ADMIN', 'Administrator'
    CONTENT_EDITOR = 'CONTENT_EDITOR', 'Content Editor'
    OWNER = 'OWNER', 'Owner'


class User(AbstractUser):
    """
    Portal user. Owners are verified against their building and apartment;
    staff accounts carry extra permissions on top of their role.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255, blank=True)
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.OWNER
    )
    is_verified_owner = models.BooleanField(default=False)
    building_number = models.CharField(max_length=20, blank=True)
    apartment_number = models.CharField(max_length=20, blank=True)
    phone_number = models.CharField(max_length=20, blank=True, db_index=True)
    preferred_language = models.CharField(
        max_length=10,
        choices=Language.choices,
        default=Language.FRENCH
    )
    # Permissions granted individually on top of the role defaults
    granted_permissions = models.JSONField(default=list, blank=True)
    whatsapp_opt_in = models.BooleanField(default=False)

    class Meta:
        ordering = ['username']

    def __str__(self):
        return self.email or self.username

    @property
    def display_name(self) -> str:
        return self.name or self.get_full_name() or self.email or self.username


class RegistrationStatus(models.TextChoices):
    PENDING = 'PENDING', 'Pending'
    APPROVED = 'APPROVED', 'Approved'
    REJECTED = 'REJECTED', 'Rejected'


class OwnerRegistration(models.Model):
    """
    Self-service sign-up request from an apartment owner.
    An administrator approves it into a verified owner account.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=255)
    email = models.EmailField(unique=True)
    building_number = models.CharField(max_length=20)
    apartment_number = models.CharField(max_length=20)
    phone_number = models.CharField(max_length=20)
    preferred_language = models.CharField(
        max_length=10,
        choices=Language.choices,
        default=Language.FRENCH
    )

    status = models.CharField(
        max_length=20,
        choices=RegistrationStatus.choices,
        default=RegistrationStatus.PENDING,
        db_index=True,
    )
    notes = models.TextField(blank=True)
    reviewed_by = models.ForeignKey(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='reviewed_registrations'
    )
    reviewed_at = models.DateTimeField(null=True, blank=True)
    user = models.OneToOneField(
        'identity.User',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='owner_registration'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Registration for {self.email} ({self.status})"
