import logging
from typing import Optional, Tuple
from django.utils import timezone
from django.db import transaction

from apps.core.languages import Language
from apps.governance import settings_service
from apps.governance.audit_service import AuditAction, log_action
from .models import OwnerRegistration, RegistrationStatus, User, UserRole
from .dtos import RegistrationDTO
from .services import generate_temporary_password

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'email', 'building_number', 'apartment_number', 'phone_number')


def to_registration_dto(registration: OwnerRegistration) -> RegistrationDTO:
    return RegistrationDTO(
        id=registration.id,
        name=registration.name,
        email=registration.email,
        building_number=registration.building_number,
        apartment_number=registration.apartment_number,
        phone_number=registration.phone_number,
        preferred_language=registration.preferred_language,
        status=registration.status,
        notes=registration.notes,
        user_id=registration.user_id,
        reviewed_at=registration.reviewed_at,
        created_at=registration.created_at,
    )


class RegistrationService:
    @staticmethod
    def submit(data: dict) -> OwnerRegistration:
        """
        Records an owner's sign-up request.
        Every contact field is mandatory and an email can only register once.
        """
        if not settings_service.get_setting('registration_enabled'):
            raise ValueError("Owner registration is currently closed")

        missing = [f for f in REQUIRED_FIELDS if not (data.get(f) or '').strip()]
        if missing:
            raise ValueError(f"Missing required fields: {', '.join(missing)}")

        email = data['email'].strip().lower()

        if User.objects.filter(email__iexact=email).exists():
            raise ValueError("A user with this email already exists")
        if OwnerRegistration.objects.filter(email__iexact=email).exists():
            raise ValueError("A registration request with this email already exists")

        language = data.get('preferred_language') or Language.FRENCH
        if language not in Language.values:
            raise ValueError(f"Unsupported language: {language}")

        registration = OwnerRegistration.objects.create(
            name=data['name'].strip(),
            email=email,
            building_number=data['building_number'].strip(),
            apartment_number=data['apartment_number'].strip(),
            phone_number=data['phone_number'].strip(),
            preferred_language=language,
        )
        logger.info(f"Owner registration submitted for {email}")
        return registration

    @staticmethod
    @transaction.atomic
    def approve(registration_id, reviewer: User, notes: str = "") -> Tuple[OwnerRegistration, User, str]:
        """
        Approves a pending registration:
        1. Creates a verified owner account
        2. Links it to the registration
        3. Returns the one-time temporary password
        """
        registration = OwnerRegistration.objects.select_for_update().get(id=registration_id)

        if registration.status != RegistrationStatus.PENDING:
            raise ValueError(f"Cannot approve registration with status '{registration.status}'")
        if User.objects.filter(email__iexact=registration.email).exists():
            raise ValueError("A user with this email already exists")

        password = generate_temporary_password()
        user = User.objects.create_user(
            username=registration.email,
            email=registration.email,
            password=password,
            name=registration.name,
            role=UserRole.OWNER,
            is_verified_owner=True,
            building_number=registration.building_number,
            apartment_number=registration.apartment_number,
            phone_number=registration.phone_number,
            preferred_language=registration.preferred_language,
        )

        registration.status = RegistrationStatus.APPROVED
        registration.user = user
        registration.reviewed_by = reviewer
        registration.reviewed_at = timezone.now()
        registration.notes = notes or registration.notes
        registration.save()

        log_action(
            action=AuditAction.APPROVE,
            entity_type="OwnerRegistration",
            entity_id=registration.id,
            entity_label=registration.email,
            user=reviewer,
            details={"user_id": str(user.id)},
        )
        logger.info(f"Owner registration {registration.id} approved")
        return registration, user, password

    @staticmethod
    def reject(registration_id, reviewer: User, notes: Optional[str] = None) -> OwnerRegistration:
        registration = OwnerRegistration.objects.get(id=registration_id)

        if registration.status != RegistrationStatus.PENDING:
            raise ValueError(f"Cannot reject registration with status '{registration.status}'")

        registration.status = RegistrationStatus.REJECTED
        registration.reviewed_by = reviewer
        registration.reviewed_at = timezone.now()
        registration.notes = notes or "No reason provided."
        registration.save()

        log_action(
            action=AuditAction.REJECT,
            entity_type="OwnerRegistration",
            entity_id=registration.id,
            entity_label=registration.email,
            user=reviewer,
            details={"notes": registration.notes},
        )
        return registration

    @staticmethod
    def delete(registration_id, reviewer: User) -> bool:
        deleted, _ = OwnerRegistration.objects.filter(id=registration_id).delete()
        if deleted:
            log_action(
                action=AuditAction.DELETE,
                entity_type="OwnerRegistration",
                entity_id=registration_id,
                user=reviewer,
            )
        return bool(deleted)
