"""Owner self-registration and its administrative review."""
from typing import List, Optional
from uuid import UUID

from django.http import HttpRequest
from ninja import Router
from ninja.errors import HttpError

from .decorators import require_permission
from .dtos import RegistrationApprovalOut, RegistrationDTO, RegistrationIn, RegistrationReviewIn
from .models import OwnerRegistration, RegistrationStatus
from .permissions import Permissions
from .registration_service import RegistrationService, to_registration_dto
from .services import to_user_dto

router = Router(tags=["Registrations"])


@router.post("", response={201: RegistrationDTO}, auth=None)
def submit_registration(request: HttpRequest, payload: RegistrationIn):
    """Public endpoint: an owner requests an account."""
    try:
        registration = RegistrationService.submit(payload.dict())
    except ValueError as e:
        raise HttpError(400, str(e))
    return 201, to_registration_dto(registration)


@router.get("", response=List[RegistrationDTO], auth=None)
def list_registrations(request: HttpRequest, status: Optional[str] = None):
    require_permission(request, Permissions.APPROVE_REGISTRATIONS)

    registrations = OwnerRegistration.objects.all()
    if status:
        if status not in RegistrationStatus.values:
            raise HttpError(400, f"Invalid status: {status}")
        registrations = registrations.filter(status=status)
    return [to_registration_dto(r) for r in registrations]


@router.get("/{registration_id}", response=RegistrationDTO, auth=None)
def get_registration(request: HttpRequest, registration_id: UUID):
    require_permission(request, Permissions.APPROVE_REGISTRATIONS)
    try:
        return to_registration_dto(OwnerRegistration.objects.get(id=registration_id))
    except OwnerRegistration.DoesNotExist:
        raise HttpError(404, "Registration not found")


@router.post("/{registration_id}/approve", response=RegistrationApprovalOut, auth=None)
def approve_registration(request: HttpRequest, registration_id: UUID, payload: RegistrationReviewIn):
    """Create the verified owner account. The temporary password is shown only here."""
    reviewer = require_permission(request, Permissions.APPROVE_REGISTRATIONS)
    notes = payload.notes

    try:
        registration, user, password = RegistrationService.approve(registration_id, reviewer, notes or "")
    except OwnerRegistration.DoesNotExist:
        raise HttpError(404, "Registration not found")
    except ValueError as e:
        raise HttpError(400, str(e))

    return RegistrationApprovalOut(
        registration=to_registration_dto(registration),
        user=to_user_dto(user),
        temporary_password=password,
    )


@router.post("/{registration_id}/reject", response=RegistrationDTO, auth=None)
def reject_registration(request: HttpRequest, registration_id: UUID, payload: RegistrationReviewIn):
    reviewer = require_permission(request, Permissions.APPROVE_REGISTRATIONS)

    try:
        registration = RegistrationService.reject(registration_id, reviewer, payload.notes)
    except OwnerRegistration.DoesNotExist:
        raise HttpError(404, "Registration not found")
    except ValueError as e:
        raise HttpError(400, str(e))
    return to_registration_dto(registration)


@router.delete("/{registration_id}", response={204: None}, auth=None)
def delete_registration(request: HttpRequest, registration_id: UUID):
    reviewer = require_permission(request, Permissions.APPROVE_REGISTRATIONS)
    if not RegistrationService.delete(registration_id, reviewer):
        raise HttpError(404, "Registration not found")
    return 204
