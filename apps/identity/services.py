"""Services for Identity app."""
import logging
import secrets
from typing import List, Optional

from django.db.models import Q

from apps.core.languages import Language
from .models import User, UserRole
from .dtos import UserDTO
from .permissions import get_user_permissions, is_valid_permission

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = {
    'name', 'email', 'role', 'is_verified_owner', 'building_number',
    'apartment_number', 'phone_number', 'preferred_language',
    'whatsapp_opt_in', 'is_active',
}
PROFILE_FIELDS = {'name', 'phone_number', 'preferred_language', 'whatsapp_opt_in'}


def to_user_dto(user: User) -> UserDTO:
    return UserDTO(
        id=user.id,
        username=user.username,
        email=user.email,
        name=user.display_name,
        role=user.role,
        is_active=user.is_active,
        is_verified_owner=user.is_verified_owner,
        building_number=user.building_number,
        apartment_number=user.apartment_number,
        phone_number=user.phone_number,
        preferred_language=user.preferred_language,
        whatsapp_opt_in=user.whatsapp_opt_in,
        permissions=get_user_permissions(user),
        last_login=user.last_login,
    )


def get_user_dto(user_id) -> UserDTO | None:
    try:
        return to_user_dto(User.objects.get(id=user_id))
    except User.DoesNotExist:
        return None


def list_users(search: Optional[str] = None, role: Optional[str] = None) -> list[UserDTO]:
    users = User.objects.all()
    if role:
        users = users.filter(role=role)
    if search:
        users = users.filter(
            Q(name__icontains=search)
            | Q(email__icontains=search)
            | Q(username__icontains=search)
            | Q(building_number__iexact=search)
            | Q(apartment_number__iexact=search)
        )
    return [to_user_dto(u) for u in users]


def _validate_user_fields(data: dict) -> None:
    if 'role' in data and data['role'] not in UserRole.values:
        raise ValueError(f"Invalid role: {data['role']}")
    if 'preferred_language' in data and data['preferred_language'] not in Language.values:
        raise ValueError(f"Unsupported language: {data['preferred_language']}")


def update_user(user_id, data: dict) -> UserDTO | None:
    """Apply an admin edit. Unknown keys and None values are ignored."""
    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    _validate_user_fields(changes)

    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None

    for key, value in changes.items():
        setattr(user, key, value)
    user.save()
    return to_user_dto(user)


def update_profile(user: User, data: dict) -> UserDTO:
    """Self-service edit limited to contact and language preferences."""
    changes = {k: v for k, v in data.items() if k in PROFILE_FIELDS and v is not None}
    _validate_user_fields(changes)
    for key, value in changes.items():
        setattr(user, key, value)
    user.save()
    return to_user_dto(user)


def deactivate_user(user_id) -> bool:
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return False
    user.is_active = False
    user.save(update_fields=['is_active'])
    return True


def generate_temporary_password() -> str:
    return secrets.token_urlsafe(12)


def reset_password(user_id) -> Optional[str]:
    """Set a random temporary password and return it once."""
    try:
        user = User.objects.get(id=user_id)
    except User.DoesNotExist:
        return None
    password = generate_temporary_password()
    user.set_password(password)
    user.save(update_fields=['password'])
    logger.info(f"Temporary password issued for user {user_id}")
    return password


# =============================================================================
# Permission management
# =============================================================================

def grant_permission(user: User, permission: str) -> bool:
    """Grant an individual permission. Returns False if already held."""
    if not is_valid_permission(permission):
        raise ValueError(f"Unknown permission: {permission}")
    granted = list(user.granted_permissions or [])
    if permission in granted:
        return False
    granted.append(permission)
    user.granted_permissions = granted
    user.save(update_fields=['granted_permissions'])
    return True


def revoke_permission(user: User, permission: str) -> bool:
    """Revoke an individually granted permission. Returns False if not held."""
    granted = list(user.granted_permissions or [])
    if permission not in granted:
        return False
    granted.remove(permission)
    user.granted_permissions = granted
    user.save(update_fields=['granted_permissions'])
    return True


def set_user_permissions(user: User, permissions: List[str]) -> List[str]:
    """Replace the individually granted permissions."""
    invalid = [p for p in permissions if not is_valid_permission(p)]
    if invalid:
        raise ValueError(f"Unknown permissions: {', '.join(invalid)}")
    user.granted_permissions = list(dict.fromkeys(permissions))
    user.save(update_fields=['granted_permissions'])
    return user.granted_permissions


def set_user_role(user: User, role: str) -> User:
    _validate_user_fields({'role': role})
    user.role = role
    user.save(update_fields=['role'])
    return user


def get_users_with_permission(permission: str) -> List[User]:
    return [u for u in User.objects.filter(is_active=True) if permission in get_user_permissions(u)]
