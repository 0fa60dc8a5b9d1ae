"""
Identity API endpoints with JWT authentication.

Provides login, logout, token refresh, profile and user administration.
JWT tokens travel in httpOnly cookies so the API stays stateless on Lambda.
"""
import os
from typing import List, Optional
from uuid import UUID

from django.conf import settings
from django.contrib.auth import authenticate
from django.contrib.auth.signals import user_logged_in
from django.http import HttpRequest, HttpResponse
from ninja import Router, Schema
from ninja.errors import HttpError

from apps.governance.audit_service import AuditAction, log_action
from .decorators import require_any_permission, require_auth, require_permission
from .dtos import PasswordResetOut, PermissionsIn, PermissionsOut, ProfileUpdate, UserDTO, UserUpdate
from .jwt_auth import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    create_access_token,
    create_token_pair,
    get_access_token_cookie_settings,
    get_refresh_token_cookie_settings,
    get_user_id_from_token,
)
from .models import User
from .permissions import Permissions, get_user_permissions
from . import services

router = Router(tags=["Identity"])


# =============================================================================
# Schemas
# =============================================================================

class LoginSchema(Schema):
    username: str
    password: str


class TokenResponse(Schema):
    success: bool
    user: Optional[UserDTO] = None
    message: Optional[str] = None


class RoleIn(Schema):
    role: str


class PermissionOut(Schema):
    permission: str
    changed: bool


# =============================================================================
# Helper Functions
# =============================================================================

def is_production() -> bool:
    """Check if running in production (Lambda or DEBUG=False)."""
    return bool(os.getenv('AWS_LAMBDA_FUNCTION_NAME')) or not settings.DEBUG


def json_response(data: TokenResponse) -> HttpResponse:
    return HttpResponse(data.model_dump_json(), content_type='application/json')


def get_target_user(user_id: UUID) -> User:
    try:
        return User.objects.get(id=user_id)
    except User.DoesNotExist:
        raise HttpError(404, "User not found")


def permissions_out(user: User) -> PermissionsOut:
    return PermissionsOut(
        user_id=user.id,
        role=user.role,
        granted=list(user.granted_permissions or []),
        effective=get_user_permissions(user),
    )


# =============================================================================
# Auth Endpoints
# =============================================================================

@router.post("/login", response=TokenResponse, auth=None)
def login_user(request: HttpRequest, payload: LoginSchema):
    """
    Authenticate a user and set JWT tokens in httpOnly cookies.
    Accepts either the username or the email address.
    """
    user = authenticate(request, username=payload.username, password=payload.password)
    if user is None:
        match = User.objects.filter(email__iexact=payload.username).first()
        if match:
            user = authenticate(request, username=match.username, password=payload.password)

    if user is None:
        raise HttpError(401, "Invalid username or password")
    if not user.is_active:
        raise HttpError(401, "Account is disabled")

    access_token, refresh_token = create_token_pair(user.id, user.role)
    user_logged_in.send(sender=user.__class__, request=request, user=user)

    response = json_response(TokenResponse(success=True, user=services.to_user_dto(user)))

    prod = is_production()
    response.set_cookie(ACCESS_COOKIE, access_token, **get_access_token_cookie_settings(prod))
    response.set_cookie(REFRESH_COOKIE, refresh_token, **get_refresh_token_cookie_settings(prod))
    return response


@router.post("/logout", response=TokenResponse, auth=None)
def logout_user(request: HttpRequest):
    """Clear authentication cookies."""
    response = json_response(TokenResponse(success=True, message="Logged out"))
    response.delete_cookie(ACCESS_COOKIE, path='/')
    response.delete_cookie(REFRESH_COOKIE, path='/')
    return response


@router.post("/refresh", response=TokenResponse, auth=None)
def refresh_token(request: HttpRequest):
    """Issue a new access token from a valid refresh token cookie."""
    token = request.COOKIES.get(REFRESH_COOKIE)
    if not token:
        raise HttpError(401, "No refresh token")

    user_id = get_user_id_from_token(token, token_type='refresh')
    user = User.objects.filter(id=user_id, is_active=True).first() if user_id else None
    if user is None:
        raise HttpError(401, "Invalid refresh token")

    response = json_response(TokenResponse(success=True, user=services.to_user_dto(user)))
    response.set_cookie(
        ACCESS_COOKIE,
        create_access_token(user.id, user.role),
        **get_access_token_cookie_settings(is_production()),
    )
    return response


@router.get("/me", response=UserDTO, auth=None)
def get_me(request: HttpRequest):
    user = require_auth(request)
    return services.to_user_dto(user)


@router.put("/me", response=UserDTO, auth=None)
def update_me(request: HttpRequest, payload: ProfileUpdate):
    """Self-service profile edit: name, phone, language and WhatsApp opt-in."""
    user = require_auth(request)
    try:
        return services.update_profile(user, payload.dict(exclude_unset=True))
    except ValueError as e:
        raise HttpError(400, str(e))


# =============================================================================
# User Management Endpoints
# =============================================================================

@router.get("/users", response=List[UserDTO], auth=None)
def list_all_users(request: HttpRequest, search: Optional[str] = None, role: Optional[str] = None):
    require_any_permission(request, [Permissions.VIEW_USERS, Permissions.MANAGE_USERS])
    return services.list_users(search=search, role=role)


@router.get("/users/{user_id}", response=UserDTO, auth=None)
def get_user(request: HttpRequest, user_id: UUID):
    require_any_permission(request, [Permissions.VIEW_USERS, Permissions.MANAGE_USERS])
    return services.to_user_dto(get_target_user(user_id))


@router.put("/users/{user_id}", response=UserDTO, auth=None)
def update_user(request: HttpRequest, user_id: UUID, payload: UserUpdate):
    """Admin edit of any user. Requires manageUsers."""
    admin = require_permission(request, Permissions.MANAGE_USERS)
    changes = payload.dict(exclude_unset=True)

    try:
        updated = services.update_user(user_id, changes)
    except ValueError as e:
        raise HttpError(400, str(e))
    if not updated:
        raise HttpError(404, "User not found")

    log_action(
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user_id,
        entity_label=updated.email or updated.username,
        user=admin,
        details={"fields": sorted(changes)},
    )
    return updated


@router.delete("/users/{user_id}", response={204: None}, auth=None)
def deactivate_user(request: HttpRequest, user_id: UUID):
    """Deactivate a user account. Accounts are never hard-deleted."""
    admin = require_permission(request, Permissions.MANAGE_USERS)
    if admin.id == user_id:
        raise HttpError(400, "You cannot deactivate your own account")
    if not services.deactivate_user(user_id):
        raise HttpError(404, "User not found")

    log_action(action=AuditAction.DELETE, entity_type="User", entity_id=user_id, user=admin)
    return 204


@router.post("/users/{user_id}/reset-password", response=PasswordResetOut, auth=None)
def reset_user_password(request: HttpRequest, user_id: UUID):
    """Generate a temporary password. It is returned once and never stored in clear."""
    admin = require_permission(request, Permissions.MANAGE_USERS)
    password = services.reset_password(user_id)
    if password is None:
        raise HttpError(404, "User not found")

    log_action(
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user_id,
        user=admin,
        details={"password_reset": True},
    )
    return PasswordResetOut(user_id=user_id, temporary_password=password)


# =============================================================================
# Permissions
# =============================================================================

@router.get("/permissions", response=List[str], auth=None)
def list_permissions(request: HttpRequest):
    require_auth(request)
    return Permissions.all()


@router.get("/users/{user_id}/permissions", response=PermissionsOut, auth=None)
def get_permissions(request: HttpRequest, user_id: UUID):
    require_any_permission(request, [Permissions.VIEW_USERS, Permissions.MANAGE_USERS])
    return permissions_out(get_target_user(user_id))


@router.put("/users/{user_id}/permissions", response=PermissionsOut, auth=None)
def set_permissions(request: HttpRequest, user_id: UUID, payload: PermissionsIn):
    """Replace a user's individually granted permissions."""
    admin = require_permission(request, Permissions.MANAGE_USERS)
    user = get_target_user(user_id)
    try:
        granted = services.set_user_permissions(user, payload.permissions)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user.id,
        entity_label=str(user),
        user=admin,
        details={"permissions": granted},
    )
    return permissions_out(user)


@router.post("/users/{user_id}/permissions/{permission}", response=PermissionOut, auth=None)
def grant_permission(request: HttpRequest, user_id: UUID, permission: str):
    require_permission(request, Permissions.MANAGE_USERS)
    user = get_target_user(user_id)
    try:
        changed = services.grant_permission(user, permission)
    except ValueError as e:
        raise HttpError(400, str(e))
    return PermissionOut(permission=permission, changed=changed)


@router.delete("/users/{user_id}/permissions/{permission}", response=PermissionOut, auth=None)
def revoke_permission(request: HttpRequest, user_id: UUID, permission: str):
    require_permission(request, Permissions.MANAGE_USERS)
    user = get_target_user(user_id)
    return PermissionOut(permission=permission, changed=services.revoke_permission(user, permission))


@router.put("/users/{user_id}/role", response=PermissionsOut, auth=None)
def set_role(request: HttpRequest, user_id: UUID, payload: RoleIn):
    admin = require_permission(request, Permissions.MANAGE_USERS)
    user = get_target_user(user_id)
    try:
        services.set_user_role(user, payload.role)
    except ValueError as e:
        raise HttpError(400, str(e))

    log_action(
        action=AuditAction.UPDATE,
        entity_type="User",
        entity_id=user.id,
        entity_label=str(user),
        user=admin,
        details={"role": payload.role},
    )
    return permissions_out(user)
