from functools import wraps
from typing import Callable, Iterable
from ninja.errors import HttpError
from django.http import HttpRequest
from .permissions import get_user_permissions


def require_auth(request: HttpRequest):
    """Require an authenticated user. Raises 401 otherwise."""
    user = getattr(request, 'user', None)
    if user is None or not user.is_authenticated:
        raise HttpError(401, "Authentication required")
    return user


def require_permission(request: HttpRequest, permission: str):
    """Require a specific permission. Raises 401/403."""
    user = require_auth(request)
    if permission not in get_user_permissions(user):
        raise HttpError(403, f"Permission denied: {permission}")
    return user


def require_any_permission(request: HttpRequest, permissions: Iterable[str]):
    """Require at least one of the given permissions."""
    user = require_auth(request)
    perms = get_user_permissions(user)
    if not any(p in perms for p in permissions):
        raise HttpError(403, "Permission denied")
    return user


def has_permission(required_perm: str):
    """
    Decorator to enforce a specific permission on a Django Ninja endpoint.

    Usage:
        @router.get("/some-path", auth=None)
        @has_permission(Permissions.MANAGE_SETTINGS)
        def my_view(request):
            ...
    """
    def decorator(view_func: Callable):
        @wraps(view_func)
        def wrapper(request: HttpRequest, *args, **kwargs):
            require_permission(request, required_perm)
            return view_func(request, *args, **kwargs)
        return wrapper
    return decorator
