"""
JWT Authentication utilities for the portal.

Provides token generation, validation, and cookie management
for stateless authentication compatible with AWS Lambda.
"""
import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
from uuid import UUID
from django.conf import settings


JWT_ALGORITHM = 'HS256'
ACCESS_TOKEN_EXPIRE_MINUTES = 15
REFRESH_TOKEN_EXPIRE_DAYS = 7

ACCESS_COOKIE = 'access_token'
REFRESH_COOKIE = 'refresh_token'


def _secret() -> str:
    return getattr(settings, 'JWT_SECRET', None) or settings.SECRET_KEY


def create_access_token(user_id: UUID, role: str) -> str:
    """
    Create a short-lived access token carrying the user's role.
    Expires in 15 minutes.
    """
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'role': role,
        'exp': now + timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES),
        'iat': now,
        'type': 'access'
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_refresh_token(user_id: UUID) -> str:
    """
    Create a long-lived refresh token.
    Expires in 7 days.
    """
    now = datetime.now(timezone.utc)
    payload = {
        'sub': str(user_id),
        'exp': now + timedelta(days=REFRESH_TOKEN_EXPIRE_DAYS),
        'iat': now,
        'type': 'refresh'
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def create_token_pair(user_id: UUID, role: str) -> Tuple[str, str]:
    """
    Returns:
        (access_token, refresh_token)
    """
    return (
        create_access_token(user_id, role),
        create_refresh_token(user_id)
    )


def decode_token(token: str) -> Optional[dict]:
    """
    Decode and validate a JWT token.

    Returns:
        Decoded payload if valid, None if invalid/expired.
    """
    try:
        return jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM])
    except jwt.InvalidTokenError:
        return None


def get_user_id_from_token(token: str, token_type: str = 'access') -> Optional[UUID]:
    """Extract the user id from a valid token of the expected type."""
    payload = decode_token(token)
    if not payload or payload.get('type') != token_type or 'sub' not in payload:
        return None
    try:
        return UUID(payload['sub'])
    except ValueError:
        return None


def get_cookie_settings(is_production: bool = False) -> dict:
    """
    Production: Secure, SameSite=Lax
    Development: Not secure (localhost), SameSite=Lax
    """
    return {
        'httponly': True,
        'secure': is_production,
        'samesite': 'Lax',
        'path': '/',
    }


def get_access_token_cookie_settings(is_production: bool = False) -> dict:
    cookie = get_cookie_settings(is_production)
    cookie['max_age'] = ACCESS_TOKEN_EXPIRE_MINUTES * 60
    return cookie


def get_refresh_token_cookie_settings(is_production: bool = False) -> dict:
    cookie = get_cookie_settings(is_production)
    cookie['max_age'] = REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60
    return cookie
