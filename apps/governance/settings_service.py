"""
Portal-wide settings stored as key/value overrides on top of defaults.
"""
import logging
from typing import Any, Dict

from django.db import transaction

from apps.core.languages import Language
from .models import SystemSetting

logger = logging.getLogger(__name__)

DEFAULT_SETTINGS: Dict[str, Any] = {
    'site_name': "Costa Beach 3",
    'site_description': "Premier beachfront community portal",
    'contact_email': "admin@costabeach3.com",
    'support_phone': "+212 522 123 456",
    'maintenance_mode': False,
    'registration_enabled': True,
    'email_notifications_enabled': True,
    'whatsapp_notifications_enabled': True,
    'max_file_upload_size_mb': 10,
    'document_retention_days': 365,
    'session_timeout_minutes': 60,
    'default_language': Language.FRENCH.value,
    'allowed_languages': [Language.FRENCH.value, Language.ENGLISH.value, Language.ARABIC.value],
    'require_email_verification': True,
    'allow_guest_access': False,
    'moderate_comments': True,
    'enable_audit_logs': True,
    'auto_translate_documents': True,
}

POSITIVE_INT_SETTINGS = ('max_file_upload_size_mb', 'document_retention_days', 'session_timeout_minutes')


def get_settings() -> Dict[str, Any]:
    values = dict(DEFAULT_SETTINGS)
    for row in SystemSetting.objects.all():
        if row.key in DEFAULT_SETTINGS:
            values[row.key] = row.value
    return values


def get_setting(key: str) -> Any:
    if key not in DEFAULT_SETTINGS:
        raise KeyError(key)
    row = SystemSetting.objects.filter(key=key).first()
    return row.value if row else DEFAULT_SETTINGS[key]


def _validate(values: Dict[str, Any]) -> None:
    for key, value in values.items():
        default = DEFAULT_SETTINGS[key]
        if isinstance(default, bool):
            if not isinstance(value, bool):
                raise ValueError(f"{key} must be a boolean")
        elif isinstance(default, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{key} must be an integer")
        elif isinstance(default, list):
            if not isinstance(value, list):
                raise ValueError(f"{key} must be a list")
        elif not isinstance(value, str):
            raise ValueError(f"{key} must be a string")

    for key in POSITIVE_INT_SETTINGS:
        if key in values and values[key] <= 0:
            raise ValueError(f"{key} must be greater than zero")

    allowed = values['allowed_languages']
    unknown = [lang for lang in allowed if lang not in Language.values]
    if unknown:
        raise ValueError(f"Unsupported languages: {', '.join(unknown)}")
    if not allowed:
        raise ValueError("At least one language must be allowed")
    if values['default_language'] not in allowed:
        raise ValueError("Default language must be one of the allowed languages")


@transaction.atomic
def update_settings(changes: Dict[str, Any], updated_by=None) -> Dict[str, Any]:
    """
    Validate and persist a partial update. Raises ValueError for unknown
    keys or invalid values; nothing is written in that case.
    """
    unknown = [k for k in changes if k not in DEFAULT_SETTINGS]
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(unknown)}")

    merged = get_settings()
    merged.update(changes)
    _validate({k: merged[k] for k in changes} | {
        'allowed_languages': merged['allowed_languages'],
        'default_language': merged['default_language'],
    })

    for key, value in changes.items():
        SystemSetting.objects.update_or_create(
            key=key,
            defaults={'value': value, 'updated_by': updated_by},
        )
    logger.info(f"System settings updated: {', '.join(sorted(changes))}")
    return get_settings()


def reset_settings() -> Dict[str, Any]:
    SystemSetting.objects.all().delete()
    return dict(DEFAULT_SETTINGS)
