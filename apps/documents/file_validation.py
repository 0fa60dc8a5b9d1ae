"""
Validation helpers for document uploads.
"""
import re
import time
from typing import List, Optional, Tuple
from django.core.files.uploadedfile import UploadedFile

DEFAULT_MAX_SIZE_MB = 10

ALLOWED_MIME_TYPES = [
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/vnd.ms-powerpoint',
    'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'text/plain',
    'text/csv',
    'image/jpeg',
    'image/png',
    'image/gif',
]

EXTENSION_MIME_TYPES = {
    'pdf': 'application/pdf',
    'doc': 'application/msword',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'xls': 'application/vnd.ms-excel',
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'ppt': 'application/vnd.ms-powerpoint',
    'pptx': 'application/vnd.openxmlformats-officedocument.presentationml.presentation',
    'txt': 'text/plain',
    'csv': 'text/csv',
    'jpg': 'image/jpeg',
    'jpeg': 'image/jpeg',
    'png': 'image/png',
    'gif': 'image/gif',
}

# Browsers send this when they cannot tell the type
GENERIC_MIME_TYPES = ('', 'application/octet-stream')


def get_file_extension(filename: str) -> str:
    if not filename or '.' not in filename:
        return ''
    return filename.rsplit('.', 1)[-1].lower()


def get_file_type_from_extension(extension: str) -> Optional[str]:
    return EXTENSION_MIME_TYPES.get((extension or '').lower())


def resolve_mime_type(filename: str, content_type: Optional[str]) -> Optional[str]:
    """Declared content type, or one inferred from the extension when absent."""
    if content_type and content_type not in GENERIC_MIME_TYPES:
        return content_type
    return get_file_type_from_extension(get_file_extension(filename))


def get_allowed_file_extensions(allowed_types: Optional[List[str]] = None) -> List[str]:
    allowed_types = allowed_types or ALLOWED_MIME_TYPES
    return [ext for ext, mime in EXTENSION_MIME_TYPES.items() if mime in allowed_types]


def format_file_size(size_bytes: int) -> str:
    """Human-readable size, e.g. 1536 -> '1.5 KB'."""
    if size_bytes <= 0:
        return '0 Bytes'
    units = ['Bytes', 'KB', 'MB', 'GB', 'TB']
    i = 0
    while size_bytes >= 1024 ** (i + 1) and i < len(units) - 1:
        i += 1
    value = round(size_bytes / (1024 ** i), 2)
    return f"{value:g} {units[i]}"


def validate_upload_file(
    file: UploadedFile,
    max_size_mb: int = DEFAULT_MAX_SIZE_MB,
    allowed_types: Optional[List[str]] = None,
) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate an uploaded document.

    Returns:
        Tuple of (is_valid, error_message, resolved_mime_type)
    """
    allowed_types = allowed_types or ALLOWED_MIME_TYPES

    if file.size > max_size_mb * 1024 * 1024:
        return False, f"File too large. Maximum size is {max_size_mb} MB", None

    mime_type = resolve_mime_type(file.name, getattr(file, 'content_type', None))
    if mime_type not in allowed_types:
        allowed = ', '.join(get_allowed_file_extensions(allowed_types))
        return False, f"Invalid file type: {mime_type or 'unknown'}. Allowed: {allowed}", None

    return True, None, mime_type


def sanitize_filename(filename: str) -> str:
    return re.sub(r'[^a-zA-Z0-9.\-]', '_', filename or 'document')


def build_document_path(user_id, filename: str, category: str, language: str) -> str:
    """documents/<category>/<language>/<user>_<millis>_<sanitized name>"""
    timestamp = int(time.time() * 1000)
    return f"documents/{category}/{language}/{user_id}_{timestamp}_{sanitize_filename(filename)}"
