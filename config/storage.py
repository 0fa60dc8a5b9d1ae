"""
Storage configuration for the community portal.
Uploaded documents go to a private S3 bucket in production and to
MEDIA_ROOT during development.
"""
import os
from pathlib import Path

# Check if S3 should be used
USE_S3 = os.getenv('USE_S3_STORAGE', 'false').lower() == 'true'

STATICFILES_BACKEND = {
    'BACKEND': 'django.contrib.staticfiles.storage.StaticFilesStorage',
}


def get_storage_settings(base_dir: Path) -> dict:
    """
    Returns storage-related settings based on environment configuration.

    Args:
        base_dir: The BASE_DIR from Django settings

    Returns:
        Dictionary of storage settings to be merged into Django settings
    """
    if USE_S3:
        # Production: private bucket, documents served through signed URLs
        return {
            'USE_S3_STORAGE': True,
            'STORAGES': {
                'default': {
                    'BACKEND': 'storages.backends.s3boto3.S3Boto3Storage',
                },
                'staticfiles': STATICFILES_BACKEND,
            },
            'AWS_ACCESS_KEY_ID': os.getenv('AWS_ACCESS_KEY_ID'),
            'AWS_SECRET_ACCESS_KEY': os.getenv('AWS_SECRET_ACCESS_KEY'),
            'AWS_STORAGE_BUCKET_NAME': os.getenv('AWS_STORAGE_BUCKET_NAME', 'costa-beach-documents'),
            'AWS_S3_REGION_NAME': os.getenv('AWS_S3_REGION_NAME', 'eu-west-3'),
            'AWS_S3_FILE_OVERWRITE': False,
            'AWS_DEFAULT_ACL': 'private',
            'AWS_S3_CUSTOM_DOMAIN': os.getenv('AWS_S3_CUSTOM_DOMAIN') or None,
            'AWS_QUERYSTRING_AUTH': True,
            'AWS_QUERYSTRING_EXPIRE': int(os.getenv('AWS_QUERYSTRING_EXPIRE', '3600')),
            'AWS_S3_OBJECT_PARAMETERS': {
                'CacheControl': 'max-age=86400',
            },
            'MEDIA_URL': '/media/',
        }
    else:
        # Development: Use local file storage
        return {
            'USE_S3_STORAGE': False,
            'STORAGES': {
                'default': {
                    'BACKEND': 'django.core.files.storage.FileSystemStorage',
                },
                'staticfiles': STATICFILES_BACKEND,
            },
            'MEDIA_URL': '/media/',
            'MEDIA_ROOT': base_dir / 'media',
        }


def is_s3_enabled() -> bool:
    """Check if S3 storage is enabled."""
    return USE_S3
