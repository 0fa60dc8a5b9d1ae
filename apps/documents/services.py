"""
Document library services: upload, listing, access tracking and removal.
"""
import logging
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile
from django.db import transaction
from django.db.models import F, Q

from apps.core.languages import Language, ALL_LANGUAGES
from apps.core.task_service import TaskService
from apps.governance.audit_service import AuditAction, log_action
from apps.governance.settings_service import get_setting
from apps.identity.permissions import Permissions
from apps.translations.extraction import is_content_extractable
from config.storage import is_s3_enabled

from .dtos import DocumentDTO
from .file_validation import build_document_path, format_file_size, validate_upload_file
from .models import Document, DocumentCategory, DocumentTranslationStatus

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100

CATEGORY_PERMISSIONS = {
    DocumentCategory.COMITE_DE_SUIVI: Permissions.MANAGE_COMITE_DOCUMENTS,
    DocumentCategory.SOCIETE_DE_GESTION: Permissions.MANAGE_SOCIETE_DOCUMENTS,
    DocumentCategory.LEGAL: Permissions.MANAGE_LEGAL_DOCUMENTS,
    DocumentCategory.FINANCE: Permissions.MANAGE_FINANCE_DOCUMENTS,
    DocumentCategory.GENERAL: Permissions.MANAGE_GENERAL_DOCUMENTS,
}


def can_manage_document_category(permissions: Iterable[str], category: str) -> bool:
    """manageDocuments covers every category; otherwise the category's own permission."""
    permissions = list(permissions or [])
    if Permissions.MANAGE_DOCUMENTS in permissions:
        return True
    required = CATEGORY_PERMISSIONS.get(category)
    return bool(required) and required in permissions


def to_document_dto(document: Document) -> DocumentDTO:
    return DocumentDTO(
        id=document.id,
        title=document.title,
        description=document.description,
        file_name=document.file_name,
        file_size=document.file_size,
        file_size_display=format_file_size(document.file_size),
        file_type=document.file_type,
        category=document.category,
        language=document.language,
        source_language=document.effective_source_language,
        is_published=document.is_published,
        view_count=document.view_count,
        download_count=document.download_count,
        is_translation=document.is_translation,
        original_document_id=document.original_document_id,
        translation_quality=document.translation_quality,
        translation_status=document.translation_status,
        content_extractable=document.content_extractable,
        created_by_id=document.created_by_id,
        created_at=document.created_at,
        updated_at=document.updated_at,
    )


# =============================================================================
# Create
# =============================================================================

def create_document(
    *,
    file: UploadedFile,
    title: str,
    category: str,
    language: str,
    created_by,
    description: str = "",
    is_published: bool = True,
    auto_translate: Optional[bool] = None,
    target_languages: Optional[List[str]] = None,
) -> Document:
    """
    Store an uploaded file and register it in the library.

    Raises:
        ValueError: invalid metadata or a file that fails validation
    """
    title = (title or "").strip()
    if not title:
        raise ValueError("Title is required")
    if category not in DocumentCategory.values:
        raise ValueError(f"Invalid category: {category}")
    if language not in Language.values:
        raise ValueError(f"Unsupported language: {language}")

    max_size_mb = get_setting('max_file_upload_size_mb')
    is_valid, error, mime_type = validate_upload_file(file, max_size_mb=max_size_mb)
    if not is_valid:
        raise ValueError(error)

    path = build_document_path(created_by.id, file.name, category, language)
    saved_path = default_storage.save(path, file)

    try:
        with transaction.atomic():
            document = Document.objects.create(
                title=title,
                description=description or "",
                file=saved_path,
                file_name=file.name,
                file_size=file.size,
                file_type=mime_type,
                category=category,
                language=language,
                source_language=language,
                is_published=is_published,
                content_extractable=is_content_extractable(mime_type),
                created_by=created_by,
            )
    except Exception:
        default_storage.delete(saved_path)
        raise

    logger.info(f"Document {document.id} uploaded to {saved_path}")

    log_action(
        action=AuditAction.CREATE,
        entity_type="Document",
        entity_id=document.id,
        entity_label=document.title,
        user=created_by,
        details={
            "category": category,
            "language": language,
            "file_type": mime_type,
            "file_size": file.size,
        },
    )

    if auto_translate is None:
        auto_translate = get_setting('auto_translate_documents')
    if auto_translate:
        queue_document_translations(document, created_by, target_languages)

    if is_published:
        _queue_notification(document)

    return document


def queue_document_translations(document: Document, requested_by, target_languages=None) -> int:
    from apps.translations.queue_service import TranslationQueueService

    created = TranslationQueueService.create_translation_jobs(
        document=document,
        source_language=document.effective_source_language,
        target_languages=target_languages or ALL_LANGUAGES,
        requested_by=requested_by,
    )
    if created:
        Document.objects.filter(id=document.id).update(
            translation_status=DocumentTranslationStatus.PENDING
        )
        document.translation_status = DocumentTranslationStatus.PENDING
    return len(created)


def _queue_notification(document: Document) -> None:
    try:
        TaskService.send_document_notification(document.id)
    except Exception as e:
        logger.warning(f"Document notification for {document.id} not sent: {e}")


# =============================================================================
# Read
# =============================================================================

def list_documents(
    *,
    category: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    published_only: bool = True,
    include_translations: bool = True,
    limit: int = DEFAULT_PAGE_SIZE,
    offset: int = 0,
) -> Tuple[List[Document], int]:
    qs = Document.objects.all()

    if category:
        qs = qs.filter(category=category)
    if language:
        qs = qs.filter(language=language)
    if published_only:
        qs = qs.filter(is_published=True)
    if not include_translations:
        qs = qs.filter(is_translation=False)
    if search:
        qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))

    total = qs.count()
    limit = max(1, min(limit, MAX_PAGE_SIZE))
    offset = max(0, offset)
    return list(qs[offset:offset + limit]), total


def get_document(document_id) -> Optional[Document]:
    return Document.objects.filter(id=document_id).first()


def list_translations(document_id) -> List[Document]:
    return list(Document.objects.filter(original_document_id=document_id).order_by('language'))


def find_translation(document: Document, language: str) -> Optional[Document]:
    return Document.objects.filter(original_document=document, language=language).first()


# =============================================================================
# Update / Delete
# =============================================================================

UPDATABLE_FIELDS = ('title', 'description', 'category', 'is_published')


def update_document(document: Document, data: dict, user) -> Document:
    changes = {k: v for k, v in data.items() if k in UPDATABLE_FIELDS and v is not None}
    if 'category' in changes and changes['category'] not in DocumentCategory.values:
        raise ValueError(f"Invalid category: {changes['category']}")
    if 'title' in changes and not changes['title'].strip():
        raise ValueError("Title is required")

    for key, value in changes.items():
        setattr(document, key, value)
    document.save()

    log_action(
        action=AuditAction.UPDATE,
        entity_type="Document",
        entity_id=document.id,
        entity_label=document.title,
        user=user,
        details={"changes": list(changes)},
    )
    return document


def delete_document(document: Document, user) -> None:
    """Remove a document, its translations and their stored files."""
    paths = {document.file.name}
    for translation in document.translations.all():
        if translation.file.name:
            paths.add(translation.file.name)
    original = document.original_document if document.original_document_id else None
    if original is not None:
        # Metadata-only translations share the original's file
        paths.discard(original.file.name)

    document_id, title = document.id, document.title
    with transaction.atomic():
        if original is not None:
            # The job that produced this translation goes too, so the language can be requested again
            from apps.translations.models import DocumentTranslationJob
            DocumentTranslationJob.objects.filter(document=original, translated_document=document).delete()
        document.delete()

    if original is not None:
        from apps.translations.queue_service import refresh_document_translation_status
        refresh_document_translation_status(original)

    for path in filter(None, paths):
        try:
            default_storage.delete(path)
        except Exception as e:
            logger.warning(f"Could not delete stored file {path}: {e}")

    log_action(
        action=AuditAction.DELETE,
        entity_type="Document",
        entity_id=document_id,
        entity_label=title,
        user=user,
    )


# =============================================================================
# Access tracking
# =============================================================================

def increment_view_count(document_id: UUID) -> None:
    Document.objects.filter(id=document_id).update(view_count=F('view_count') + 1)


def increment_download_count(document_id: UUID) -> None:
    Document.objects.filter(id=document_id).update(download_count=F('download_count') + 1)


def get_file_url(document: Document, download: bool = True) -> str:
    """
    URL for the stored file. On S3 this is a signed URL whose
    Content-Disposition forces a download or an inline preview.
    """
    if is_s3_enabled():
        disposition = 'attachment' if download else 'inline'
        return default_storage.url(
            document.file.name,
            parameters={
                'ResponseContentDisposition': f'{disposition}; filename="{document.file_name}"',
            },
        )
    return default_storage.url(document.file.name)


def record_access(document: Document, user, download: bool) -> None:
    if download:
        increment_download_count(document.id)
    else:
        increment_view_count(document.id)
    log_action(
        action=AuditAction.DOWNLOAD if download else AuditAction.VIEW,
        entity_type="Document",
        entity_id=document.id,
        entity_label=document.title,
        user=user,
    )
