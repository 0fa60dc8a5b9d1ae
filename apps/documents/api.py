"""
Document library endpoints.

Owners browse and download published documents; editors upload and manage
documents in the categories they are allowed to manage.
"""
from typing import List, Optional
from uuid import UUID

from django.http import FileResponse, HttpRequest
from django.core.files.storage import default_storage
from ninja import File, Form, Router
from ninja.errors import HttpError
from ninja.files import UploadedFile

from apps.identity.decorators import require_auth, require_permission
from apps.identity.permissions import Permissions, get_user_permissions
from apps.governance.audit_service import get_entity_audit_history
from apps.governance.dtos import AuditLogOut
from apps.governance.api import serialize_log
from . import services
from .dtos import DocumentDTO, DocumentListOut, DocumentUpdateIn, DownloadUrlOut
from .models import Document

router = Router(tags=["Documents"])


def _get_visible_document(request: HttpRequest, document_id: UUID) -> Document:
    """Unpublished documents are only visible to users who can manage them."""
    require_permission(request, Permissions.VIEW_DOCUMENTS)
    document = services.get_document(document_id)
    if not document:
        raise HttpError(404, "Document not found")
    if not document.is_published:
        perms = get_user_permissions(request.user)
        if not services.can_manage_document_category(perms, document.category):
            raise HttpError(404, "Document not found")
    return document


def _require_category_access(request: HttpRequest, category: str) -> None:
    perms = get_user_permissions(require_auth(request))
    if not services.can_manage_document_category(perms, category):
        raise HttpError(403, f"Permission denied for category: {category}")


# =============================================================================
# Library
# =============================================================================

@router.get("", response=DocumentListOut, auth=None)
def list_documents(
    request: HttpRequest,
    category: Optional[str] = None,
    language: Optional[str] = None,
    search: Optional[str] = None,
    include_translations: bool = True,
    include_unpublished: bool = False,
    limit: int = services.DEFAULT_PAGE_SIZE,
    offset: int = 0,
):
    """List documents with category/language/search filters and pagination."""
    require_permission(request, Permissions.VIEW_DOCUMENTS)

    published_only = True
    if include_unpublished:
        perms = get_user_permissions(request.user)
        published_only = Permissions.MANAGE_DOCUMENTS not in perms

    documents, total = services.list_documents(
        category=category,
        language=language,
        search=search,
        published_only=published_only,
        include_translations=include_translations,
        limit=limit,
        offset=offset,
    )
    limit = max(1, min(limit, services.MAX_PAGE_SIZE))
    return DocumentListOut(
        items=[services.to_document_dto(d) for d in documents],
        total=total,
        limit=limit,
        offset=max(0, offset),
    )


@router.post("", response=DocumentDTO, auth=None)
def upload_document(
    request: HttpRequest,
    title: str = Form(...),
    category: str = Form(...),
    language: str = Form(...),
    description: str = Form(""),
    is_published: bool = Form(True),
    auto_translate: Optional[bool] = Form(None),
    file: UploadedFile = File(...),
):
    """
    Upload a document.
    Requires manageDocuments or the category-specific permission.
    """
    user = require_auth(request)
    _require_category_access(request, category)

    try:
        document = services.create_document(
            file=file,
            title=title,
            description=description,
            category=category,
            language=language,
            created_by=user,
            is_published=is_published,
            auto_translate=auto_translate,
        )
    except ValueError as e:
        raise HttpError(400, str(e))

    return services.to_document_dto(document)


@router.get("/{document_id}", response=DocumentDTO, auth=None)
def get_document(request: HttpRequest, document_id: UUID):
    document = _get_visible_document(request, document_id)
    return services.to_document_dto(document)


@router.put("/{document_id}", response=DocumentDTO, auth=None)
def update_document(request: HttpRequest, document_id: UUID, payload: DocumentUpdateIn):
    """Edit document metadata. Moving it requires access to both categories."""
    user = require_auth(request)
    document = services.get_document(document_id)
    if not document:
        raise HttpError(404, "Document not found")

    _require_category_access(request, document.category)
    if payload.category and payload.category != document.category:
        _require_category_access(request, payload.category)

    try:
        document = services.update_document(document, payload.dict(exclude_unset=True), user)
    except ValueError as e:
        raise HttpError(400, str(e))
    return services.to_document_dto(document)


@router.delete("/{document_id}", response={204: None}, auth=None)
def delete_document(request: HttpRequest, document_id: UUID):
    user = require_auth(request)
    document = services.get_document(document_id)
    if not document:
        raise HttpError(404, "Document not found")
    _require_category_access(request, document.category)

    services.delete_document(document, user)
    return 204


# =============================================================================
# File access
# =============================================================================

def _file_response(document: Document, as_attachment: bool) -> FileResponse:
    try:
        handle = default_storage.open(document.file.name, 'rb')
    except FileNotFoundError:
        raise HttpError(404, "File not found")
    return FileResponse(
        handle,
        as_attachment=as_attachment,
        filename=document.file_name or document.file.name.rsplit('/', 1)[-1],
        content_type=document.file_type,
    )


@router.get("/{document_id}/download", auth=None)
def download_document(request: HttpRequest, document_id: UUID):
    """Stream the file as an attachment and count the download."""
    document = _get_visible_document(request, document_id)
    response = _file_response(document, as_attachment=True)
    services.record_access(document, request.user, download=True)
    return response


@router.get("/{document_id}/preview", auth=None)
def preview_document(request: HttpRequest, document_id: UUID):
    """Stream the file inline and count a view."""
    document = _get_visible_document(request, document_id)
    response = _file_response(document, as_attachment=False)
    services.record_access(document, request.user, download=False)
    return response


@router.get("/{document_id}/download-url", response=DownloadUrlOut, auth=None)
def get_download_url(request: HttpRequest, document_id: UUID, inline: bool = False):
    """Signed URL for direct download from storage."""
    document = _get_visible_document(request, document_id)
    url = services.get_file_url(document, download=not inline)
    services.record_access(document, request.user, download=not inline)
    return DownloadUrlOut(url=url, file_name=document.file_name, file_type=document.file_type)


@router.post("/{document_id}/view", response={204: None}, auth=None)
def record_view(request: HttpRequest, document_id: UUID):
    document = _get_visible_document(request, document_id)
    services.increment_view_count(document.id)
    return 204


# =============================================================================
# Translations / history
# =============================================================================

@router.get("/{document_id}/translations", response=List[DocumentDTO], auth=None)
def list_document_translations(request: HttpRequest, document_id: UUID):
    document = _get_visible_document(request, document_id)
    return [services.to_document_dto(d) for d in services.list_translations(document.id)]


@router.get("/{document_id}/history", response=List[AuditLogOut], auth=None)
def get_document_history(request: HttpRequest, document_id: UUID):
    """Last audit entries for the document. Requires viewAuditLogs."""
    require_permission(request, Permissions.VIEW_AUDIT_LOGS)
    return [serialize_log(log) for log in get_entity_audit_history("Document", document_id)]
