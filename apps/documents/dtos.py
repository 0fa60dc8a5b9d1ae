"""DTOs for Documents app - Data Transfer Objects for cross-app communication."""
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional
from uuid import UUID

from ninja import Schema


@dataclass(frozen=True)
class DocumentDTO:
    id: UUID
    title: str
    description: str
    file_name: str
    file_size: int
    file_size_display: str
    file_type: str
    category: str
    language: str
    source_language: str
    is_published: bool
    view_count: int
    download_count: int
    is_translation: bool
    original_document_id: Optional[UUID]
    translation_quality: str
    translation_status: str
    content_extractable: bool
    created_by_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime


class DocumentUpdateIn(Schema):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_published: Optional[bool] = None


class DocumentListOut(Schema):
    items: List[DocumentDTO]
    total: int
    limit: int
    offset: int


class DownloadUrlOut(Schema):
    url: str
    file_name: str
    file_type: str
