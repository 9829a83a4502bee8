from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from docstore.models.enums import OwnerType, ProviderKind, UrlType


class DocumentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_id: str | None = None
    company_id: str | None = None
    owner_type: OwnerType
    owner_id: str
    document_type_id: int
    location_id: UUID
    provider: ProviderKind
    object_key: str
    document_name: str
    original_name: str
    size_bytes: int
    extension: str | None = None
    mime_type: str | None = None
    uploaded_by: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AccessInfo(BaseModel):
    url: str
    expires_at: datetime | None = None
    url_type: UrlType


class StorageInfo(BaseModel):
    provider: ProviderKind
    provider_label: str
    location_id: UUID


class FileInfo(BaseModel):
    name: str
    size: int
    human_size: str
    extension: str | None = None
    mime_type: str | None = None


class DocumentUploadResponse(BaseModel):
    document: DocumentDTO
    storage_info: StorageInfo
    access: AccessInfo | None = None


class DocumentShowResponse(BaseModel):
    document: DocumentDTO
    storage_info: StorageInfo
    access: AccessInfo | None = None
    file_info: FileInfo


class DocumentListItem(DocumentDTO):
    temporary_url: str | None = None
    url_type: UrlType | None = None
    storage_type: str


class DocumentListResponse(BaseModel):
    items: list[DocumentListItem]
    total: int
    page: int
    per_page: int
    last_page: int


class DocumentFilters(BaseModel):
    owner_type: OwnerType | None = None
    owner_id: str | None = None
    document_type_id: int | None = None
    provider: ProviderKind | None = None
    date_from: date | None = None
    date_to: date | None = None
    search: str | None = Field(default=None, max_length=255)
    sort_by: Literal["created_at", "document_name", "size_bytes"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"


class DocumentUpdate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    document_name: str | None = Field(default=None, min_length=1, max_length=255)
    document_type_id: int | None = None

    @model_validator(mode="after")
    def _require_field(self) -> "DocumentUpdate":
        if self.document_name is None and self.document_type_id is None:
            raise ValueError("Provide document_name or document_type_id")
        return self


class DownloadLink(BaseModel):
    download_url: str
    expires_at: datetime | None = None
    storage_type: ProviderKind
