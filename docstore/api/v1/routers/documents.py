from datetime import date
from typing import Literal
from urllib.parse import quote
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.api import deps
from docstore.core.limiter import limiter
from docstore.core.settings import settings
from docstore.db.session import get_db
from docstore.models.document import Document
from docstore.models.enums import OwnerType, ProviderKind
from docstore.schemas.documents import (
    AccessInfo,
    DocumentDTO,
    DocumentFilters,
    DocumentListItem,
    DocumentListResponse,
    DocumentShowResponse,
    DocumentUpdate,
    DocumentUploadResponse,
    DownloadLink,
    FileInfo,
    StorageInfo,
)
from docstore.services import documents
from docstore.services.storage.adapter import AccessUrl
from docstore.services.storage.uploads import format_size

router = APIRouter(prefix="/documents", tags=["documents"])


def _access(access: AccessUrl | None) -> AccessInfo | None:
    if access is None:
        return None
    return AccessInfo(url=access.url, expires_at=access.expires_at, url_type=access.url_type)


def _storage_info(document: Document) -> StorageInfo:
    provider = ProviderKind(document.provider)
    return StorageInfo(
        provider=provider,
        provider_label=provider.label,
        location_id=document.location_id,
    )


def _list_item(row: documents.ListedDocument) -> DocumentListItem:
    return DocumentListItem(
        **DocumentDTO.model_validate(row.document).model_dump(),
        temporary_url=row.access.url if row.access else None,
        url_type=row.access.url_type if row.access else None,
        storage_type=ProviderKind(row.document.provider).label,
    )


def _content_disposition(filename: str) -> str:
    ascii_name = filename.encode("ascii", "ignore").decode() or "download"
    ascii_name = ascii_name.replace('"', "")
    return f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"


@router.post(
    "",
    response_model=DocumentUploadResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Upload a document to the tenant's active storage location",
)
@limiter.limit(lambda: f"{settings.rate_limit_per_minute}/minute")
async def upload_document(
    request: Request,
    file: UploadFile = File(...),
    document_type_id: int = Form(...),
    owner_type: OwnerType = Form(...),
    owner_id: str = Form(..., min_length=1, max_length=64),
    document_name: str | None = Form(default=None, max_length=255),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    actor_id: str | None = Depends(deps.get_actor_id),
    db: AsyncSession = Depends(get_db),
) -> DocumentUploadResponse:
    result = await documents.upload(
        db,
        ctx,
        owner_type=owner_type,
        owner_id=owner_id,
        document_type_id=document_type_id,
        file=file,
        document_name=document_name,
        uploaded_by=actor_id,
    )
    return DocumentUploadResponse(
        document=DocumentDTO.model_validate(result.document),
        storage_info=_storage_info(result.document),
        access=_access(result.access),
    )


@router.get("", response_model=DocumentListResponse, summary="List documents")
async def list_documents(
    owner_type: OwnerType | None = None,
    owner_id: str | None = None,
    document_type_id: int | None = None,
    provider: ProviderKind | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    search: str | None = Query(default=None, max_length=255),
    sort_by: Literal["created_at", "document_name", "size_bytes"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(default=1, ge=1),
    per_page: int = Query(default=15, ge=1, le=documents.MAX_PER_PAGE),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> DocumentListResponse:
    filters = DocumentFilters(
        owner_type=owner_type,
        owner_id=owner_id,
        document_type_id=document_type_id,
        provider=provider,
        date_from=date_from,
        date_to=date_to,
        search=search,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    rows, total = await documents.list_documents(db, ctx, filters, page=page, per_page=per_page)
    items = [_list_item(row) for row in rows]
    return DocumentListResponse(
        items=items,
        total=total,
        page=page,
        per_page=per_page,
        last_page=documents.last_page(total, per_page),
    )


@router.get("/{document_id}", response_model=DocumentShowResponse, summary="Show a document")
async def show_document(
    document_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> DocumentShowResponse:
    document = await documents.get_document(db, ctx, document_id)
    access = await documents.get_url_or_none(db, document)
    return DocumentShowResponse(
        document=DocumentDTO.model_validate(document),
        storage_info=_storage_info(document),
        access=_access(access),
        file_info=FileInfo(
            name=document.document_name,
            size=document.size_bytes,
            human_size=format_size(document.size_bytes),
            extension=document.extension,
            mime_type=document.mime_type,
        ),
    )


@router.patch("/{document_id}", response_model=DocumentDTO, summary="Update document metadata")
async def update_document(
    document_id: UUID,
    payload: DocumentUpdate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> DocumentDTO:
    document = await documents.update_metadata(db, ctx, document_id, payload)
    return DocumentDTO.model_validate(document)


@router.get(
    "/{document_id}/download",
    response_model=None,
    summary="Download a document (bytes for local storage, a link for object stores)",
)
async def download_document(
    document_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> StreamingResponse | DownloadLink:
    plan = await documents.download(db, ctx, document_id)
    document = plan.document
    if plan.stream is not None:
        return StreamingResponse(
            plan.stream,
            media_type=document.mime_type or "application/octet-stream",
            headers={"Content-Disposition": _content_disposition(document.document_name)},
        )
    return DownloadLink(
        download_url=plan.link.url,
        expires_at=plan.link.expires_at,
        storage_type=ProviderKind(document.provider),
    )


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a document and its stored object",
)
async def delete_document(
    document_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> None:
    await documents.delete(db, ctx, document_id)
    return None
