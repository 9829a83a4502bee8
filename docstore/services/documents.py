from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Iterator
from uuid import UUID

from fastapi import UploadFile
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from docstore.api import deps
from docstore.core.errors import (
    DocumentNotFound,
    DocumentStorageError,
    StoredObjectMissing,
    ValidationFailed,
)
from docstore.core.logging import audit
from docstore.core.settings import settings
from docstore.models.document import Document
from docstore.models.document_location import DocumentLocation
from docstore.models.document_type import DocumentType
from docstore.models.enums import OwnerType, ProviderKind
from docstore.schemas.documents import DocumentFilters, DocumentUpdate
from docstore.services import locations
from docstore.services.storage.adapter import AccessUrl, StorageAdapter
from docstore.services.storage.key_generator import KeyGenerator
from docstore.services.storage.service import resolve_adapter
from docstore.services.storage.uploads import spool_upload

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 100
_SORT_COLUMNS = {
    "created_at": Document.created_at,
    "document_name": Document.document_name,
    "size_bytes": Document.size_bytes,
}


@dataclass(slots=True)
class UploadResult:
    document: Document
    location: DocumentLocation
    access: AccessUrl | None


@dataclass(slots=True)
class ListedDocument:
    document: Document
    access: AccessUrl | None


@dataclass(slots=True)
class DownloadPlan:
    """Either bytes to stream (local) or a presigned link (object store)."""

    document: Document
    stream: Iterator[bytes] | None = None
    link: AccessUrl | None = None


def _tenant_scope(ctx: deps.TenantContext) -> list:
    if ctx.is_global:
        return [Document.org_id.is_(None), Document.company_id.is_(None)]
    clauses = []
    if ctx.org_id:
        clauses.append(Document.org_id == ctx.org_id)
    if ctx.company_id:
        clauses.append(Document.company_id == ctx.company_id)
    return clauses


def _parse_owner_type(owner_type: str | OwnerType) -> OwnerType:
    try:
        return OwnerType(owner_type)
    except ValueError as exc:
        allowed = ", ".join(item.value for item in OwnerType)
        raise ValidationFailed(
            f"owner_type must be one of: {allowed}",
            errors={"owner_type": [f"Must be one of: {allowed}"]},
        ) from exc


async def _require_document_type(db: AsyncSession, document_type_id: int) -> DocumentType:
    document_type = await db.get(DocumentType, document_type_id)
    if document_type is None or not document_type.is_active:
        raise ValidationFailed(
            "Unknown document type",
            errors={"document_type_id": ["Document type does not exist"]},
        )
    return document_type


async def _discard_object(adapter: StorageAdapter, object_key: str) -> None:
    try:
        await run_in_threadpool(adapter.delete, object_key)
    except DocumentStorageError:
        logger.error("Could not remove orphaned object key=%s after failed catalog write", object_key)


def _safe_access(adapter: StorageAdapter, document: Document, **kwargs) -> AccessUrl | None:
    try:
        return adapter.url_for(document.object_key, **kwargs)
    except (DocumentStorageError, ValueError):
        logger.warning("Could not generate URL for document %s", document.id)
        return None


async def upload(
    db: AsyncSession,
    ctx: deps.TenantContext,
    *,
    owner_type: str | OwnerType,
    owner_id: str,
    document_type_id: int,
    file: UploadFile,
    document_name: str | None = None,
    uploaded_by: str | None = None,
) -> UploadResult:
    owner = _parse_owner_type(owner_type)
    owner_id = (owner_id or "").strip()
    if not owner_id:
        raise ValidationFailed("owner_id is required", errors={"owner_id": ["Field required"]})
    await _require_document_type(db, document_type_id)

    spooled = await spool_upload(file, max_size_bytes=settings.max_upload_size_mb * 1024 * 1024)
    try:
        location = await locations.resolve_active_location(db, ctx)
        adapter = await resolve_adapter(db, location)
        object_key = KeyGenerator.generate_object_key(
            org_id=ctx.org_id,
            company_id=ctx.company_id,
            owner_type=owner.value,
            owner_id=owner_id,
            document_type_id=document_type_id,
            filename=spooled.original_name,
        )
        stored_ref = await run_in_threadpool(
            adapter.put, object_key, spooled.stream, spooled.content_type
        )
    finally:
        spooled.close()

    document = Document(
        org_id=ctx.org_id,
        company_id=ctx.company_id,
        owner_type=owner.value,
        owner_id=owner_id,
        document_type_id=document_type_id,
        location_id=location.id,
        provider=location.provider,
        object_key=stored_ref,
        document_name=(document_name or "").strip() or spooled.original_name,
        original_name=spooled.original_name,
        size_bytes=spooled.size_bytes,
        extension=spooled.extension or None,
        mime_type=spooled.content_type,
        uploaded_by=uploaded_by,
    )
    db.add(document)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await _discard_object(adapter, stored_ref)
        raise
    await db.refresh(document)

    audit(
        "document.uploaded",
        document_id=str(document.id),
        location_id=str(location.id),
        provider=location.provider,
        size_bytes=document.size_bytes,
    )
    return UploadResult(document=document, location=location, access=_safe_access(adapter, document))


async def get_document(db: AsyncSession, ctx: deps.TenantContext, document_id: UUID) -> Document:
    """Tenant-scoped lookup; other tenants' documents are reported as missing."""
    stmt = select(Document).where(Document.id == document_id, *_tenant_scope(ctx))
    document = (await db.execute(stmt)).scalar_one_or_none()
    if document is None:
        raise DocumentNotFound()
    return document


async def adapter_for_document(db: AsyncSession, document: Document) -> StorageAdapter:
    """Driver for where the bytes were written, not the tenant's current selection."""
    location = await locations.get_location(db, document.location_id)
    return await resolve_adapter(db, location)


async def get_url(
    db: AsyncSession,
    document: Document,
    *,
    expires_in: int | None = None,
    download_name: str | None = None,
) -> AccessUrl:
    adapter = await adapter_for_document(db, document)
    return adapter.url_for(document.object_key, expires_in, download_name=download_name)


async def get_url_or_none(db: AsyncSession, document: Document) -> AccessUrl | None:
    try:
        return await get_url(db, document)
    except (DocumentStorageError, ValueError):
        logger.warning("Could not generate URL for document %s", document.id)
        return None


def _apply_filters(stmt, filters: DocumentFilters):
    if filters.owner_type is not None:
        stmt = stmt.where(Document.owner_type == filters.owner_type.value)
    if filters.owner_id:
        stmt = stmt.where(Document.owner_id == filters.owner_id)
    if filters.document_type_id is not None:
        stmt = stmt.where(Document.document_type_id == filters.document_type_id)
    if filters.provider is not None:
        stmt = stmt.where(Document.provider == filters.provider.value)
    if filters.date_from is not None:
        start = datetime.combine(filters.date_from, time.min, tzinfo=timezone.utc)
        stmt = stmt.where(Document.created_at >= start)
    if filters.date_to is not None:
        end = datetime.combine(filters.date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
        stmt = stmt.where(Document.created_at < end)
    if filters.search:
        term = filters.search.strip().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        stmt = stmt.where(Document.document_name.ilike(f"%{term}%", escape="\\"))
    return stmt


async def list_documents(
    db: AsyncSession,
    ctx: deps.TenantContext,
    filters: DocumentFilters,
    *,
    page: int = 1,
    per_page: int = 15,
) -> tuple[list[ListedDocument], int]:
    page = max(page, 1)
    per_page = min(max(per_page, 1), MAX_PER_PAGE)

    base = _apply_filters(select(Document).where(*_tenant_scope(ctx)), filters)
    total = (
        await db.execute(select(func.count()).select_from(base.order_by(None).subquery()))
    ).scalar_one() or 0

    column = _SORT_COLUMNS[filters.sort_by]
    ordering = column.asc() if filters.sort_order == "asc" else column.desc()
    stmt = base.order_by(ordering, Document.id).offset((page - 1) * per_page).limit(per_page)
    documents = list((await db.execute(stmt)).scalars().all())

    adapters: dict[UUID, StorageAdapter | None] = {}
    items: list[ListedDocument] = []
    for document in documents:
        if document.location_id not in adapters:
            try:
                adapters[document.location_id] = await adapter_for_document(db, document)
            except (DocumentStorageError, ValueError):
                logger.warning(
                    "Storage for location %s unavailable while listing", document.location_id
                )
                adapters[document.location_id] = None
        adapter = adapters[document.location_id]
        access = _safe_access(adapter, document) if adapter is not None else None
        items.append(ListedDocument(document=document, access=access))
    return items, total


def last_page(total: int, per_page: int) -> int:
    return max(1, math.ceil(total / per_page)) if per_page else 1


async def update_metadata(
    db: AsyncSession,
    ctx: deps.TenantContext,
    document_id: UUID,
    payload: DocumentUpdate,
) -> Document:
    """Only display fields change; bytes and location stay frozen."""
    document = await get_document(db, ctx, document_id)
    if payload.document_type_id is not None:
        await _require_document_type(db, payload.document_type_id)
        document.document_type_id = payload.document_type_id
    if payload.document_name is not None:
        document.document_name = payload.document_name.strip()
    db.add(document)
    await db.commit()
    await db.refresh(document)
    return document


async def download(db: AsyncSession, ctx: deps.TenantContext, document_id: UUID) -> DownloadPlan:
    document = await get_document(db, ctx, document_id)
    adapter = await adapter_for_document(db, document)
    if adapter.proxies_downloads:
        stream = await run_in_threadpool(adapter.open_stream, document.object_key)
        return DownloadPlan(document=document, stream=stream)
    if not await run_in_threadpool(adapter.exists, document.object_key):
        raise StoredObjectMissing()
    link = adapter.url_for(document.object_key, download_name=document.document_name)
    return DownloadPlan(document=document, link=link)


async def delete(db: AsyncSession, ctx: deps.TenantContext, document_id: UUID) -> None:
    """Remove the stored object, then the catalog row.

    A storage failure propagates and leaves the row in place, so metadata never
    disappears while its bytes might still exist.
    """
    document = await get_document(db, ctx, document_id)
    adapter = await adapter_for_document(db, document)
    await run_in_threadpool(adapter.delete, document.object_key)

    await db.delete(document)
    await db.commit()
    audit(
        "document.deleted",
        document_id=str(document.id),
        location_id=str(document.location_id),
        provider=document.provider,
    )


async def open_media(db: AsyncSession, location_id: UUID, object_key: str) -> DownloadPlan:
    """Serve a permanent local URL; only catalogued objects are reachable."""
    stmt = select(Document).where(
        Document.location_id == location_id,
        Document.object_key == object_key,
    )
    document = (await db.execute(stmt)).scalars().first()
    if document is None or document.provider != ProviderKind.LOCAL.value:
        raise StoredObjectMissing()
    adapter = await adapter_for_document(db, document)
    try:
        stream = await run_in_threadpool(adapter.open_stream, document.object_key)
    except ValueError as exc:
        raise StoredObjectMissing() from exc
    return DownloadPlan(document=document, stream=stream)
