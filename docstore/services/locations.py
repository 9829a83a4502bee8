from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.api import deps
from docstore.core.errors import AmbiguousTenantReference, LocationInUse, LocationNotFound
from docstore.core.logging import audit
from docstore.models.document import Document
from docstore.models.document_location import DocumentLocation
from docstore.models.enums import ProviderKind
from docstore.models.storage_backend_config import StorageBackendConfig

logger = logging.getLogger(__name__)


def _owner_clause(org_id: str | None, company_id: str | None):
    if org_id:
        return and_(DocumentLocation.org_id == org_id, DocumentLocation.company_id.is_(None))
    if company_id:
        return and_(DocumentLocation.company_id == company_id, DocumentLocation.org_id.is_(None))
    return and_(DocumentLocation.org_id.is_(None), DocumentLocation.company_id.is_(None))


def _tenant_clause(ctx: deps.TenantContext):
    clauses = []
    if ctx.org_id:
        clauses.append(_owner_clause(ctx.org_id, None))
    if ctx.company_id:
        clauses.append(_owner_clause(None, ctx.company_id))
    if not clauses:
        clauses.append(_owner_clause(None, None))
    return or_(*clauses)


def _owned_by(location: DocumentLocation, ctx: deps.TenantContext) -> bool:
    if location.is_global:
        return ctx.is_global
    if ctx.org_id and location.org_id == ctx.org_id:
        return True
    return bool(ctx.company_id and location.company_id == ctx.company_id)


def owner_for(ctx: deps.TenantContext, scope: str | None = None) -> tuple[str | None, str | None]:
    """Pick the single owner a new location is attached to."""
    if scope == "organization":
        if not ctx.org_id:
            raise AmbiguousTenantReference("Organization scope requested without an organization id")
        return ctx.org_id, None
    if scope == "company":
        if not ctx.company_id:
            raise AmbiguousTenantReference("Company scope requested without a company id")
        return None, ctx.company_id
    if ctx.company_id:
        return None, ctx.company_id
    return ctx.org_id, None


async def get_location(db: AsyncSession, location_id: UUID) -> DocumentLocation:
    location = await db.get(DocumentLocation, location_id)
    if location is None:
        raise LocationNotFound()
    return location


async def get_owned_location(
    db: AsyncSession, ctx: deps.TenantContext, location_id: UUID
) -> DocumentLocation:
    location = await get_location(db, location_id)
    if not _owned_by(location, ctx):
        raise LocationNotFound()
    return location


async def list_locations(
    db: AsyncSession,
    ctx: deps.TenantContext,
    *,
    provider: ProviderKind | None = None,
) -> list[DocumentLocation]:
    stmt = select(DocumentLocation).where(_tenant_clause(ctx))
    if provider is not None:
        stmt = stmt.where(DocumentLocation.provider == provider.value)
    stmt = stmt.order_by(DocumentLocation.is_active.desc(), DocumentLocation.created_at.desc())
    return list((await db.execute(stmt)).scalars().all())


async def _active_for_owner(
    db: AsyncSession, org_id: str | None, company_id: str | None
) -> DocumentLocation | None:
    stmt = select(DocumentLocation).where(
        DocumentLocation.is_active.is_(True),
        _owner_clause(org_id, company_id),
    )
    return (await db.execute(stmt)).scalars().first()


async def ensure_default_location(db: AsyncSession) -> DocumentLocation:
    """Return the active global location, creating a local one on first use."""
    existing = await _active_for_owner(db, None, None)
    if existing is not None:
        return existing
    location = DocumentLocation(provider=ProviderKind.LOCAL.value, is_active=True)
    db.add(location)
    try:
        await db.commit()
    except IntegrityError:
        # Another request created it first.
        await db.rollback()
        existing = await _active_for_owner(db, None, None)
        if existing is None:
            raise
        return existing
    await db.refresh(location)
    logger.warning("No global storage location existed; created default local location %s", location.id)
    return location


async def resolve_active_location(db: AsyncSession, ctx: deps.TenantContext) -> DocumentLocation:
    """Location used for new uploads: organization, then company, then the global default."""
    stmt = select(DocumentLocation).where(
        DocumentLocation.is_active.is_(True),
        or_(_tenant_clause(ctx), _owner_clause(None, None)),
    )
    candidates = list((await db.execute(stmt)).scalars().all())

    org_location = next(
        (loc for loc in candidates if ctx.org_id and loc.org_id == ctx.org_id), None
    )
    company_location = next(
        (loc for loc in candidates if ctx.company_id and loc.company_id == ctx.company_id), None
    )
    if org_location is not None and company_location is not None:
        if org_location.id != company_location.id:
            raise AmbiguousTenantReference()
    chosen = org_location or company_location
    if chosen is not None:
        return chosen

    global_location = next((loc for loc in candidates if loc.is_global), None)
    if global_location is not None:
        logger.info("Falling back to global storage location %s", global_location.id)
        return global_location
    return await ensure_default_location(db)


async def count_documents(db: AsyncSession, location_id: UUID) -> int:
    stmt = select(func.count()).select_from(Document).where(Document.location_id == location_id)
    return (await db.execute(stmt)).scalar_one() or 0


async def configure_location(
    db: AsyncSession,
    ctx: deps.TenantContext,
    provider: ProviderKind,
    *,
    scope: str | None = None,
) -> tuple[DocumentLocation, str]:
    """Point the tenant at ``provider`` for future uploads.

    Returns the active location and what happened: ``unchanged``, ``updated``
    (kind switched in place because nothing was stored yet) or ``created``.
    """
    org_id, company_id = owner_for(ctx, scope)
    current = await _active_for_owner(db, org_id, company_id)

    if current is not None and current.provider == provider.value:
        return current, "unchanged"

    if current is not None and await count_documents(db, current.id) == 0:
        stale = (
            await db.execute(
                select(StorageBackendConfig).where(StorageBackendConfig.location_id == current.id)
            )
        ).scalar_one_or_none()
        if stale is not None:
            await db.delete(stale)
        previous = current.provider
        current.provider = provider.value
        db.add(current)
        await db.commit()
        await db.refresh(current)
        audit(
            "location.provider_changed",
            location_id=str(current.id),
            previous=previous,
            provider=provider.value,
        )
        return current, "updated"

    if current is not None:
        # Existing documents keep pointing at the old location.
        current.is_active = False
        db.add(current)
        await db.flush()

    location = DocumentLocation(
        provider=provider.value,
        org_id=org_id,
        company_id=company_id,
        is_active=True,
    )
    db.add(location)
    await db.commit()
    await db.refresh(location)
    audit(
        "location.created",
        location_id=str(location.id),
        provider=provider.value,
        replaced=str(current.id) if current is not None else None,
    )
    return location, "created"


async def set_active_location(
    db: AsyncSession, ctx: deps.TenantContext, location_id: UUID
) -> DocumentLocation:
    """Make ``location_id`` the tenant's upload target; stored documents are untouched."""
    location = await get_owned_location(db, ctx, location_id)
    if location.is_active:
        return location

    current = await _active_for_owner(db, location.org_id, location.company_id)
    if current is not None and current.id != location.id:
        current.is_active = False
        db.add(current)
        await db.flush()

    location.is_active = True
    db.add(location)
    await db.commit()
    await db.refresh(location)
    audit(
        "location.activated",
        location_id=str(location.id),
        provider=location.provider,
        previous=str(current.id) if current is not None else None,
    )
    return location


async def delete_location(db: AsyncSession, ctx: deps.TenantContext, location_id: UUID) -> None:
    location = await get_owned_location(db, ctx, location_id)
    if await count_documents(db, location.id):
        raise LocationInUse("Location still has documents stored against it")
    config = (
        await db.execute(
            select(StorageBackendConfig.id).where(StorageBackendConfig.location_id == location.id)
        )
    ).scalar_one_or_none()
    if config is not None:
        raise LocationInUse("Remove the location's storage configuration first")
    await db.delete(location)
    await db.commit()
    audit("location.deleted", location_id=str(location.id), provider=location.provider)
