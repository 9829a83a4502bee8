from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.api import deps
from docstore.db.session import get_db
from docstore.models.document_location import DocumentLocation
from docstore.models.enums import ProviderKind
from docstore.schemas.locations import (
    LocationActivate,
    LocationConfigure,
    LocationDetail,
    LocationDTO,
    LocationListResponse,
)
from docstore.schemas.storage_configs import StorageConfigRead
from docstore.services import backend_configs, locations

router = APIRouter(prefix="/document-locations", tags=["document-locations"])


async def _detail(db: AsyncSession, location: DocumentLocation) -> LocationDetail:
    config = await backend_configs.find_config(db, location.id)
    return LocationDetail.model_validate(
        {
            **LocationDTO.model_validate(location).model_dump(),
            "provider_label": ProviderKind(location.provider).label,
            "config": StorageConfigRead.from_config(config) if config is not None else None,
        }
    )


@router.get("", response_model=LocationListResponse, summary="List the tenant's storage locations")
async def list_locations(
    provider: ProviderKind | None = None,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> LocationListResponse:
    rows = await locations.list_locations(db, ctx, provider=provider)
    items = [LocationDTO.model_validate(row) for row in rows]
    return LocationListResponse(items=items, total=len(items))


@router.post(
    "",
    response_model=LocationDetail,
    summary="Select the storage provider used for new uploads",
)
async def configure_location(
    payload: LocationConfigure,
    response: Response,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> LocationDetail:
    location, outcome = await locations.configure_location(
        db, ctx, payload.provider, scope=payload.scope
    )
    if outcome == "created":
        response.status_code = status.HTTP_201_CREATED
    return await _detail(db, location)


@router.get(
    "/active",
    response_model=LocationDetail,
    summary="Location new uploads are routed to",
)
async def get_active_location(
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> LocationDetail:
    location = await locations.resolve_active_location(db, ctx)
    return await _detail(db, location)


@router.put("/active", response_model=LocationDetail, summary="Switch the active location")
async def set_active_location(
    payload: LocationActivate,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> LocationDetail:
    location = await locations.set_active_location(db, ctx, payload.location_id)
    return await _detail(db, location)


@router.delete(
    "/{location_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete an unused storage location",
)
async def delete_location(
    location_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> None:
    await locations.delete_location(db, ctx, location_id)
    return None
