from typing import Any
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.api import deps
from docstore.db.session import get_db
from docstore.schemas.storage_configs import StorageConfigRead, StorageConfigWrite
from docstore.services import backend_configs, locations

router = APIRouter(prefix="/storage-configs", tags=["storage-configs"])


@router.post(
    "/{kind}",
    response_model=StorageConfigRead,
    summary="Create or replace the storage configuration of a location",
)
async def put_storage_config(
    kind: str,
    payload: StorageConfigWrite,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> StorageConfigRead:
    provider = backend_configs.coerce_kind(kind)
    await locations.get_owned_location(db, ctx, payload.location_id)
    config = await backend_configs.put_config(
        db, payload.location_id, provider, dict(payload.model_extra or {})
    )
    return StorageConfigRead.from_config(config)


@router.patch(
    "/{kind}/{location_id}",
    response_model=StorageConfigRead,
    summary="Update some fields of a location's storage configuration",
)
async def patch_storage_config(
    kind: str,
    location_id: UUID,
    fields: dict[str, Any] = Body(...),
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> StorageConfigRead:
    provider = backend_configs.coerce_kind(kind)
    await locations.get_owned_location(db, ctx, location_id)
    config = await backend_configs.put_config(db, location_id, provider, fields, partial=True)
    return StorageConfigRead.from_config(config)


@router.get(
    "/{location_id}",
    response_model=StorageConfigRead,
    summary="Current storage configuration of a location (credentials masked)",
)
async def get_storage_config(
    location_id: UUID,
    ctx: deps.TenantContext = Depends(deps.get_tenant_context),
    db: AsyncSession = Depends(get_db),
) -> StorageConfigRead:
    await locations.get_owned_location(db, ctx, location_id)
    config = await backend_configs.get_config(db, location_id)
    return StorageConfigRead.from_config(config)
