from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from docstore.core.errors import ConfigNotFound, InvalidConfigKind, LocationNotFound, ValidationFailed
from docstore.core.logging import audit
from docstore.models.document_location import DocumentLocation
from docstore.models.enums import ProviderKind
from docstore.models.storage_backend_config import CONFIG_CLASSES, StorageBackendConfig
from docstore.schemas.storage_configs import CONFIG_INPUT_MODELS

# Which fields belong to which kind; a field owned only by another kind means
# the caller sent the wrong shape rather than a typo.
_KIND_FIELDS = {kind: set(model.model_fields) for kind, model in CONFIG_INPUT_MODELS.items()}
_STORED_FIELDS = ("is_active", "root_path", "bucket", "region", "endpoint_url", "access_key", "secret_key")


def coerce_kind(kind: str | ProviderKind) -> ProviderKind:
    try:
        return ProviderKind(kind)
    except ValueError as exc:
        raise InvalidConfigKind(f"Unknown storage kind '{kind}'") from exc


def _field_errors(exc: ValidationError) -> dict[str, list[str]]:
    errors: dict[str, list[str]] = {}
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ())) or "__root__"
        errors.setdefault(field, []).append(error.get("msg", "Invalid value"))
    return errors


def validate_config(kind: str | ProviderKind, fields: dict[str, Any]) -> BaseModel:
    """Validate ``fields`` against the explicit struct for ``kind``."""
    provider = coerce_kind(kind)
    declared = fields.get("kind")
    if declared is not None and declared != provider.value:
        raise InvalidConfigKind(f"Fields declare kind '{declared}' but '{provider.value}' was requested")

    allowed = _KIND_FIELDS[provider.value]
    foreign = sorted(
        name
        for name in fields
        if name not in allowed
        and any(name in other for key, other in _KIND_FIELDS.items() if key != provider.value)
    )
    if foreign:
        raise InvalidConfigKind(
            f"Fields {', '.join(foreign)} do not apply to '{provider.value}' storage"
        )

    try:
        return CONFIG_INPUT_MODELS[provider.value].model_validate(fields)
    except ValidationError as exc:
        raise ValidationFailed("Invalid storage configuration", errors=_field_errors(exc)) from exc


async def _get_location(db: AsyncSession, location_id: UUID) -> DocumentLocation:
    location = await db.get(DocumentLocation, location_id)
    if location is None:
        raise LocationNotFound()
    return location


async def find_config(db: AsyncSession, location_id: UUID) -> StorageBackendConfig | None:
    stmt = select(StorageBackendConfig).where(StorageBackendConfig.location_id == location_id)
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_config(db: AsyncSession, location_id: UUID) -> StorageBackendConfig:
    await _get_location(db, location_id)
    config = await find_config(db, location_id)
    if config is None:
        raise ConfigNotFound()
    return config


def _current_values(config: StorageBackendConfig) -> dict[str, Any]:
    values = {name: getattr(config, name) for name in _STORED_FIELDS}
    return {k: v for k, v in values.items() if v is not None}


async def put_config(
    db: AsyncSession,
    location_id: UUID,
    kind: str | ProviderKind,
    fields: dict[str, Any],
    *,
    partial: bool = False,
) -> StorageBackendConfig:
    """Create or replace the config of ``location_id``.

    With ``partial`` the stored values are the base and ``fields`` overrides
    them; the merged result is validated as a whole.
    """
    provider = coerce_kind(kind)
    requested = set(fields)
    location = await _get_location(db, location_id)
    if location.provider != provider.value:
        raise InvalidConfigKind(
            f"Location uses '{location.provider}' storage; cannot store a '{provider.value}' config"
        )

    existing = await find_config(db, location_id)
    if existing is not None and existing.provider != provider.value:
        await db.delete(existing)
        await db.flush()
        existing = None

    if partial:
        if existing is None:
            raise ConfigNotFound()
        merged = {
            k: v
            for k, v in _current_values(existing).items()
            if k in _KIND_FIELDS[provider.value]
        }
        merged.update(fields)
        fields = merged

    validated = validate_config(provider, fields)
    values = validated.model_dump(mode="json", exclude={"kind"})

    if existing is None:
        config = CONFIG_CLASSES[provider.value](
            location_id=location.id,
            provider=provider.value,
            **values,
        )
        db.add(config)
        action = "created"
    else:
        config = existing
        for name in _STORED_FIELDS:
            if name in values:
                setattr(config, name, values[name])
        db.add(config)
        action = "updated"

    await db.commit()
    await db.refresh(config)
    audit(
        "storage_config." + action,
        location_id=str(location.id),
        provider=provider.value,
        fields=sorted(k for k in values if k not in {"access_key", "secret_key"}),
        credentials_changed=bool(requested & {"access_key", "secret_key"}),
    )
    return config
