from sqlalchemy.ext.asyncio import AsyncSession

from docstore.core.errors import InvalidConfigKind, StorageUnavailable
from docstore.core.settings import settings
from docstore.models.document_location import DocumentLocation
from docstore.models.enums import ProviderKind
from docstore.models.storage_backend_config import StorageBackendConfig
from docstore.services import backend_configs
from docstore.services.storage.adapter import (
    LocalFileSystemAdapter,
    S3CompatibleAdapter,
    StorageAdapter,
)


def get_storage_adapter(
    location: DocumentLocation,
    config: StorageBackendConfig | None,
) -> StorageAdapter:
    """Build a driver from a location and a snapshot of its config row.

    The adapter copies every value it needs, so an admin editing the config
    mid-request does not affect the operation holding this adapter.
    """
    provider = ProviderKind(location.provider)
    if config is not None:
        if config.provider != provider.value:
            raise InvalidConfigKind(
                f"Location is '{provider.value}' but its config is '{config.provider}'"
            )
        if not config.is_active:
            raise StorageUnavailable(f"{provider.label} storage is disabled for this location")

    if provider is ProviderKind.LOCAL:
        root = (config.root_path if config is not None else None) or settings.local_upload_dir
        try:
            return LocalFileSystemAdapter(
                base_path=root,
                base_url=settings.public_base_url,
                location_id=location.id,
            )
        except OSError as exc:
            raise StorageUnavailable("Local storage root is not usable") from exc

    if config is None:
        raise StorageUnavailable(f"{provider.label} storage is not configured for this location")
    try:
        return S3CompatibleAdapter(
            provider=provider,
            bucket=config.bucket,
            region=config.region,
            access_key=config.access_key,
            secret_key=config.secret_key,
            endpoint_url=config.endpoint_url if provider is ProviderKind.WASABI else None,
            connect_timeout=settings.storage_connect_timeout_seconds,
            read_timeout=settings.storage_read_timeout_seconds,
            default_expiry_seconds=settings.presigned_url_expiry_seconds,
        )
    except ValueError as exc:
        # botocore rejects malformed endpoints/regions at client construction.
        raise StorageUnavailable(f"{provider.label} storage configuration is invalid") from exc


async def resolve_adapter(db: AsyncSession, location: DocumentLocation) -> StorageAdapter:
    config = await backend_configs.find_config(db, location.id)
    return get_storage_adapter(location, config)
