import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID

from docstore.db.base import Base
from docstore.models.types import EncryptedString


class StorageBackendConfig(Base):
    """Per-location backend settings, one row per location.

    Single-table inheritance keyed on ``provider`` gives the
    ``Local | Wasabi | Aws`` variants; columns that do not apply to a variant
    stay null.
    """

    __tablename__ = "storage_backend_configs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    location_id = Column(
        UUID(as_uuid=True),
        ForeignKey("document_locations.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    provider = Column(String(16), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)

    root_path = Column(String, nullable=True)

    bucket = Column(String, nullable=True)
    region = Column(String(64), nullable=True)
    endpoint_url = Column(String, nullable=True)
    access_key = Column(EncryptedString(), nullable=True)
    secret_key = Column(EncryptedString(), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __mapper_args__ = {"polymorphic_on": provider}


class LocalStorageConfig(StorageBackendConfig):
    __mapper_args__ = {"polymorphic_identity": "local"}


class WasabiStorageConfig(StorageBackendConfig):
    __mapper_args__ = {"polymorphic_identity": "wasabi"}


class AwsStorageConfig(StorageBackendConfig):
    __mapper_args__ = {"polymorphic_identity": "aws"}


CONFIG_CLASSES: dict[str, type[StorageBackendConfig]] = {
    "local": LocalStorageConfig,
    "wasabi": WasabiStorageConfig,
    "aws": AwsStorageConfig,
}
