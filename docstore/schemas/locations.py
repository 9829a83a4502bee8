from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from docstore.models.enums import ProviderKind
from docstore.schemas.storage_configs import StorageConfigRead


class LocationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    provider: ProviderKind
    org_id: str | None = None
    company_id: str | None = None
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class LocationDetail(LocationDTO):
    provider_label: str
    config: StorageConfigRead | None = None


class LocationListResponse(BaseModel):
    items: list[LocationDTO]
    total: int


class LocationConfigure(BaseModel):
    model_config = ConfigDict(extra="forbid")

    provider: ProviderKind
    scope: Literal["organization", "company"] | None = None


class LocationActivate(BaseModel):
    model_config = ConfigDict(extra="forbid")

    location_id: UUID
