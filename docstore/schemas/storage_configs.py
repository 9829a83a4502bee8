from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import AnyHttpUrl, BaseModel, ConfigDict, Field, field_serializer

from docstore.core.fernet_crypto import mask_secret


class _ConfigIn(BaseModel):
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    is_active: bool = True


class LocalConfigIn(_ConfigIn):
    kind: Literal["local"] = "local"
    root_path: str = Field(min_length=1, max_length=1024)


class _ObjectStoreConfigIn(_ConfigIn):
    bucket: str = Field(min_length=1, max_length=255)
    region: str = Field(min_length=1, max_length=64)
    access_key: str = Field(min_length=1, max_length=256)
    secret_key: str = Field(min_length=1, max_length=256)


class WasabiConfigIn(_ObjectStoreConfigIn):
    kind: Literal["wasabi"] = "wasabi"
    # Wasabi is never the default AWS endpoint, so it must be explicit.
    endpoint_url: AnyHttpUrl

    @field_serializer("endpoint_url")
    def _endpoint_str(self, value: AnyHttpUrl) -> str:
        return str(value).rstrip("/")


class AwsConfigIn(_ObjectStoreConfigIn):
    kind: Literal["aws"] = "aws"


CONFIG_INPUT_MODELS: dict[str, type[_ConfigIn]] = {
    "local": LocalConfigIn,
    "wasabi": WasabiConfigIn,
    "aws": AwsConfigIn,
}


class StorageConfigRead(BaseModel):
    """Config as returned to admins; credentials are masked."""

    id: UUID
    location_id: UUID
    provider: str
    is_active: bool
    root_path: str | None = None
    bucket: str | None = None
    region: str | None = None
    endpoint_url: str | None = None
    access_key: str | None = None
    secret_key: str | None = None
    has_secret_key: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_config(cls, config) -> "StorageConfigRead":
        return cls(
            id=config.id,
            location_id=config.location_id,
            provider=config.provider,
            is_active=bool(config.is_active),
            root_path=config.root_path,
            bucket=config.bucket,
            region=config.region,
            endpoint_url=config.endpoint_url,
            access_key=mask_secret(config.access_key),
            secret_key=mask_secret(config.secret_key),
            has_secret_key=bool(config.secret_key),
            created_at=config.created_at,
            updated_at=config.updated_at,
        )


class StorageConfigWrite(BaseModel):
    """Create/replace body; the provider-specific fields are validated per kind."""

    model_config = ConfigDict(extra="allow")

    location_id: UUID
