from docstore.models.document import Document
from docstore.models.document_location import DocumentLocation
from docstore.models.document_type import DocumentType
from docstore.models.enums import OwnerType, ProviderKind, UrlType
from docstore.models.storage_backend_config import (
    AwsStorageConfig,
    LocalStorageConfig,
    StorageBackendConfig,
    WasabiStorageConfig,
)

__all__ = [
    "Document",
    "DocumentLocation",
    "DocumentType",
    "OwnerType",
    "ProviderKind",
    "UrlType",
    "StorageBackendConfig",
    "LocalStorageConfig",
    "WasabiStorageConfig",
    "AwsStorageConfig",
]
