from __future__ import annotations

import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path, PurePosixPath
from typing import Any, BinaryIO, Iterator
from urllib.parse import quote

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from docstore.core.errors import StorageUnavailable, StoredObjectMissing
from docstore.models.enums import ProviderKind, UrlType

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
_MISSING_OBJECT_CODES = {"404", "NoSuchKey", "NotFound"}


@dataclass(frozen=True, slots=True)
class AccessUrl:
    url: str
    url_type: UrlType
    expires_at: datetime | None = None


class StorageAdapter(ABC):
    """Uniform driver contract over one physical backend.

    ``object_key`` is the stored reference returned by :meth:`put`.
    """

    provider: ProviderKind = ProviderKind.LOCAL
    bucket: str | None = None
    # Local files are streamed by the API; object stores hand out presigned URLs instead.
    proxies_downloads: bool = False

    @abstractmethod
    def put(self, object_key: str, stream: BinaryIO, content_type: str | None) -> str:
        """Write ``stream`` fully under ``object_key`` or fail leaving nothing behind."""

    @abstractmethod
    def url_for(
        self,
        object_key: str,
        expires_in: int | None = None,
        *,
        download_name: str | None = None,
    ) -> AccessUrl:
        pass

    @abstractmethod
    def delete(self, object_key: str) -> None:
        """Remove the object; an already-absent object is not an error."""

    @abstractmethod
    def exists(self, object_key: str) -> bool:
        pass

    @abstractmethod
    def open_stream(self, object_key: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the stored bytes; only drivers with ``proxies_downloads`` serve them."""


def _iter_file(handle: BinaryIO, chunk_size: int) -> Iterator[bytes]:
    try:
        while True:
            chunk = handle.read(chunk_size)
            if not chunk:
                break
            yield chunk
    finally:
        handle.close()


class LocalFileSystemAdapter(StorageAdapter):
    provider = ProviderKind.LOCAL
    proxies_downloads = True

    def __init__(self, base_path: str, base_url: str, *, location_id: Any) -> None:
        self.base_path = Path(base_path)
        self.base_url = base_url.rstrip("/")
        self.location_id = location_id
        self.bucket = None
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve_safe_path(self, object_key: str) -> Path:
        if not object_key or "\\" in object_key or "\x00" in object_key:
            raise ValueError("Invalid object key")
        key_path = PurePosixPath(object_key)
        if key_path.is_absolute() or ".." in key_path.parts:
            raise ValueError("Invalid object key")
        base = self.base_path.resolve()
        resolved = (base / Path(object_key)).resolve()
        if base not in resolved.parents:
            raise ValueError("Invalid object key")
        return resolved

    def resolve_path(self, object_key: str) -> Path:
        return self._resolve_safe_path(object_key)

    def put(self, object_key: str, stream: BinaryIO, content_type: str | None) -> str:
        path = self._resolve_safe_path(object_key)
        tmp_name: str | None = None
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with tempfile.NamedTemporaryFile(
                dir=path.parent, prefix=".upload-", delete=False
            ) as handle:
                tmp_name = handle.name
                while True:
                    chunk = stream.read(CHUNK_SIZE)
                    if not chunk:
                        break
                    handle.write(chunk)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.error("Local write failed for key=%s: %s", object_key, exc.__class__.__name__)
            raise StorageUnavailable("Local storage write failed") from exc
        finally:
            # Only present if os.replace never ran.
            if tmp_name:
                Path(tmp_name).unlink(missing_ok=True)
        return object_key

    def url_for(
        self,
        object_key: str,
        expires_in: int | None = None,
        *,
        download_name: str | None = None,
    ) -> AccessUrl:
        url = f"{self.base_url}/api/v1/media/{self.location_id}/{quote(object_key)}"
        return AccessUrl(url=url, url_type=UrlType.PERMANENT, expires_at=None)

    def open_stream(self, object_key: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        path = self._resolve_safe_path(object_key)
        try:
            handle = path.open("rb")
        except FileNotFoundError as exc:
            raise StoredObjectMissing() from exc
        except OSError as exc:
            raise StorageUnavailable("Local storage read failed") from exc
        return _iter_file(handle, chunk_size)

    def delete(self, object_key: str) -> None:
        path = self._resolve_safe_path(object_key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageUnavailable("Local storage delete failed") from exc

    def exists(self, object_key: str) -> bool:
        try:
            path = self._resolve_safe_path(object_key)
        except ValueError:
            return False
        return path.is_file()


class S3CompatibleAdapter(StorageAdapter):
    """S3 protocol driver; Wasabi and AWS differ only in endpoint and credentials."""

    def __init__(
        self,
        *,
        provider: ProviderKind,
        bucket: str,
        region: str,
        access_key: str,
        secret_key: str,
        endpoint_url: str | None = None,
        connect_timeout: float = 5.0,
        read_timeout: float = 30.0,
        default_expiry_seconds: int = 3600,
        client: Any | None = None,
    ) -> None:
        self.provider = provider
        self.bucket = bucket
        self.region = region
        self.endpoint_url = endpoint_url
        self.default_expiry_seconds = default_expiry_seconds
        self.client = client or boto3.client(
            "s3",
            region_name=region,
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            config=BotoConfig(
                signature_version="s3v4",
                connect_timeout=connect_timeout,
                read_timeout=read_timeout,
                retries={"total_max_attempts": 1},
            ),
        )

    def _unavailable(self, action: str, exc: Exception) -> StorageUnavailable:
        code = "-"
        if isinstance(exc, ClientError):
            code = exc.response.get("Error", {}).get("Code", "-")
        logger.error(
            "%s %s failed bucket=%s error=%s code=%s",
            self.provider.label,
            action,
            self.bucket,
            exc.__class__.__name__,
            code,
        )
        return StorageUnavailable(f"{self.provider.label} storage is unavailable")

    def put(self, object_key: str, stream: BinaryIO, content_type: str | None) -> str:
        try:
            self.client.put_object(
                Bucket=self.bucket,
                Key=object_key,
                Body=stream,
                ContentType=content_type or "application/octet-stream",
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._unavailable("put", exc) from exc
        return object_key

    def url_for(
        self,
        object_key: str,
        expires_in: int | None = None,
        *,
        download_name: str | None = None,
    ) -> AccessUrl:
        seconds = expires_in or self.default_expiry_seconds
        params: dict[str, str] = {"Bucket": self.bucket, "Key": object_key}
        if download_name:
            safe_name = download_name.replace('"', "")
            params["ResponseContentDisposition"] = f'attachment; filename="{safe_name}"'
        try:
            url = self.client.generate_presigned_url(
                "get_object", Params=params, ExpiresIn=seconds
            )
        except (ClientError, BotoCoreError) as exc:
            raise self._unavailable("presign", exc) from exc
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=seconds)
        return AccessUrl(url=url, url_type=UrlType.TEMPORARY, expires_at=expires_at)

    def delete(self, object_key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_OBJECT_CODES:
                return
            raise self._unavailable("delete", exc) from exc
        except BotoCoreError as exc:
            raise self._unavailable("delete", exc) from exc

    def exists(self, object_key: str) -> bool:
        try:
            self.client.head_object(Bucket=self.bucket, Key=object_key)
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") in _MISSING_OBJECT_CODES:
                return False
            raise self._unavailable("head", exc) from exc
        except BotoCoreError as exc:
            raise self._unavailable("head", exc) from exc
        return True

    def open_stream(self, object_key: str, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        raise StorageUnavailable(
            f"{self.provider.label} objects are downloaded through presigned URLs"
        )
