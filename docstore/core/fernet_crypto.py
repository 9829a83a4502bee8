from __future__ import annotations

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, MultiFernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from docstore.core.settings import settings

_DEV_SALT_PREFIX = "docstore-credentials"


def _salt_for(secret: str) -> bytes:
    salt = (settings.fernet_kdf_salt or "").strip()
    if not salt:
        # Local development only; deployments set FERNET_KDF_SALT.
        salt = f"{_DEV_SALT_PREFIX}:{secret[:16]}"
    return salt.encode("utf-8")


def _pbkdf2_key(secret: str) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=_salt_for(secret),
        iterations=max(100_000, settings.fernet_kdf_iterations),
    )
    return base64.urlsafe_b64encode(kdf.derive(secret.encode("utf-8")))


def _sha256_key(secret: str) -> bytes:
    return base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())


@lru_cache(maxsize=16)
def credential_fernet(secret: str) -> MultiFernet:
    """Encrypts with the PBKDF2 key; also decrypts rows written under the plain SHA-256 key."""
    return MultiFernet([Fernet(_pbkdf2_key(secret)), Fernet(_sha256_key(secret))])


def encrypt_secret(value: str, *, secret: str | None = None) -> bytes:
    return credential_fernet(secret or settings.secret_key).encrypt(value.encode("utf-8"))


def decrypt_secret(token: bytes, *, secret: str | None = None) -> str:
    return credential_fernet(secret or settings.secret_key).decrypt(token).decode("utf-8")


def mask_secret(value: str | None, visible: int = 4) -> str | None:
    """Render a stored credential for admin screens: ``****`` plus its last characters."""
    if not value:
        return None
    if len(value) <= visible:
        return "*" * len(value)
    return "****" + value[-visible:]
