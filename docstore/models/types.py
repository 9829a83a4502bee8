from typing import Optional

from cryptography.fernet import InvalidToken
from sqlalchemy import LargeBinary
from sqlalchemy.types import TypeDecorator

from docstore.core.fernet_crypto import decrypt_secret, encrypt_secret


class EncryptedString(TypeDecorator):
    """Transparent Fernet encryption for credential columns."""

    impl = LargeBinary
    cache_ok = True

    def __init__(self, *, secret: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self._secret = secret

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return bytes(encrypt_secret(str(value), secret=self._secret))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return decrypt_secret(bytes(value), secret=self._secret)
        except InvalidToken as exc:  # pragma: no cover - indicates corrupted data or rotated key
            raise ValueError("Unable to decrypt value") from exc


__all__ = ["EncryptedString"]
