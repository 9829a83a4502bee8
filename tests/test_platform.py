import json
import logging

import pytest
from cryptography.fernet import Fernet, InvalidToken

from docstore.core import context, fernet_crypto
from docstore.core.logging import JsonFormatter, RequestContextFilter
from docstore.core.response_envelope import build_success_envelope
from docstore.db.url import normalize_database_url


def test_secret_round_trip() -> None:
    token = fernet_crypto.encrypt_secret("s3-secret", secret="key-material-one")
    assert fernet_crypto.decrypt_secret(token, secret="key-material-one") == "s3-secret"


def test_secret_with_wrong_key_fails() -> None:
    token = fernet_crypto.encrypt_secret("s3-secret", secret="key-material-one")
    with pytest.raises(InvalidToken):
        fernet_crypto.decrypt_secret(token, secret="key-material-two")


def test_legacy_tokens_still_decrypt() -> None:
    legacy = Fernet(fernet_crypto._sha256_key("key-material-one"))
    token = legacy.encrypt(b"older-secret")
    assert fernet_crypto.decrypt_secret(token, secret="key-material-one") == "older-secret"


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ("", None),
        ("abc", "***"),
        ("AKIAEXAMPLEKEY1234", "****1234"),
    ],
)
def test_mask_secret(value, expected) -> None:
    assert fernet_crypto.mask_secret(value) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("postgres://u:p@db:5432/hr", "postgresql+psycopg://u:p@db:5432/hr"),
        ("postgresql+asyncpg://u:p@db/hr?ssl=true", "postgresql+psycopg://u:p@db/hr?sslmode=require"),
        ("postgresql://u:p@db/hr?ssl=off", "postgresql+psycopg://u:p@db/hr?sslmode=disable"),
        ("postgresql+psycopg://u:p@db/hr?sslmode=verify-full", "postgresql+psycopg://u:p@db/hr?sslmode=verify-full"),
        ("", ""),
    ],
)
def test_normalize_database_url(raw, expected) -> None:
    assert normalize_database_url(raw) == expected


def test_tenant_label() -> None:
    assert context.tenant_label("org-a", None) == "org:org-a"
    assert context.tenant_label("org-a", "company-b") == "org:org-a/company:company-b"
    assert context.tenant_label(None, None) == "-"


def test_log_records_carry_request_context() -> None:
    request_token = context.set_request_id("req-42")
    tenant_token = context.set_tenant(None, "company-b")
    try:
        record = logging.LogRecord("docstore.test", logging.INFO, __file__, 1, "stored %s", ("x",), None)
        RequestContextFilter().filter(record)
        record.fields = {"event": "document.uploaded", "size_bytes": 10}
        payload = json.loads(JsonFormatter(stream_label="audit").format(record))
    finally:
        context.reset(request_token, tenant_token)

    assert payload["message"] == "stored x"
    assert payload["request_id"] == "req-42"
    assert payload["tenant"] == "company:company-b"
    assert payload["stream"] == "audit"
    assert payload["event"] == "document.uploaded"
    assert context.get_request_id() == "-"


def test_success_envelope_shape() -> None:
    assert build_success_envelope({"id": 1}, 201) == {
        "code": "created",
        "message": "Created",
        "data": {"id": 1},
        "details": {},
    }


def test_credential_fields_are_redacted_in_logs() -> None:
    record = logging.LogRecord("docstore.audit", logging.INFO, __file__, 1, "storage_config.updated", (), None)
    record.fields = {"event": "storage_config.updated", "secret_key": "super-secret-value-9876", "bucket": "b1"}

    line = JsonFormatter(stream_label="audit").format(record)

    assert "super-secret-value-9876" not in line
    assert json.loads(line)["secret_key"] == "***"
    assert json.loads(line)["bucket"] == "b1"
