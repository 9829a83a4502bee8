import pytest
from fastapi.testclient import TestClient

from docstore.db.session import get_db
from docstore.main import app
from docstore.models.document_location import DocumentLocation
from docstore.models.storage_backend_config import StorageBackendConfig
from conftest import (
    FakeResult,
    count_handler,
    entity_handler,
    make_config,
    make_location,
)

TENANT_A = {"X-Org-Id": "org-a"}
TENANT_B = {"X-Company-Id": "company-b"}


@pytest.fixture
def client(fake_db):
    async def _get_db():
        yield fake_db

    app.dependency_overrides[get_db] = _get_db
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _wasabi_body(location_id, **overrides):
    body = {
        "location_id": str(location_id),
        "bucket": "hr-docs",
        "region": "eu-central-1",
        "endpoint_url": "https://s3.eu-central-1.wasabisys.com/",
        "access_key": "AKIAEXAMPLEKEY1234",
        "secret_key": "super-secret-value-9876",
    }
    body.update(overrides)
    return body


# ---------------------------------------------------------------------------
# Storage configurations
# ---------------------------------------------------------------------------


def test_create_wasabi_config_masks_credentials(client, fake_db) -> None:
    location = make_location(provider="wasabi", org_id="org-a")
    fake_db.on_get(DocumentLocation, location.id, location)

    response = client.post(
        "/api/v1/storage-configs/wasabi", headers=TENANT_A, json=_wasabi_body(location.id)
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["provider"] == "wasabi"
    assert data["bucket"] == "hr-docs"
    assert data["endpoint_url"] == "https://s3.eu-central-1.wasabisys.com"
    assert data["access_key"] == "****1234"
    assert data["secret_key"] == "****9876"
    assert data["has_secret_key"] is True
    assert "super-secret-value-9876" not in response.text
    assert fake_db.committed


def test_create_config_for_unknown_kind(client, fake_db) -> None:
    location = make_location(provider="wasabi", org_id="org-a")

    response = client.post(
        "/api/v1/storage-configs/dropbox", headers=TENANT_A, json=_wasabi_body(location.id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_config_kind"


def test_config_kind_must_match_location(client, fake_db) -> None:
    location = make_location(provider="local", org_id="org-a")
    fake_db.on_get(DocumentLocation, location.id, location)

    response = client.post(
        "/api/v1/storage-configs/wasabi", headers=TENANT_A, json=_wasabi_body(location.id)
    )

    assert response.status_code == 400
    assert response.json()["code"] == "invalid_config_kind"
    assert fake_db.added == []


def test_wasabi_config_requires_endpoint(client, fake_db) -> None:
    location = make_location(provider="wasabi", org_id="org-a")
    fake_db.on_get(DocumentLocation, location.id, location)
    body = _wasabi_body(location.id)
    del body["endpoint_url"]

    response = client.post("/api/v1/storage-configs/wasabi", headers=TENANT_A, json=body)

    assert response.status_code == 422
    payload = response.json()
    assert payload["code"] == "validation_error"
    assert "endpoint_url" in payload["details"]["errors"]


def test_config_of_another_tenants_location_is_hidden(client, fake_db) -> None:
    location = make_location(provider="wasabi", org_id="org-a")
    fake_db.on_get(DocumentLocation, location.id, location)

    response = client.post(
        "/api/v1/storage-configs/wasabi", headers=TENANT_B, json=_wasabi_body(location.id)
    )

    assert response.status_code == 404
    assert response.json()["code"] == "location_not_found"


def test_read_config(client, fake_db) -> None:
    location = make_location(provider="aws", org_id="org-a")
    config = make_config(location)
    fake_db.on_get(DocumentLocation, location.id, location)
    fake_db.on_execute(entity_handler(StorageBackendConfig, FakeResult(scalar=config)))

    response = client.get(f"/api/v1/storage-configs/{location.id}", headers=TENANT_A)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["provider"] == "aws"
    assert data["region"] == "us-east-1"
    assert data["secret_key"] == "****9876"


def test_read_missing_config(client, fake_db) -> None:
    location = make_location(provider="aws", org_id="org-a")
    fake_db.on_get(DocumentLocation, location.id, location)

    response = client.get(f"/api/v1/storage-configs/{location.id}", headers=TENANT_A)

    assert response.status_code == 404
    assert response.json()["code"] == "config_not_found"


def test_patch_rotates_secret_only(client, fake_db) -> None:
    location = make_location(provider="wasabi", org_id="org-a")
    config = make_config(location)
    fake_db.on_get(DocumentLocation, location.id, location)
    fake_db.on_execute(entity_handler(StorageBackendConfig, FakeResult(scalar=config)))

    response = client.patch(
        f"/api/v1/storage-configs/wasabi/{location.id}",
        headers=TENANT_A,
        json={"secret_key": "rotated-secret-0000"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["secret_key"] == "****0000"
    assert data["bucket"] == "hr-docs"
    assert config.secret_key == "rotated-secret-0000"
    assert config.access_key == "AKIAEXAMPLEKEY1234"


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


def test_active_location_falls_back_to_default(client, fake_db) -> None:
    fake_db.on_execute(entity_handler(DocumentLocation, FakeResult(items=[])))

    response = client.get("/api/v1/document-locations/active", headers=TENANT_A)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["provider"] == "local"
    assert data["provider_label"] == "Local"
    assert data["org_id"] is None
    assert data["company_id"] is None
    assert data["config"] is None


def test_configure_new_provider_creates_location(client, fake_db) -> None:
    fake_db.on_execute(entity_handler(DocumentLocation, FakeResult(items=[])))

    response = client.post(
        "/api/v1/document-locations", headers=TENANT_A, json={"provider": "wasabi"}
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["provider"] == "wasabi"
    assert data["provider_label"] == "Wasabi"
    assert data["org_id"] == "org-a"
    assert data["is_active"] is True


def test_configure_same_provider_is_unchanged(client, fake_db) -> None:
    current = make_location(provider="aws", org_id="org-a")
    fake_db.on_execute(entity_handler(DocumentLocation, FakeResult(items=[current])))

    response = client.post(
        "/api/v1/document-locations", headers=TENANT_A, json={"provider": "aws"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["id"] == str(current.id)
    assert fake_db.commits == 0


def test_configure_rejects_unknown_provider(client) -> None:
    response = client.post(
        "/api/v1/document-locations", headers=TENANT_A, json={"provider": "gcs"}
    )
    assert response.status_code == 422


def test_list_locations(client, fake_db) -> None:
    rows = [
        make_location(provider="wasabi", org_id="org-a"),
        make_location(provider="local", org_id="org-a", is_active=False),
    ]
    fake_db.on_execute(entity_handler(DocumentLocation, FakeResult(items=rows)))

    response = client.get("/api/v1/document-locations", headers=TENANT_A)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 2
    assert [item["provider"] for item in data["items"]] == ["wasabi", "local"]


def test_switch_active_location(client, fake_db) -> None:
    current = make_location(provider="wasabi", org_id="org-a")
    target = make_location(provider="local", org_id="org-a", is_active=False)
    fake_db.on_get(DocumentLocation, target.id, target)
    fake_db.on_execute(entity_handler(DocumentLocation, FakeResult(items=[current])))

    response = client.put(
        "/api/v1/document-locations/active",
        headers=TENANT_A,
        json={"location_id": str(target.id)},
    )

    assert response.status_code == 200
    assert response.json()["data"]["id"] == str(target.id)
    assert target.is_active is True
    assert current.is_active is False


def test_delete_location_with_documents_conflicts(client, fake_db) -> None:
    location = make_location(provider="local", org_id="org-a", is_active=False)
    fake_db.on_get(DocumentLocation, location.id, location)
    fake_db.on_execute(count_handler(3))

    response = client.delete(f"/api/v1/document-locations/{location.id}", headers=TENANT_A)

    assert response.status_code == 409
    assert response.json()["code"] == "location_in_use"
    assert fake_db.deleted == []


def test_delete_unused_location(client, fake_db) -> None:
    location = make_location(provider="local", org_id="org-a", is_active=False)
    fake_db.on_get(DocumentLocation, location.id, location)
    fake_db.on_execute(count_handler(0))

    response = client.delete(f"/api/v1/document-locations/{location.id}", headers=TENANT_A)

    assert response.status_code == 200
    assert response.json()["data"] is None
    assert fake_db.deleted == [location]
