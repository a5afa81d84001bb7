"""Tests for tenant API endpoints"""

import pytest

BASE = "/api/v1/tenants"


async def create(client, name="Acme", subdomain="acme", **extra):
    response = await client.post(f"{BASE}/", json={"name": name, "subdomain": subdomain, **extra})
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_tenant(client, events):
    """Test creating a tenant returns it in PENDING state"""
    response = await client.post(
        f"{BASE}/",
        json={"name": "Acme", "subdomain": "acme", "primary_email": "ops@acme.com"},
    )

    assert response.status_code == 201
    data = response.json()
    assert data["name"] == "Acme"
    assert data["status"] == "PENDING"
    assert data["is_active"] is True
    assert data["tenant_id"] is None
    assert data["version"] == 1
    assert data["verification"]["status"] == "PENDING"
    assert data["verification"]["is_complete"] is False
    events.publish_tenant_created.assert_awaited_once()


@pytest.mark.asyncio
async def test_create_ignores_status_in_payload(client):
    data = await create(client, status="ACTIVE", verification_status="VERIFIED")

    assert data["status"] == "PENDING"
    assert data["verification"]["status"] == "PENDING"


@pytest.mark.asyncio
async def test_create_invalid_subdomain_is_rejected(client):
    response = await client.post(f"{BASE}/", json={"name": "Acme", "subdomain": "Not Valid!"})

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_duplicate_returns_409(client):
    await create(client)

    response = await client.post(f"{BASE}/", json={"name": "Acme", "subdomain": "acme-2"})

    assert response.status_code == 409
    body = response.json()
    assert body["error"] == "ALREADY_EXISTS"
    assert body["details"]["field"] == "name"


@pytest.mark.asyncio
async def test_get_tenant(client):
    created = await create(client)

    response = await client.get(f"{BASE}/{created['id']}")

    assert response.status_code == 200
    assert response.json()["subdomain"] == "acme"


@pytest.mark.asyncio
async def test_get_missing_tenant_returns_404(client):
    response = await client.get(f"{BASE}/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "TENANT_NOT_FOUND"


@pytest.mark.asyncio
async def test_lookup_by_subdomain_and_identifier(client):
    created = await create(client, identifier="acm-001")

    by_subdomain = await client.get(f"{BASE}/by-subdomain/acme")
    by_identifier = await client.get(f"{BASE}/by-identifier/acm-001")
    missing = await client.get(f"{BASE}/by-subdomain/nope")

    assert by_subdomain.json()["id"] == created["id"]
    assert by_identifier.json()["id"] == created["id"]
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_list_tenants_paginated(client):
    for n in range(3):
        await create(client, name=f"Tenant {n}", subdomain=f"tenant-{n}")

    response = await client.get(f"{BASE}/", params={"page": 2, "page_size": 2, "order_by": "name"})

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 3
    assert data["pages"] == 2
    assert [t["name"] for t in data["items"]] == ["Tenant 2"]
    assert data["has_next"] is False
    assert data["has_previous"] is True


@pytest.mark.asyncio
async def test_list_with_unknown_order_field_returns_400(client):
    response = await client.get(f"{BASE}/", params={"order_by": "password"})

    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_cursor_listing(client):
    for n in range(3):
        await create(client, name=f"Tenant {n}", subdomain=f"tenant-{n}")

    first = (await client.get(f"{BASE}/cursor", params={"page_size": 2, "order_by": "name"})).json()
    second = (
        await client.get(
            f"{BASE}/cursor",
            params={"page_size": 2, "order_by": "name", "cursor": first["next_cursor"]},
        )
    ).json()

    assert [t["name"] for t in first["items"]] == ["Tenant 0", "Tenant 1"]
    assert first["has_more"] is True
    assert [t["name"] for t in second["items"]] == ["Tenant 2"]
    assert second["has_more"] is False
    assert second["next_cursor"] is None


@pytest.mark.asyncio
async def test_invalid_cursor_returns_400(client):
    response = await client.get(f"{BASE}/cursor", params={"cursor": "***"})

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_search_and_stats(client):
    await create(client)
    await create(client, name="Globex", subdomain="globex", industry="Energy")

    search = await client.get(f"{BASE}/search", params={"q": "glo"})
    advanced = await client.post(f"{BASE}/search", json={"industry": "energy"})
    stats = await client.get(f"{BASE}/stats")

    assert [t["name"] for t in search.json()] == ["Globex"]
    assert [t["name"] for t in advanced.json()] == ["Globex"]
    assert stats.json() == {
        "counts": {"PENDING": 2, "ACTIVE": 0, "SUSPENDED": 0, "TERMINATED": 0},
        "total": 2,
    }


@pytest.mark.asyncio
async def test_idempotent_create_replays_with_200(client):
    headers = {"Idempotency-Key": "key-123"}

    first = await client.post(
        f"{BASE}/idempotent", json={"name": "Acme", "subdomain": "acme"}, headers=headers
    )
    second = await client.post(
        f"{BASE}/idempotent", json={"name": "Acme", "subdomain": "acme"}, headers=headers
    )

    assert first.status_code == 201
    assert second.status_code == 200
    assert second.json()["id"] == first.json()["id"]


@pytest.mark.asyncio
async def test_idempotent_create_requires_key(client):
    response = await client.post(f"{BASE}/idempotent", json={"name": "Acme", "subdomain": "acme"})

    assert response.status_code == 400
    assert response.json()["details"]["field"] == "Idempotency-Key"


@pytest.mark.asyncio
async def test_update_tenant(client):
    created = await create(client)

    response = await client.patch(f"{BASE}/{created['id']}", json={"description": "Widgets"})

    assert response.status_code == 200
    data = response.json()
    assert data["description"] == "Widgets"
    assert data["version"] == 2


@pytest.mark.asyncio
async def test_status_transitions(client):
    created = await create(client)
    url = f"{BASE}/{created['id']}/status"

    assert (await client.patch(url, json={"status": "ACTIVE"})).json()["status"] == "ACTIVE"
    assert (await client.patch(url, json={"status": "TERMINATED"})).status_code == 200

    response = await client.patch(url, json={"status": "ACTIVE"})

    assert response.status_code == 400
    assert response.json()["error"] == "INVALID_STATE_TRANSITION"
    assert response.json()["details"] == {"entity": "Tenant", "from": "TERMINATED", "to": "ACTIVE"}


@pytest.mark.asyncio
async def test_verification_flow(client):
    created = await create(client)

    await client.post(
        f"{BASE}/{created['id']}/verification/documents", json={"document_id": "doc-1"}
    )
    response = await client.patch(
        f"{BASE}/{created['id']}/verification",
        json={"status": "VERIFIED", "verifier_id": "admin-1", "notes": "Looks good"},
    )

    assert response.status_code == 200
    verification = response.json()["verification"]
    assert verification["status"] == "VERIFIED"
    assert verification["verification_date"] is not None
    assert verification["documents"] == ["doc-1"]
    assert verification["is_complete"] is True


@pytest.mark.asyncio
async def test_provision_and_deprovision(client, events):
    created = await create(client)

    provisioned = await client.post(f"{BASE}/{created['id']}/provision")
    deprovisioned = await client.post(f"{BASE}/{created['id']}/deprovision")
    again = await client.post(f"{BASE}/{created['id']}/provision")

    assert provisioned.json()["status"] == "ACTIVE"
    assert deprovisioned.json()["status"] == "TERMINATED"
    assert deprovisioned.json()["is_active"] is False
    assert again.status_code == 400
    events.publish_tenant_provisioned.assert_awaited_once()


@pytest.mark.asyncio
async def test_addresses_and_contacts(client):
    created = await create(client)
    tenant_url = f"{BASE}/{created['id']}"

    address = await client.post(
        f"{tenant_url}/addresses",
        json={"address_line1": "1 Main Street", "city": "Pune", "country": "India"},
    )
    contact = await client.post(
        f"{tenant_url}/contacts", json={"name": "Jane", "email": "jane@acme.com"}
    )

    assert address.status_code == 201
    assert address.json()["tenant_id"] == created["id"]
    assert contact.status_code == 201

    patched = await client.patch(
        f"{tenant_url}/addresses/{address.json()['id']}", json={"city": "Mumbai"}
    )
    assert patched.json()["city"] == "Mumbai"

    relations = (await client.get(f"{tenant_url}/relations")).json()
    assert relations["tenant"]["id"] == created["id"]
    assert [a["city"] for a in relations["addresses"]] == ["Mumbai"]
    assert [c["name"] for c in relations["contact_infos"]] == ["Jane"]

    removed = await client.delete(f"{tenant_url}/contacts/{contact.json()['id']}")
    assert removed.status_code == 204
    assert (await client.get(f"{tenant_url}/contacts")).json() == []


@pytest.mark.asyncio
async def test_address_of_other_tenant_returns_404(client):
    acme = await create(client)
    globex = await create(client, name="Globex", subdomain="globex")
    address = await client.post(
        f"{BASE}/{globex['id']}/addresses",
        json={"address_line1": "2 High Street", "city": "Delhi", "country": "India"},
    )

    response = await client.delete(f"{BASE}/{acme['id']}/addresses/{address.json()['id']}")

    assert response.status_code == 404
    assert response.json()["error"] == "ADDRESS_NOT_FOUND"


@pytest.mark.asyncio
async def test_delete_tenant(client, events):
    created = await create(client)

    response = await client.delete(f"{BASE}/{created['id']}")

    assert response.status_code == 204
    assert (await client.get(f"{BASE}/{created['id']}")).status_code == 404
    events.publish_tenant_deleted.assert_awaited_once_with(created["id"])
