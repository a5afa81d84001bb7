"""Tests for tenant isolation in tenant-scoped repositories"""

import pytest

from tenant_platform.domain.enums import EntityType
from tenant_platform.domain.exceptions import NotFoundError, TenantRequiredError
from tenant_platform.infrastructure.persistence.models import Address
from tenant_platform.shared.context import tenant_scope


def address_data(entity_id: str = "tenant-a", **overrides) -> dict:
    data = {
        "entity_id": entity_id,
        "entity_type": EntityType.TENANT.value,
        "address_line1": "1 Main Street",
        "city": "Pune",
        "country": "India",
    }
    data.update(overrides)
    return data


@pytest.mark.asyncio
async def test_operations_without_tenant_context_are_rejected(address_repo):
    with pytest.raises(TenantRequiredError) as exc_info:
        await address_repo.find()

    assert exc_info.value.details == {"operation": "find"}

    with pytest.raises(TenantRequiredError):
        await address_repo.create(address_data())


@pytest.mark.asyncio
async def test_create_pins_record_to_current_tenant(address_repo):
    with tenant_scope("tenant-a"):
        address = await address_repo.create(address_data(tenant_id="someone-else"))

    assert address.tenant_id == "tenant-a"


@pytest.mark.asyncio
async def test_records_of_other_tenants_are_invisible(address_repo):
    with tenant_scope("tenant-a"):
        address = await address_repo.create(address_data())

    with tenant_scope("tenant-b"):
        assert await address_repo.find_by_id(address.id) is None
        assert await address_repo.find() == []
        assert await address_repo.count() == 0
        with pytest.raises(NotFoundError):
            await address_repo.update(address.id, {"city": "Mumbai"})
        with pytest.raises(NotFoundError):
            await address_repo.remove(address.id)

    with tenant_scope("tenant-a"):
        unchanged = await address_repo.find_by_id(address.id)

    assert unchanged.city == "Pune"
    assert unchanged.is_deleted is False


@pytest.mark.asyncio
async def test_update_cannot_move_record_to_another_tenant(address_repo):
    with tenant_scope("tenant-a"):
        address = await address_repo.create(address_data())
        updated = await address_repo.update(address.id, {"tenant_id": "tenant-b", "city": "Delhi"})

    assert updated.tenant_id == "tenant-a"
    assert updated.city == "Delhi"


@pytest.mark.asyncio
async def test_cursor_pagination_is_scoped(address_repo):
    with tenant_scope("tenant-a"):
        await address_repo.create(address_data())
    with tenant_scope("tenant-b"):
        await address_repo.create(address_data("tenant-b"))
        page = await address_repo.find_with_cursor_pagination(page_size=10)

    assert [a.tenant_id for a in page.items] == ["tenant-b"]
    assert page.has_more is False


@pytest.mark.asyncio
async def test_find_for_entity_lists_primary_first(address_repo, test_db):
    with tenant_scope("tenant-a"):
        await address_repo.create(address_data(city="Secondary"))
        await address_repo.create(address_data(city="Primary", is_primary=True))
        removed = await address_repo.create(address_data(city="Removed"))
        await address_repo.remove(removed.id)

        addresses = await address_repo.find_for_entity("tenant-a")

    assert [a.city for a in addresses] == ["Primary", "Secondary"]

    row = await test_db.get(Address, removed.id)
    assert row.is_deleted is True
