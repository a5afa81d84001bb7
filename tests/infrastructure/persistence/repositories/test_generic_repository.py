"""Tests for the generic repository (CRUD, pagination, bulk operations)"""

import pytest

from tenant_platform.domain.enums import SortDirection
from tenant_platform.domain.exceptions import (
    BulkOperationError,
    ConcurrencyConflictError,
    DatabaseOperationError,
    InvalidCursorError,
    NotFoundError,
    ValidationError,
)
from tenant_platform.infrastructure.persistence.models import Tenant
from tenant_platform.infrastructure.persistence.pagination import (
    PaginationParams,
    decode_cursor,
    encode_cursor,
)
from tenant_platform.infrastructure.persistence.repositories import GenericRepository


@pytest.fixture
def repo(transactions):
    return GenericRepository(transactions, Tenant)


def tenant_data(n: int) -> dict:
    return {"name": f"Tenant {n:02d}", "subdomain": f"tenant-{n:02d}"}


async def seed(repo, count: int) -> list[Tenant]:
    return [await repo.create(tenant_data(n)) for n in range(1, count + 1)]


# CRUD


@pytest.mark.asyncio
async def test_create_assigns_id_version_and_defaults(repo):
    tenant = await repo.create(tenant_data(1))

    assert tenant.id
    assert tenant.version == 1
    assert tenant.is_deleted is False
    assert tenant.created_at is not None


@pytest.mark.asyncio
async def test_find_by_id_returns_none_for_missing_id(repo):
    assert await repo.find_by_id("does-not-exist") is None


@pytest.mark.asyncio
async def test_update_applies_fields_and_bumps_version(repo):
    tenant = await repo.create(tenant_data(1))

    updated = await repo.update(tenant.id, {"description": "Updated", "version": 99})

    assert updated.description == "Updated"
    assert updated.version == 2


@pytest.mark.asyncio
async def test_update_missing_raises_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.update("missing", {"description": "x"})


@pytest.mark.asyncio
async def test_update_unknown_field_is_rejected(repo):
    tenant = await repo.create(tenant_data(1))

    with pytest.raises(ValidationError):
        await repo.update(tenant.id, {"no_such_column": "x"})


@pytest.mark.asyncio
async def test_remove_soft_deletes(repo, test_db):
    tenant = await repo.create(tenant_data(1))

    await repo.remove(tenant.id)

    assert await repo.find_by_id(tenant.id) is None
    assert await repo.count() == 0
    row = await test_db.get(Tenant, tenant.id)
    assert row is not None
    assert row.is_deleted is True


@pytest.mark.asyncio
async def test_remove_missing_raises_not_found(repo):
    with pytest.raises(NotFoundError):
        await repo.remove("missing")


@pytest.mark.asyncio
async def test_hard_delete_removes_row_even_when_soft_deleted(repo, test_db):
    tenant = await repo.create(tenant_data(1))
    await repo.remove(tenant.id)

    await repo.hard_delete(tenant.id)

    assert await test_db.get(Tenant, tenant.id) is None


@pytest.mark.asyncio
async def test_find_filters_by_equality_and_in(repo):
    tenants = await seed(repo, 3)

    by_name = await repo.find({"name": "Tenant 02"})
    by_ids = await repo.find({"id": [tenants[0].id, tenants[2].id]}, order_by="name")

    assert [t.id for t in by_name] == [tenants[1].id]
    assert [t.name for t in by_ids] == ["Tenant 01", "Tenant 03"]


@pytest.mark.asyncio
async def test_find_rejects_unknown_field(repo):
    with pytest.raises(ValidationError):
        await repo.find({"bogus": 1})


@pytest.mark.asyncio
async def test_stale_write_raises_concurrency_conflict(repo, transactions):
    tenant = await repo.create(tenant_data(1))

    with pytest.raises(ConcurrencyConflictError):
        async with transactions.transaction() as session:
            stale = await session.get(Tenant, tenant.id)
            # Another transaction commits first
            await repo.update(tenant.id, {"description": "theirs"})
            stale.description = "mine"

    current = await repo.find_by_id(tenant.id)
    assert current.description == "theirs"


# Offset pagination


@pytest.mark.asyncio
async def test_offset_pagination_covers_every_item_once(repo):
    await seed(repo, 7)
    page_size = 3

    seen = []
    for page in range(1, 4):
        result = await repo.find_with_pagination(
            None, PaginationParams(page=page, page_size=page_size, order_by="name")
        )
        seen.extend(t.name for t in result.items)

    past_end = await repo.find_with_pagination(None, PaginationParams(page=4, page_size=page_size))

    assert len(seen) == 7
    assert len(set(seen)) == 7
    assert past_end.items == []
    assert past_end.total == 7


@pytest.mark.asyncio
async def test_offset_pagination_metadata(repo):
    await seed(repo, 7)

    first = await repo.find_with_pagination(None, PaginationParams(page=1, page_size=3))
    last = await repo.find_with_pagination(None, PaginationParams(page=3, page_size=3))

    assert first.total == 7
    assert first.pages == 3
    assert first.has_next is True
    assert first.has_previous is False
    assert len(last.items) == 1
    assert last.has_next is False
    assert last.has_previous is True


@pytest.mark.asyncio
async def test_offset_pagination_of_empty_table(repo):
    page = await repo.find_with_pagination()

    assert page.items == []
    assert page.total == 0
    assert page.pages == 0
    assert page.has_next is False


# Cursor pagination


@pytest.mark.asyncio
async def test_cursor_page_matches_next_offset_page(repo):
    await seed(repo, 7)

    offset_page_1 = await repo.find_with_pagination(
        None, PaginationParams(page=1, page_size=3, order_by="name")
    )
    offset_page_2 = await repo.find_with_pagination(
        None, PaginationParams(page=2, page_size=3, order_by="name")
    )
    cursor = encode_cursor("name", offset_page_1.items[-1].name)

    cursor_page = await repo.find_with_cursor_pagination(page_size=3, cursor=cursor, order_by="name")

    assert [t.id for t in cursor_page.items] == [t.id for t in offset_page_2.items]
    assert cursor_page.has_more is True


@pytest.mark.asyncio
async def test_cursor_walk_visits_every_item_in_order(repo):
    await seed(repo, 7)

    names = []
    cursor = None
    for _ in range(10):
        page = await repo.find_with_cursor_pagination(page_size=3, cursor=cursor, order_by="name")
        names.extend(t.name for t in page.items)
        if not page.has_more:
            assert page.next_cursor is None
            break
        cursor = page.next_cursor

    assert names == [f"Tenant {n:02d}" for n in range(1, 8)]


@pytest.mark.asyncio
async def test_cursor_pagination_descending(repo):
    await seed(repo, 5)

    first = await repo.find_with_cursor_pagination(
        page_size=2, order_by="name", direction=SortDirection.DESC
    )
    second = await repo.find_with_cursor_pagination(
        page_size=2, cursor=first.next_cursor, order_by="name", direction=SortDirection.DESC
    )

    assert [t.name for t in first.items] == ["Tenant 05", "Tenant 04"]
    assert [t.name for t in second.items] == ["Tenant 03", "Tenant 02"]
    assert first.prev_cursor is None
    assert decode_cursor(second.prev_cursor) == ("name", "Tenant 03")


@pytest.mark.asyncio
async def test_cursor_token_encodes_field_and_last_value(repo):
    await seed(repo, 3)

    page = await repo.find_with_cursor_pagination(page_size=2, order_by="name")

    assert decode_cursor(page.next_cursor) == ("name", "Tenant 02")


@pytest.mark.asyncio
async def test_cursor_from_other_ordering_is_rejected(repo):
    await seed(repo, 3)

    with pytest.raises(InvalidCursorError):
        await repo.find_with_cursor_pagination(cursor=encode_cursor("id", "abc"), order_by="name")


@pytest.mark.asyncio
async def test_malformed_cursor_is_rejected(repo):
    with pytest.raises(InvalidCursorError):
        await repo.find_with_cursor_pagination(cursor="%%%not-base64%%%")


@pytest.mark.asyncio
async def test_cursor_over_nullable_field_is_rejected(repo):
    await repo.create({**tenant_data(1), "legal_name": None})
    await repo.create({**tenant_data(2), "legal_name": "Alpha"})

    with pytest.raises(ValidationError) as exc_info:
        await repo.find_with_cursor_pagination(page_size=1, order_by="legal_name")

    assert exc_info.value.details["field"] == "order_by"


# Bulk operations


def batch_with_duplicate() -> list[dict]:
    items = [tenant_data(n) for n in range(1, 6)]
    items[2] = {"name": "Tenant 03", "subdomain": "tenant-01"}  # duplicates item 1
    return items


@pytest.mark.asyncio
async def test_bulk_create_is_all_or_nothing_by_default(repo):
    with pytest.raises(BulkOperationError) as exc_info:
        await repo.bulk_create(batch_with_duplicate())

    assert await repo.count() == 0
    assert [f["index"] for f in exc_info.value.failures] == [0, 1, 2, 3, 4]
    assert exc_info.value.operation == "create"


@pytest.mark.asyncio
async def test_bulk_create_continue_on_error_keeps_the_rest(repo):
    result = await repo.bulk_create(batch_with_duplicate(), continue_on_error=True)

    assert result.success_count == 4
    assert result.fail_count == 1
    assert result.failed[0].index == 2
    assert sorted(t.subdomain for t in result.successful) == [
        "tenant-01",
        "tenant-02",
        "tenant-04",
        "tenant-05",
    ]
    assert await repo.count() == 4


@pytest.mark.asyncio
async def test_bulk_update(repo):
    tenants = await seed(repo, 2)

    result = await repo.bulk_update([(t.id, {"industry": "Retail"}) for t in tenants])

    assert result.success_count == 2
    assert all(t.industry == "Retail" for t in await repo.find())


@pytest.mark.asyncio
async def test_bulk_remove_reports_missing_ids_in_best_effort_mode(repo):
    tenants = await seed(repo, 2)

    result = await repo.bulk_remove([tenants[0].id, "missing", tenants[1].id], continue_on_error=True)

    assert result.successful == [tenants[0].id, tenants[1].id]
    assert [f.index for f in result.failed] == [1]
    assert await repo.count() == 0


@pytest.mark.asyncio
async def test_bulk_remove_atomic_rolls_back_on_missing_id(repo):
    tenants = await seed(repo, 2)

    with pytest.raises(BulkOperationError):
        await repo.bulk_remove([tenants[0].id, "missing"])

    assert await repo.count() == 2


# Transactions


@pytest.mark.asyncio
async def test_execute_transaction_commits(repo):
    async def body(tx_repo):
        await tx_repo.create(tenant_data(1))
        await tx_repo.create(tenant_data(2))
        return await tx_repo.count()

    assert await repo.execute_transaction(body) == 2
    assert await repo.count() == 2


@pytest.mark.asyncio
async def test_execute_transaction_rolls_back_on_error(repo):
    async def body(tx_repo):
        await tx_repo.create(tenant_data(1))
        raise RuntimeError("boom")

    with pytest.raises(DatabaseOperationError) as exc_info:
        await repo.execute_transaction(body)

    assert isinstance(exc_info.value.__cause__, RuntimeError)
    assert await repo.count() == 0


@pytest.mark.asyncio
async def test_execute_transaction_propagates_domain_errors_unchanged(repo):
    async def body(tx_repo):
        await tx_repo.create(tenant_data(1))
        await tx_repo.update("missing", {"description": "x"})

    with pytest.raises(NotFoundError):
        await repo.execute_transaction(body)

    assert await repo.count() == 0


@pytest.mark.asyncio
async def test_bulk_update_records_malformed_items_in_best_effort_mode(repo):
    tenants = await seed(repo, 1)

    result = await repo.bulk_update(
        [(tenants[0].id, {"industry": "Retail"}), ("only-id",)], continue_on_error=True
    )

    assert result.success_count == 1
    assert [f.index for f in result.failed] == [1]
    assert "(id, data)" in result.failed[0].error


@pytest.mark.asyncio
async def test_bulk_create_inside_transaction_reports_domain_errors(repo):
    await repo.create(tenant_data(1))

    async def body(tx_repo):
        return await tx_repo.bulk_create([tenant_data(2), {"name": "Other", "subdomain": "tenant-01"}])

    with pytest.raises(BulkOperationError) as exc_info:
        await repo.execute_transaction(body)

    errors = {f["error"] for f in exc_info.value.failures}
    assert errors == {"Tenant with this subdomain already exists"}
    assert await repo.count() == 1
