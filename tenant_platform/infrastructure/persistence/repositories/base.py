from __future__ import annotations

import copy
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from sqlalchemy import ColumnElement, Select, func, inspect, select
from sqlalchemy.ext.asyncio import AsyncSession

from tenant_platform.domain.enums import SortDirection
from tenant_platform.domain.exceptions import (
    BulkOperationError,
    InvalidCursorError,
    NotFoundError,
    TenantPlatformException,
    ValidationError,
)
from tenant_platform.infrastructure.persistence.database import Base
from tenant_platform.infrastructure.persistence.pagination import (
    BulkItemFailure,
    BulkOperationResult,
    CursorPage,
    Page,
    PaginationParams,
    coerce_cursor_value,
    decode_cursor,
    encode_cursor,
)
from tenant_platform.infrastructure.persistence.transaction import (
    IsolationLevel,
    TransactionManager,
    translate_storage_error,
)

logger = logging.getLogger(__name__)

ModelType = TypeVar("ModelType", bound=Base)
R = TypeVar("R")

# Never written through update(); managed by the mapper or the database
_PROTECTED_FIELDS = frozenset({"id", "version", "created_at", "updated_at"})


class GenericRepository(Generic[ModelType]):
    """
    Generic data access for one mapped model.

    A repository is either unbound, in which case every call runs in its own
    short transaction, or bound to a caller's session with ``bind(session)`` so
    that several calls share one transaction.

    Models carrying ``is_deleted`` get soft deletes: ``remove`` sets the flag and
    deleted rows are excluded from reads; ``hard_delete`` always deletes the row.

    Subclasses narrow what is visible through ``_scope_criteria`` / ``_is_visible``
    and adjust writes through ``_prepare_create`` / ``_prepare_update``.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        model: type[ModelType],
        session: AsyncSession | None = None,
    ):
        self.transactions = transactions
        self.model = model
        self._session = session

    # -- session handling ---------------------------------------------------

    def bind(self, session: AsyncSession | None) -> GenericRepository[ModelType]:
        """Return a view of this repository working inside ``session``'s transaction."""
        bound = copy.copy(self)
        bound._session = session
        return bound

    @property
    def is_bound(self) -> bool:
        return self._session is not None

    @property
    def session(self) -> AsyncSession:
        if self._session is None:
            raise RuntimeError(f"{type(self).__name__} is not bound to a session")
        return self._session

    async def _run_unbound(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Run ``method`` on a bound copy inside a fresh transaction."""

        async def operation(session: AsyncSession) -> Any:
            return await getattr(self.bind(session), method)(*args, **kwargs)

        return await self.transactions.run(operation)

    # -- query building -----------------------------------------------------

    @property
    def resource_type(self) -> str:
        return self.model.__name__

    @property
    def supports_soft_delete(self) -> bool:
        return "is_deleted" in inspect(self.model).columns

    def _check_preconditions(self, operation: str) -> None:
        """Hook run before any storage access. Override to reject calls early."""

    def _scope_criteria(self, include_deleted: bool = False) -> list[ColumnElement[bool]]:
        """Implicit filters applied to every read."""
        model: Any = self.model
        if self.supports_soft_delete and not include_deleted:
            return [model.is_deleted.is_(False)]
        return []

    def _is_visible(self, obj: ModelType) -> bool:
        """Second check on a fetched record; hidden records are treated as not found."""
        return True

    def _prepare_create(self, obj: ModelType) -> None:
        """Hook to adjust a new record before it is flushed."""

    def _prepare_update(self, obj: ModelType) -> None:
        """Hook to adjust a modified record before it is flushed."""

    def query(self, include_deleted: bool = False) -> Select[tuple[ModelType]]:
        """Base SELECT with the implicit filters applied (for custom queries)."""
        return select(self.model).where(*self._scope_criteria(include_deleted))

    def _column(self, name: str) -> Any:
        if name not in inspect(self.model).columns:
            raise ValidationError(f"Unknown field '{name}' for {self.resource_type}", field=name)
        return getattr(self.model, name)

    def _where_criteria(self, where: Mapping[str, Any] | None) -> list[ColumnElement[bool]]:
        """Equality filters; sequences become IN, None becomes IS NULL."""
        criteria: list[ColumnElement[bool]] = []
        for name, value in (where or {}).items():
            column = self._column(name)
            if value is None:
                criteria.append(column.is_(None))
            elif isinstance(value, list | tuple | set | frozenset):
                criteria.append(column.in_(list(value)))
            else:
                criteria.append(column == value)
        return criteria

    def _ordering(self, order_by: str | None, direction: SortDirection | str) -> list[Any]:
        """ORDER BY clauses, with id as tie-breaker for a deterministic order."""
        descending = SortDirection(direction) == SortDirection.DESC
        name = order_by or "id"
        columns = [self._column(name)]
        if name != "id":
            columns.append(self._column("id"))
        return [column.desc() if descending else column.asc() for column in columns]

    def _python_type(self, name: str) -> type | None:
        try:
            return inspect(self.model).columns[name].type.python_type
        except NotImplementedError:
            return None

    # -- reads --------------------------------------------------------------

    async def find(
        self,
        where: Mapping[str, Any] | None = None,
        *criteria: ColumnElement[bool],
        order_by: str | None = None,
        direction: SortDirection | str = SortDirection.ASC,
        offset: int | None = None,
        limit: int | None = None,
    ) -> list[ModelType]:
        """Get records matching ``where`` (equality) and any extra SQL ``criteria``"""
        self._check_preconditions("find")
        if not self.is_bound:
            return await self._run_unbound(
                "find",
                where,
                *criteria,
                order_by=order_by,
                direction=direction,
                offset=offset,
                limit=limit,
            )

        stmt = (
            self.query()
            .where(*self._where_criteria(where), *criteria)
            .order_by(*self._ordering(order_by, direction))
        )
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_one(
        self, where: Mapping[str, Any] | None = None, *criteria: ColumnElement[bool]
    ) -> ModelType | None:
        records = await self.find(where, *criteria, limit=1)
        return records[0] if records else None

    async def find_by_id(self, id: str) -> ModelType | None:
        """Get a single record by ID, or None"""
        self._check_preconditions("find_by_id")
        if not self.is_bound:
            return await self._run_unbound("find_by_id", id)
        return await self._get(id)

    async def _get(self, id: str, include_deleted: bool = False) -> ModelType | None:
        model: Any = self.model
        result = await self.session.execute(self.query(include_deleted).where(model.id == id))
        obj = result.scalar_one_or_none()
        if obj is None or not self._is_visible(obj):
            return None
        return obj

    async def _get_or_raise(self, id: str, include_deleted: bool = False) -> ModelType:
        obj = await self._get(id, include_deleted)
        if obj is None:
            raise NotFoundError(self.resource_type, id)
        return obj

    async def count(
        self, where: Mapping[str, Any] | None = None, *criteria: ColumnElement[bool]
    ) -> int:
        self._check_preconditions("count")
        if not self.is_bound:
            return await self._run_unbound("count", where, *criteria)

        stmt = (
            select(func.count())
            .select_from(self.model)
            .where(*self._scope_criteria(), *self._where_criteria(where), *criteria)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    # -- writes -------------------------------------------------------------

    async def create(self, data: Mapping[str, Any] | ModelType) -> ModelType:
        """Insert a record built from ``data`` (or an unsaved instance)"""
        self._check_preconditions("create")
        if not self.is_bound:
            return await self._run_unbound("create", data)

        obj = data if isinstance(data, self.model) else self._build(data)
        self._prepare_create(obj)
        self.session.add(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    def _build(self, data: Mapping[str, Any]) -> ModelType:
        for name in data:
            self._column(name)
        return self.model(**dict(data))

    async def update(self, id: str, data: Mapping[str, Any]) -> ModelType:
        """
        Apply ``data`` to the record with ``id``.

        Raises:
            NotFoundError: If no visible record has this id
        """
        self._check_preconditions("update")
        if not self.is_bound:
            return await self._run_unbound("update", id, data)

        obj = await self._get_or_raise(id)
        for name, value in data.items():
            self._column(name)
            if name in _PROTECTED_FIELDS:
                continue
            setattr(obj, name, value)
        self._prepare_update(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def save(self, obj: ModelType) -> ModelType:
        """Flush changes made directly on a record loaded through this session"""
        self._check_preconditions("save")
        self._prepare_update(obj)
        await self.session.flush()
        await self.session.refresh(obj)
        return obj

    async def remove(self, id: str) -> None:
        """
        Soft delete when the model supports it, hard delete otherwise.

        Raises:
            NotFoundError: If no visible record has this id
        """
        self._check_preconditions("remove")
        if not self.is_bound:
            return await self._run_unbound("remove", id)

        obj = await self._get_or_raise(id)
        if self.supports_soft_delete:
            obj_any: Any = obj
            obj_any.is_deleted = True
            await self.session.flush()
            return
        await self.session.delete(obj)
        await self.session.flush()

    async def hard_delete(self, id: str) -> None:
        """Physically delete the row, including already soft-deleted rows"""
        self._check_preconditions("hard_delete")
        if not self.is_bound:
            return await self._run_unbound("hard_delete", id)

        obj = await self._get_or_raise(id, include_deleted=True)
        await self.session.delete(obj)
        await self.session.flush()

    # -- pagination ---------------------------------------------------------

    async def find_with_pagination(
        self,
        where: Mapping[str, Any] | None = None,
        params: PaginationParams | None = None,
        *criteria: ColumnElement[bool],
    ) -> Page[ModelType]:
        """
        Offset pagination.

        Pages past the end return an empty item list, not an error.
        """
        self._check_preconditions("find_with_pagination")
        if not self.is_bound:
            return await self._run_unbound("find_with_pagination", where, params, *criteria)

        params = params or PaginationParams()
        total = await self.count(where, *criteria)
        items = await self.find(
            where,
            *criteria,
            order_by=params.order_by,
            direction=params.direction,
            offset=params.offset,
            limit=params.page_size,
        )
        return Page(items=items, total=total, page=params.page, page_size=params.page_size)

    async def find_with_cursor_pagination(
        self,
        where: Mapping[str, Any] | None = None,
        *criteria: ColumnElement[bool],
        page_size: int = 10,
        cursor: str | None = None,
        order_by: str = "id",
        direction: SortDirection | str = SortDirection.ASC,
    ) -> CursorPage[ModelType]:
        """
        Keyset pagination with opaque cursors.

        The cursor encodes the ordering field and the last value seen. It is only
        meaningful for the filter and ordering that produced it; the ordering
        field should be unique (rows sharing a boundary value are skipped) and
        NOT NULL, since NULL has no place in the keyset comparison.
        """
        self._check_preconditions("find_with_cursor_pagination")
        if page_size < 1:
            raise ValidationError("page_size must be at least 1", field="page_size")
        self._column(order_by)
        if inspect(self.model).columns[order_by].nullable:
            raise ValidationError(
                f"Cannot paginate by cursor over nullable field '{order_by}'", field="order_by"
            )
        if not self.is_bound:
            return await self._run_unbound(
                "find_with_cursor_pagination",
                where,
                *criteria,
                page_size=page_size,
                cursor=cursor,
                order_by=order_by,
                direction=direction,
            )

        column = self._column(order_by)
        descending = SortDirection(direction) == SortDirection.DESC
        stmt = self.query().where(*self._where_criteria(where), *criteria)

        if cursor:
            field_name, raw_value = decode_cursor(cursor)
            if field_name != order_by:
                raise InvalidCursorError(cursor, f"cursor was issued for ordering by '{field_name}'")
            value = coerce_cursor_value(raw_value, self._python_type(order_by))
            stmt = stmt.where(column < value if descending else column > value)

        stmt = stmt.order_by(*self._ordering(order_by, direction)).limit(page_size + 1)
        result = await self.session.execute(stmt)
        rows = list(result.scalars().all())

        has_more = len(rows) > page_size
        items = rows[:page_size]
        next_cursor = None
        prev_cursor = None
        if items and has_more:
            next_cursor = encode_cursor(order_by, getattr(items[-1], order_by))
        if items and cursor:
            prev_cursor = encode_cursor(order_by, getattr(items[0], order_by))
        return CursorPage(
            items=items, has_more=has_more, next_cursor=next_cursor, prev_cursor=prev_cursor
        )

    # -- bulk operations ----------------------------------------------------

    async def bulk_create(
        self, items: Sequence[Mapping[str, Any]], continue_on_error: bool = False
    ) -> BulkOperationResult[ModelType]:
        self._check_preconditions("bulk_create")
        return await self._bulk("create", items, lambda repo, item: repo.create(item), continue_on_error)

    async def bulk_update(
        self, items: Sequence[tuple[str, Mapping[str, Any]]], continue_on_error: bool = False
    ) -> BulkOperationResult[ModelType]:
        """Apply ``(id, data)`` pairs"""
        self._check_preconditions("bulk_update")

        async def apply(repo: GenericRepository[ModelType], item: Any) -> ModelType:
            try:
                id, data = item
            except (TypeError, ValueError) as e:
                raise ValidationError("Bulk update items must be (id, data) pairs") from e
            return await repo.update(id, data)

        return await self._bulk("update", items, apply, continue_on_error)

    async def bulk_remove(
        self, ids: Sequence[str], continue_on_error: bool = False, hard_delete: bool = False
    ) -> BulkOperationResult[str]:
        self._check_preconditions("bulk_remove")

        async def apply(repo: GenericRepository[ModelType], id: str) -> str:
            if hard_delete:
                await repo.hard_delete(id)
            else:
                await repo.remove(id)
            return id

        return await self._bulk("remove", ids, apply, continue_on_error)

    async def _bulk(
        self,
        operation: str,
        items: Sequence[Any],
        apply: Callable[[GenericRepository[ModelType], Any], Awaitable[Any]],
        continue_on_error: bool,
    ) -> BulkOperationResult[Any]:
        """
        Run ``apply`` for every item.

        All-or-nothing (default): one transaction for the whole batch; any
        failure rolls everything back and raises BulkOperationError listing
        every item. Best-effort: each item gets its own transaction and
        failures are collected in the result.
        """
        items = list(items)
        if continue_on_error:
            return await self._bulk_best_effort(operation, items, apply)

        async def apply_all(session: AsyncSession) -> list[Any]:
            repo = self.bind(session)
            return [await apply(repo, item) for item in items]

        try:
            if self.is_bound:
                try:
                    successful = await apply_all(self.session)
                except TenantPlatformException:
                    raise
                except Exception as e:
                    raise translate_storage_error(e, self.resource_type) from e
            else:
                successful = await self.transactions.run(apply_all)
        except TenantPlatformException as e:
            failures = [BulkItemFailure(index, e.message, item).to_dict() for index, item in enumerate(items)]
            logger.warning(
                "Bulk %s of %d %s record(s) rolled back: %s",
                operation,
                len(items),
                self.resource_type,
                e,
            )
            raise BulkOperationError(operation, failures) from e

        return BulkOperationResult(successful=successful)

    async def _bulk_best_effort(
        self,
        operation: str,
        items: list[Any],
        apply: Callable[[GenericRepository[ModelType], Any], Awaitable[Any]],
    ) -> BulkOperationResult[Any]:
        result: BulkOperationResult[Any] = BulkOperationResult()
        unbound = self.bind(None)
        for index, item in enumerate(items):
            try:
                result.successful.append(await apply(unbound, item))
            except Exception as e:
                error = translate_storage_error(e, self.resource_type)
                result.failed.append(BulkItemFailure(index=index, error=error.message, item=item))

        if result.failed:
            logger.info(
                "Bulk %s of %s: %d succeeded, %d failed",
                operation,
                self.resource_type,
                result.success_count,
                result.fail_count,
            )
        return result

    # -- transactions -------------------------------------------------------

    async def execute_transaction(
        self,
        body: Callable[[GenericRepository[ModelType]], Awaitable[R]],
        isolation_level: IsolationLevel | str | None = None,
        timeout: float | None = None,
    ) -> R:
        """
        Run ``body`` with a repository bound to one transaction.

        Commits when ``body`` returns, rolls back and re-raises when it fails.
        Inside an already bound repository ``body`` joins the caller's transaction.
        """
        if self.is_bound:
            return await body(self)
        return await self.transactions.run(
            lambda session: body(self.bind(session)), isolation_level, timeout
        )
