from __future__ import annotations

from typing import Any, TypeVar

from sqlalchemy import ColumnElement

from tenant_platform.domain.exceptions import TenantRequiredError
from tenant_platform.infrastructure.persistence.database import Base
from tenant_platform.infrastructure.persistence.repositories.base import GenericRepository
from tenant_platform.shared.context import get_current_tenant_id

ModelType = TypeVar("ModelType", bound=Base)


class TenantAwareRepository(GenericRepository[ModelType]):
    """
    Repository for tenant-scoped models (models with TenantMixin).

    Every operation requires a current tenant (see ``tenant_scope``) and fails
    with TenantRequiredError before touching storage when there is none. Reads
    are filtered by ``tenant_id``; creates and updates are pinned to the current
    tenant whatever the caller passed; a record of another tenant behaves
    exactly like a missing record.
    """

    def current_tenant_id(self, operation: str | None = None) -> str:
        tenant_id = get_current_tenant_id()
        if not tenant_id:
            raise TenantRequiredError(operation)
        return tenant_id

    def _check_preconditions(self, operation: str) -> None:
        self.current_tenant_id(operation)

    def _scope_criteria(self, include_deleted: bool = False) -> list[ColumnElement[bool]]:
        model: Any = self.model
        criteria = super()._scope_criteria(include_deleted)
        criteria.append(model.tenant_id == self.current_tenant_id())
        return criteria

    def _is_visible(self, obj: ModelType) -> bool:
        obj_any: Any = obj
        return obj_any.tenant_id == self.current_tenant_id()

    def _prepare_create(self, obj: ModelType) -> None:
        obj_any: Any = obj
        obj_any.tenant_id = self.current_tenant_id("create")

    def _prepare_update(self, obj: ModelType) -> None:
        obj_any: Any = obj
        obj_any.tenant_id = self.current_tenant_id("update")
