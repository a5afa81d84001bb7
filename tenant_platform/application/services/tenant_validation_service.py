"""
Tenant validation.

Confirms that a tenant exists and is active before tenant-scoped work runs.
Results are cached per tenant for a short TTL so repeated checks within one
validation window do not hit storage again. Failed lookups are cached too.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any

from tenant_platform.application.services.tenant_service import TenantService
from tenant_platform.domain.exceptions import (
    MissingTenantContextError,
    TenantInactiveError,
    TenantNotFoundError,
    UnauthorizedTenantAccessError,
)
from tenant_platform.shared.context import get_current_tenant_id
from tenant_platform.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)


@dataclass
class TenantValidationResult:
    tenant_id: str
    exists: bool = False
    is_active: bool = False
    is_valid: bool = False
    error_code: str | None = None
    error_message: str | None = None
    validated_at: datetime = field(default_factory=utc_now)
    metadata: dict[str, Any] | None = None


ValidationHook = Callable[[str, TenantValidationResult], Awaitable[None]]


class TenantValidationService:
    """
    Validates tenant existence and activity with a TTL cache.

    Hooks registered with ``register_pre_hook``/``register_post_hook`` run
    around every fresh lookup; a failing hook is logged and ignored.
    """

    def __init__(
        self,
        tenant_service: TenantService,
        cache_ttl: float = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.tenant_service = tenant_service
        self.cache_ttl = cache_ttl
        self._clock = clock
        self._cache: dict[str, tuple[float, TenantValidationResult]] = {}
        self._pre_hooks: list[ValidationHook] = []
        self._post_hooks: list[ValidationHook] = []

    # -- configuration ------------------------------------------------------

    def set_cache_ttl(self, seconds: float) -> None:
        self.cache_ttl = seconds

    def clear_cache(self, tenant_id: str | None = None) -> None:
        if tenant_id:
            self._cache.pop(tenant_id, None)
            logger.debug("Cleared validation cache for tenant %s", tenant_id)
        else:
            self._cache.clear()
            logger.debug("Cleared all tenant validation cache")

    def register_pre_hook(self, hook: ValidationHook) -> None:
        self._pre_hooks.append(hook)

    def register_post_hook(self, hook: ValidationHook) -> None:
        self._post_hooks.append(hook)

    # -- internals ----------------------------------------------------------

    async def _run_hooks(
        self, hooks: list[ValidationHook], stage: str, tenant_id: str, result: TenantValidationResult
    ) -> None:
        for hook in hooks:
            try:
                await hook(tenant_id, result)
            except Exception as e:
                logger.warning("%s-validation hook failed for tenant %s: %s", stage, tenant_id, e)

    def _cached(self, tenant_id: str) -> TenantValidationResult | None:
        entry = self._cache.get(tenant_id)
        if entry is None:
            return None
        stored_at, result = entry
        if self._clock() - stored_at >= self.cache_ttl:
            del self._cache[tenant_id]
            return None
        return result

    def _store(self, result: TenantValidationResult) -> None:
        self._cache[result.tenant_id] = (self._clock(), result)

    @staticmethod
    def _resolve(tenant_id: str | None) -> str:
        resolved = tenant_id or get_current_tenant_id()
        if not resolved:
            raise MissingTenantContextError()
        return resolved

    async def _lookup(self, tenant_id: str) -> TenantValidationResult:
        """Fresh lookup; never raises for a missing or inactive tenant"""
        result = TenantValidationResult(tenant_id=tenant_id)
        await self._run_hooks(self._pre_hooks, "Pre", tenant_id, result)

        try:
            tenant = await self.tenant_service.find_by_id(tenant_id)
        except TenantNotFoundError:
            result.error_code = "TENANT_NOT_FOUND"
            result.error_message = f"Tenant {tenant_id} not found"
        else:
            result.exists = True
            result.is_active = bool(tenant.is_active)
            result.is_valid = result.is_active
            if not result.is_active:
                result.error_code = "TENANT_INACTIVE"
                result.error_message = f"Tenant {tenant_id} is inactive"

        result.validated_at = utc_now()
        self._store(result)
        await self._run_hooks(self._post_hooks, "Post", tenant_id, result)
        return result

    async def _result_for(self, tenant_id: str, skip_cache: bool) -> TenantValidationResult:
        if not skip_cache:
            cached = self._cached(tenant_id)
            if cached is not None:
                logger.debug("Using cached validation result for tenant %s", tenant_id)
                return cached
        return await self._lookup(tenant_id)

    # -- public API ---------------------------------------------------------

    async def validate_active(self, tenant_id: str | None = None, skip_cache: bool = False) -> bool:
        """
        Require an existing, active tenant.

        Args:
            tenant_id: Tenant to check; defaults to the current tenant context

        Raises:
            MissingTenantContextError: If no tenant id is given or in context
            TenantNotFoundError: If the tenant does not exist
            TenantInactiveError: If the tenant exists but is inactive
        """
        resolved = self._resolve(tenant_id)
        result = await self._result_for(resolved, skip_cache)
        if not result.exists:
            raise TenantNotFoundError(resolved)
        if not result.is_active:
            raise TenantInactiveError(resolved)
        return True

    async def validate_exists(self, tenant_id: str | None = None, skip_cache: bool = False) -> bool:
        """Like ``validate_active`` but an inactive tenant passes."""
        resolved = self._resolve(tenant_id)
        result = await self._result_for(resolved, skip_cache)
        if not result.exists:
            raise TenantNotFoundError(resolved)
        return True

    async def validate_access(self, tenant_id: str, user_id: str, skip_cache: bool = False) -> bool:
        """
        Require an active tenant and let hooks veto access for ``user_id``.

        A pre hook denies access by setting ``is_valid`` to False on the result.
        """
        if not user_id:
            raise UnauthorizedTenantAccessError(tenant_id)
        await self.validate_active(tenant_id, skip_cache)

        result = TenantValidationResult(
            tenant_id=tenant_id,
            exists=True,
            is_active=True,
            is_valid=True,
            metadata={"user_id": user_id, "access_type": "standard"},
        )
        await self._run_hooks(self._pre_hooks, "Pre", tenant_id, result)
        if not result.is_valid:
            raise UnauthorizedTenantAccessError(tenant_id, user_id)
        await self._run_hooks(self._post_hooks, "Post", tenant_id, result)
        return True

    def get_current_tenant_id_or_fail(self) -> str:
        return self._resolve(None)

    async def get_detailed_validation(
        self, tenant_id: str | None = None, skip_cache: bool = False
    ) -> TenantValidationResult:
        """Validation result for the tenant; a copy, so callers cannot alter the cache."""
        resolved = self._resolve(tenant_id)
        return replace(await self._result_for(resolved, skip_cache))

    async def batch_validate(
        self, tenant_ids: list[str], skip_cache: bool = False
    ) -> dict[str, TenantValidationResult]:
        """Validate every id concurrently; one failure never aborts the others."""
        logger.debug("Performing batch validation for %d tenants", len(tenant_ids))

        async def validate_one(tenant_id: str) -> TenantValidationResult:
            try:
                return await self.get_detailed_validation(tenant_id, skip_cache)
            except Exception as e:
                logger.error("Error validating tenant %s: %s", tenant_id, e)
                return TenantValidationResult(
                    tenant_id=tenant_id, error_code="VALIDATION_ERROR", error_message=str(e)
                )

        results = await asyncio.gather(*(validate_one(tenant_id) for tenant_id in tenant_ids))
        return dict(zip(tenant_ids, results, strict=True))
