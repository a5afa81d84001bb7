"""Tenant context middleware."""

import logging
import re
from collections.abc import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from tenant_platform.application.services.tenant_service import TenantService
from tenant_platform.domain.exceptions import TenantPlatformException
from tenant_platform.shared.context import tenant_scope

logger = logging.getLogger(__name__)

_TENANT_PATH = re.compile(r"/tenants/([^/]+)")


class TenantContextMiddleware(BaseHTTPMiddleware):
    """
    Run every request inside a tenant scope.

    The tenant is resolved, in order, from:
    - the tenant header (``X-Tenant-ID`` by default), if it names an active tenant
    - the subdomain of the Host header
    - a ``/tenants/{id}/...`` path segment, if it names an active tenant

    If nothing resolves, or resolution fails, the request runs with no tenant.
    """

    def __init__(
        self,
        app,
        tenant_service_provider: Callable[[], TenantService],
        header_name: str = "X-Tenant-ID",
        base_domain: str | None = None,
    ):
        super().__init__(app)
        self.tenant_service_provider = tenant_service_provider
        self.header_name = header_name
        self.base_domain = base_domain.lower().lstrip(".") if base_domain else None

    def _service(self, request: Request) -> TenantService:
        # Honour FastAPI dependency overrides so tests can swap the service
        overrides = getattr(request.app, "dependency_overrides", {})
        provider = overrides.get(self.tenant_service_provider, self.tenant_service_provider)
        return provider()

    def _subdomain(self, host: str | None) -> str | None:
        if not host:
            return None
        hostname = host.split(":", 1)[0].lower()
        if self.base_domain:
            suffix = f".{self.base_domain}"
            if not hostname.endswith(suffix):
                return None
            label = hostname[: -len(suffix)]
            return label if label and "." not in label else None
        if "." not in hostname or hostname.startswith("www."):
            return None
        return hostname.split(".", 1)[0]

    @staticmethod
    async def _active_tenant_id(service: TenantService, tenant_id: str) -> str | None:
        try:
            tenant = await service.find_by_id(tenant_id)
        except TenantPlatformException:
            return None
        return tenant.id if tenant.is_active else None

    async def resolve_tenant_id(self, request: Request) -> str | None:
        service = self._service(request)

        header_value = request.headers.get(self.header_name)
        if header_value:
            tenant_id = await self._active_tenant_id(service, header_value.strip())
            if tenant_id:
                return tenant_id

        subdomain = self._subdomain(request.headers.get("host"))
        if subdomain:
            tenant = await service.find_by_subdomain(subdomain)
            if tenant and tenant.is_active:
                return tenant.id

        match = _TENANT_PATH.search(request.url.path)
        if match:
            return await self._active_tenant_id(service, match.group(1))
        return None

    async def dispatch(self, request: Request, call_next):
        try:
            tenant_id = await self.resolve_tenant_id(request)
        except Exception as e:
            logger.debug("Tenant resolution failed, continuing without tenant: %s", e)
            tenant_id = None

        request.state.tenant_id = tenant_id
        with tenant_scope(tenant_id):
            return await call_next(request)
