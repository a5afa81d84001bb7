"""Tenant provisioning and deprovisioning workflows."""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_platform.application.services.tenant_events import build_event_payload, dispatch_event
from tenant_platform.domain.enums import TenantStatus
from tenant_platform.domain.exceptions import TenantNotFoundError
from tenant_platform.domain.tenant_rules import ensure_status_transition
from tenant_platform.infrastructure.messaging.event_publisher import TenantEventPublisher
from tenant_platform.infrastructure.persistence.models import Tenant
from tenant_platform.infrastructure.persistence.repositories import TenantRepository
from tenant_platform.infrastructure.persistence.transaction import TransactionManager
from tenant_platform.shared.telemetry.tracing import traced

logger = logging.getLogger(__name__)


class TenantLifecycleService:
    """
    Moves a tenant into and out of service.

    Provisioning runs under REPEATABLE READ; deprovisioning is the critical
    path and runs SERIALIZABLE. Events are published after commit.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        tenant_repo: TenantRepository,
        events: TenantEventPublisher,
        transaction_timeout: float | None = None,
    ):
        self.transactions = transactions
        self.tenant_repo = tenant_repo
        self.events = events
        self.transaction_timeout = transaction_timeout

    async def _load(self, session: AsyncSession, tenant_id: str) -> tuple[TenantRepository, Tenant]:
        repo = self.tenant_repo.bind(session)
        tenant = await repo.find_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return repo, tenant

    @traced("tenant.provision")
    async def provision(self, tenant_id: str) -> Tenant:
        """
        Activate a tenant after creation.

        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidStateTransitionError: If the tenant is TERMINATED
        """
        logger.info("Starting provisioning workflow for tenant %s", tenant_id)

        async def apply(session: AsyncSession) -> Tenant:
            repo, tenant = await self._load(session, tenant_id)
            ensure_status_transition(tenant.status, TenantStatus.ACTIVE)
            tenant.status = TenantStatus.ACTIVE.value
            tenant.is_active = True
            return await repo.save(tenant)

        tenant = await self.transactions.run_consistent_read(apply, timeout=self.transaction_timeout)
        logger.info("Tenant %s provisioned", tenant.id)
        await dispatch_event(
            self.events.publish_tenant_provisioned,
            build_event_payload(tenant),
            event="tenant.provisioned",
            tenant_id=tenant.id,
        )
        return tenant

    @traced("tenant.deprovision")
    async def deprovision(self, tenant_id: str) -> Tenant:
        """Terminate a tenant, deactivate it and reset its verification to PENDING."""
        logger.info("Starting deprovisioning workflow for tenant %s", tenant_id)

        async def apply(session: AsyncSession) -> Tenant:
            repo, tenant = await self._load(session, tenant_id)
            ensure_status_transition(tenant.status, TenantStatus.TERMINATED)
            tenant.status = TenantStatus.TERMINATED.value
            tenant.is_active = False
            tenant.verification = tenant.verification.reset()
            return await repo.save(tenant)

        tenant = await self.transactions.run_critical(apply, timeout=self.transaction_timeout)
        logger.info("Tenant %s deprovisioned", tenant.id)
        await dispatch_event(
            self.events.publish_tenant_deprovisioned,
            build_event_payload(tenant),
            event="tenant.deprovisioned",
            tenant_id=tenant.id,
        )
        return tenant
