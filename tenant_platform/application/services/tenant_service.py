"""
Tenant administration service.

Orchestrates tenant creation, updates, status and verification changes,
satellite (address/contact) management and removal on top of the
repositories. Every write runs in one transaction; the matching domain event
is published only after that transaction has committed.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from tenant_platform.application.dto.tenant import (
    AddressCreate,
    AddressUpdate,
    ContactInfoCreate,
    ContactInfoUpdate,
    TenantCreate,
    TenantSearchCriteria,
    TenantUpdate,
)
from tenant_platform.application.services.tenant_events import build_event_payload, dispatch_event
from tenant_platform.domain.enums import (
    EntityType,
    SortDirection,
    TenantStatus,
    VerificationStatus,
)
from tenant_platform.domain.exceptions import (
    AddressNotFoundError,
    AlreadyExistsError,
    ContactInfoNotFoundError,
    NotFoundError,
    TenantNotFoundError,
    ValidationError,
)
from tenant_platform.domain.tenant_rules import ensure_status_transition
from tenant_platform.infrastructure.idempotency.store import IdempotencyStore
from tenant_platform.infrastructure.messaging.event_publisher import TenantEventPublisher
from tenant_platform.infrastructure.persistence.models import Address, ContactInfo, Tenant
from tenant_platform.infrastructure.persistence.pagination import (
    CursorPage,
    Page,
    PaginationParams,
)
from tenant_platform.infrastructure.persistence.repositories import (
    AddressRepository,
    ContactInfoRepository,
    TenantRepository,
)
from tenant_platform.infrastructure.persistence.repositories.tenant_aware import (
    TenantAwareRepository,
)
from tenant_platform.infrastructure.persistence.transaction import TransactionManager
from tenant_platform.shared.context import tenant_scope
from tenant_platform.shared.telemetry.tracing import add_span_attributes, traced
from tenant_platform.shared.utils.datetime import utc_now

logger = logging.getLogger(__name__)

T = TypeVar("T")
S = TypeVar("S", Address, ContactInfo)

# Required columns that a partial update may not clear
_REQUIRED_FIELDS = ("name", "subdomain")


@dataclass
class TenantWithRelations:
    tenant: Tenant
    addresses: list[Address]
    contact_infos: list[ContactInfo]


@dataclass
class IdempotentCreateResult:
    """Result of an idempotent create; ``created`` is False for a replay"""

    tenant: Tenant
    created: bool


class TenantService:
    """
    Service for tenant administration.

    Satellite records are tenant-scoped: they are read and written inside a
    tenant scope for the owning tenant, whatever scope the caller runs in.
    """

    def __init__(
        self,
        transactions: TransactionManager,
        tenant_repo: TenantRepository,
        address_repo: AddressRepository,
        contact_repo: ContactInfoRepository,
        events: TenantEventPublisher,
        idempotency: IdempotencyStore,
        transaction_timeout: float | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.transactions = transactions
        self.tenant_repo = tenant_repo
        self.address_repo = address_repo
        self.contact_repo = contact_repo
        self.events = events
        self.idempotency = idempotency
        self.transaction_timeout = transaction_timeout
        self._clock = clock

    async def _run(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        try:
            return await self.transactions.run(operation, timeout=self.transaction_timeout)
        except AlreadyExistsError as e:
            # Only tenants carry unique constraints
            raise AlreadyExistsError(
                "Tenant", field=e.details.get("field"), value=e.details.get("value")
            ) from e

    @staticmethod
    async def _load(repo: TenantRepository, tenant_id: str) -> Tenant:
        tenant = await repo.find_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    # -- reads --------------------------------------------------------------

    async def find_all(
        self,
        params: PaginationParams | None = None,
        status: TenantStatus | None = None,
        verification_status: VerificationStatus | None = None,
    ) -> Page[Tenant]:
        """Non-deleted tenants, optionally filtered by status"""
        where: dict[str, Any] = {}
        if status:
            where["status"] = TenantStatus(status).value
        if verification_status:
            where["verification_status"] = VerificationStatus(verification_status).value
        return await self.tenant_repo.find_with_pagination(where, params)

    async def find_page_by_cursor(
        self,
        cursor: str | None = None,
        page_size: int = 10,
        order_by: str = "id",
        direction: SortDirection = SortDirection.ASC,
    ) -> CursorPage[Tenant]:
        return await self.tenant_repo.find_with_cursor_pagination(
            page_size=page_size, cursor=cursor, order_by=order_by, direction=direction
        )

    async def find_by_status(self, status: TenantStatus) -> list[Tenant]:
        return await self.tenant_repo.find_by_status(status)

    async def find_by_verification_status(
        self, verification_status: VerificationStatus
    ) -> list[Tenant]:
        return await self.tenant_repo.find_by_verification_status(verification_status)

    async def search_by_name(self, term: str, limit: int | None = None) -> list[Tenant]:
        return await self.tenant_repo.search_by_name(term, limit)

    async def advanced_search(self, criteria: TenantSearchCriteria) -> list[Tenant]:
        return await self.tenant_repo.advanced_search(**criteria.model_dump())

    async def find_by_id(self, tenant_id: str) -> Tenant:
        """
        Raises:
            TenantNotFoundError: If the tenant does not exist or was deleted
        """
        tenant = await self.tenant_repo.find_by_id(tenant_id)
        if tenant is None:
            raise TenantNotFoundError(tenant_id)
        return tenant

    async def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        return await self.tenant_repo.find_by_subdomain(subdomain)

    async def find_by_identifier(self, identifier: str) -> Tenant | None:
        return await self.tenant_repo.find_by_identifier(identifier)

    async def count_by_status(self) -> dict[str, int]:
        return await self.tenant_repo.count_by_status()

    async def get_with_relations(self, tenant_id: str) -> TenantWithRelations:
        tenant = await self.find_by_id(tenant_id)
        with tenant_scope(tenant.id):
            addresses = await self.address_repo.find_for_entity(tenant.id, EntityType.TENANT)
            contact_infos = await self.contact_repo.find_for_entity(tenant.id, EntityType.TENANT)
        return TenantWithRelations(tenant=tenant, addresses=addresses, contact_infos=contact_infos)

    # -- tenant writes ------------------------------------------------------

    @traced("tenant.create")
    async def create(self, data: TenantCreate) -> Tenant:
        """
        Create a tenant in PENDING status with verification PENDING.

        Status, verification and tenant reference are never taken from input.
        """
        values = data.model_dump()
        values.update(
            status=TenantStatus.PENDING.value,
            verification_status=VerificationStatus.PENDING.value,
            verification_attempted=False,
            is_active=True,
            tenant_id=None,
        )

        tenant = await self._run(lambda session: self.tenant_repo.bind(session).create(values))
        add_span_attributes(**{"tenant.id": tenant.id})
        logger.info("Tenant created: %s (%s)", tenant.id, tenant.subdomain)

        await dispatch_event(
            self.events.publish_tenant_created,
            build_event_payload(tenant),
            event="tenant.created",
            tenant_id=tenant.id,
        )
        return tenant

    @traced("tenant.create_idempotent")
    async def create_with_idempotency(
        self, data: TenantCreate, idempotency_key: str
    ) -> IdempotentCreateResult:
        """
        Create a tenant at most once per idempotency key.

        A replay within the key's TTL returns the tenant created by the first
        call as it is stored now, not a snapshot: once that tenant has been
        removed the replay raises TenantNotFoundError rather than creating it
        again. After the TTL the key is forgotten and a new tenant may be created.
        """
        key = (idempotency_key or "").strip()
        if not key:
            raise ValidationError("Idempotency key is required", field="Idempotency-Key")

        async with self.idempotency.lock(key):
            existing_id = await self.idempotency.get(key)
            if existing_id:
                logger.info("Idempotent replay for key %s, tenant %s", key, existing_id)
                return IdempotentCreateResult(tenant=await self.find_by_id(existing_id), created=False)

            tenant = await self.create(data)
            await self.idempotency.put(key, tenant.id)
            return IdempotentCreateResult(tenant=tenant, created=True)

    @traced("tenant.update")
    async def update(self, tenant_id: str, data: TenantUpdate) -> Tenant:
        changes = data.model_dump(exclude_unset=True)
        for field in _REQUIRED_FIELDS:
            if field in changes and changes[field] is None:
                del changes[field]

        async def apply(session: AsyncSession) -> Tenant:
            repo = self.tenant_repo.bind(session)
            tenant = await self._load(repo, tenant_id)
            for name, value in changes.items():
                setattr(tenant, name, value)
            # A tenant is never scoped to another tenant
            tenant.tenant_id = None
            return await repo.save(tenant)

        tenant = await self._run(apply)
        await dispatch_event(
            self.events.publish_tenant_updated,
            build_event_payload(tenant),
            event="tenant.updated",
            tenant_id=tenant.id,
        )
        return tenant

    @traced("tenant.set_status")
    async def set_status(self, tenant_id: str, status: TenantStatus | str) -> Tenant:
        """
        Raises:
            TenantNotFoundError: If the tenant does not exist
            InvalidStateTransitionError: If ``status`` is not reachable from the current one
        """
        target = TenantStatus(status)

        async def apply(session: AsyncSession) -> Tenant:
            repo = self.tenant_repo.bind(session)
            tenant = await self._load(repo, tenant_id)
            ensure_status_transition(tenant.status, target)
            tenant.status = target.value
            return await repo.save(tenant)

        tenant = await self._run(apply)
        logger.info("Tenant %s status set to %s", tenant.id, target.value)
        await dispatch_event(
            self.events.publish_tenant_updated,
            build_event_payload(tenant),
            event="tenant.updated",
            tenant_id=tenant.id,
        )
        return tenant

    @traced("tenant.set_verification_status")
    async def set_verification_status(
        self,
        tenant_id: str,
        status: VerificationStatus | str,
        verifier_id: str,
        notes: str | None = None,
    ) -> Tenant:
        """Record a verification decision; VERIFIED stamps the verification date."""
        target = VerificationStatus(status)

        async def apply(session: AsyncSession) -> Tenant:
            repo = self.tenant_repo.bind(session)
            tenant = await self._load(repo, tenant_id)
            tenant.verification = tenant.verification.transition(
                target, verifier_id, now=self._clock(), notes=notes
            )
            return await repo.save(tenant)

        tenant = await self._run(apply)
        logger.info("Tenant %s verification set to %s by %s", tenant.id, target.value, verifier_id)
        await dispatch_event(
            self.events.publish_tenant_updated,
            build_event_payload(tenant),
            event="tenant.updated",
            tenant_id=tenant.id,
        )
        return tenant

    async def add_verification_document(self, tenant_id: str, document_id: str) -> Tenant:
        async def apply(session: AsyncSession) -> Tenant:
            repo = self.tenant_repo.bind(session)
            tenant = await self._load(repo, tenant_id)
            tenant.verification = tenant.verification.with_document(document_id)
            return await repo.save(tenant)

        return await self._run(apply)

    @traced("tenant.remove")
    async def remove(self, tenant_id: str) -> None:
        """
        Soft-delete every address and contact of the tenant, then delete the
        tenant row itself, all in one transaction.
        """

        async def apply(session: AsyncSession) -> None:
            repo = self.tenant_repo.bind(session)
            tenant = await self._load(repo, tenant_id)
            with tenant_scope(tenant.id):
                addresses = self.address_repo.bind(session)
                for address in await addresses.find_for_entity(tenant.id, EntityType.TENANT):
                    await addresses.remove(address.id)
                contacts = self.contact_repo.bind(session)
                for contact in await contacts.find_for_entity(tenant.id, EntityType.TENANT):
                    await contacts.remove(contact.id)
            await repo.hard_delete(tenant.id)

        await self._run(apply)
        logger.info("Tenant removed: %s", tenant_id)
        await dispatch_event(
            self.events.publish_tenant_deleted,
            tenant_id,
            event="tenant.deleted",
            tenant_id=tenant_id,
        )

    # -- satellites ---------------------------------------------------------

    async def _add_satellite(self, repo: TenantAwareRepository[S], tenant_id: str, values: dict[str, Any]) -> S:
        tenant = await self.find_by_id(tenant_id)
        values.update(entity_id=tenant.id, entity_type=EntityType.TENANT.value)
        with tenant_scope(tenant.id):
            return await self._run(lambda session: repo.bind(session).create(values))

    async def _update_satellite(
        self,
        repo: TenantAwareRepository[S],
        not_found: Callable[[str], NotFoundError],
        tenant_id: str,
        item_id: str,
        changes: dict[str, Any],
    ) -> S:
        tenant = await self.find_by_id(tenant_id)

        async def apply(session: AsyncSession) -> S:
            bound = repo.bind(session)
            item: Any = await bound.find_by_id(item_id)
            if item is None or item.entity_id != tenant.id:
                raise not_found(item_id)
            return await bound.update(item_id, changes)

        with tenant_scope(tenant.id):
            return await self._run(apply)

    async def _remove_satellite(
        self,
        repo: TenantAwareRepository[S],
        not_found: Callable[[str], NotFoundError],
        tenant_id: str,
        item_id: str,
    ) -> None:
        tenant = await self.find_by_id(tenant_id)

        async def apply(session: AsyncSession) -> None:
            bound = repo.bind(session)
            item: Any = await bound.find_by_id(item_id)
            if item is None or item.entity_id != tenant.id:
                raise not_found(item_id)
            await bound.remove(item_id)

        with tenant_scope(tenant.id):
            await self._run(apply)

    async def add_address(self, tenant_id: str, data: AddressCreate) -> Address:
        return await self._add_satellite(self.address_repo, tenant_id, data.model_dump())

    async def get_addresses(self, tenant_id: str) -> list[Address]:
        tenant = await self.find_by_id(tenant_id)
        with tenant_scope(tenant.id):
            return await self.address_repo.find_for_entity(tenant.id, EntityType.TENANT)

    async def update_address(self, tenant_id: str, address_id: str, data: AddressUpdate) -> Address:
        return await self._update_satellite(
            self.address_repo,
            AddressNotFoundError,
            tenant_id,
            address_id,
            data.model_dump(exclude_unset=True, exclude_none=True),
        )

    async def remove_address(self, tenant_id: str, address_id: str) -> None:
        await self._remove_satellite(self.address_repo, AddressNotFoundError, tenant_id, address_id)

    async def add_contact_info(self, tenant_id: str, data: ContactInfoCreate) -> ContactInfo:
        return await self._add_satellite(self.contact_repo, tenant_id, data.model_dump())

    async def get_contact_infos(self, tenant_id: str) -> list[ContactInfo]:
        tenant = await self.find_by_id(tenant_id)
        with tenant_scope(tenant.id):
            return await self.contact_repo.find_for_entity(tenant.id, EntityType.TENANT)

    async def update_contact_info(
        self, tenant_id: str, contact_id: str, data: ContactInfoUpdate
    ) -> ContactInfo:
        return await self._update_satellite(
            self.contact_repo,
            ContactInfoNotFoundError,
            tenant_id,
            contact_id,
            data.model_dump(exclude_unset=True, exclude_none=True),
        )

    async def remove_contact_info(self, tenant_id: str, contact_id: str) -> None:
        await self._remove_satellite(
            self.contact_repo, ContactInfoNotFoundError, tenant_id, contact_id
        )
