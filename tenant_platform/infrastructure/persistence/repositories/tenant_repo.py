from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, func, or_, select

from tenant_platform.domain.enums import BusinessType, TenantStatus, VerificationStatus
from tenant_platform.infrastructure.persistence.models import Tenant
from tenant_platform.infrastructure.persistence.repositories.base import GenericRepository
from tenant_platform.infrastructure.persistence.transaction import TransactionManager


def _contains(term: str) -> str:
    """LIKE pattern matching ``term`` anywhere, with wildcards in the term escaped"""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TenantRepository(GenericRepository[Tenant]):
    """
    Repository for the root tenant records.

    Tenants are not tenant-scoped: ``tenant_id`` is forced to NULL on every write.
    """

    def __init__(self, transactions: TransactionManager):
        super().__init__(transactions, Tenant)

    def _prepare_create(self, obj: Tenant) -> None:
        obj.tenant_id = None

    def _prepare_update(self, obj: Tenant) -> None:
        obj.tenant_id = None

    async def find_by_subdomain(self, subdomain: str) -> Tenant | None:
        return await self.find_one({"subdomain": subdomain.lower()})

    async def find_by_identifier(self, identifier: str) -> Tenant | None:
        return await self.find_one({"identifier": identifier})

    async def find_by_status(self, status: TenantStatus | str) -> list[Tenant]:
        return await self.find({"status": TenantStatus(status).value}, order_by="name")

    async def find_by_verification_status(
        self, verification_status: VerificationStatus | str
    ) -> list[Tenant]:
        return await self.find(
            {"verification_status": VerificationStatus(verification_status).value},
            order_by="name",
        )

    async def search_by_name(self, term: str, limit: int | None = None) -> list[Tenant]:
        """Case-insensitive substring match on name or legal name"""
        pattern = _contains(term.strip())
        return await self.find(
            None,
            or_(
                Tenant.name.ilike(pattern, escape="\\"),
                Tenant.legal_name.ilike(pattern, escape="\\"),
            ),
            order_by="name",
            limit=limit,
        )

    async def advanced_search(
        self,
        *,
        name: str | None = None,
        industry: str | None = None,
        status: TenantStatus | str | None = None,
        verification_status: VerificationStatus | str | None = None,
        business_type: BusinessType | str | None = None,
        founded_after: date | None = None,
        founded_before: date | None = None,
        limit: int | None = None,
    ) -> list[Tenant]:
        """All given criteria must match; omitted criteria are ignored"""
        criteria: list[ColumnElement[bool]] = []
        if name:
            pattern = _contains(name.strip())
            criteria.append(
                or_(
                    Tenant.name.ilike(pattern, escape="\\"),
                    Tenant.legal_name.ilike(pattern, escape="\\"),
                )
            )
        if industry:
            criteria.append(Tenant.industry.ilike(_contains(industry.strip()), escape="\\"))
        if status:
            criteria.append(Tenant.status == TenantStatus(status).value)
        if verification_status:
            criteria.append(
                Tenant.verification_status == VerificationStatus(verification_status).value
            )
        if business_type:
            criteria.append(Tenant.business_type == BusinessType(business_type).value)
        if founded_after:
            criteria.append(Tenant.founded_date >= founded_after)
        if founded_before:
            criteria.append(Tenant.founded_date <= founded_before)

        return await self.find(None, *criteria, order_by="name", limit=limit)

    async def count_by_status(self) -> dict[str, int]:
        """Number of (non-deleted) tenants per status; every status is present"""
        if not self.is_bound:
            return await self._run_unbound("count_by_status")

        stmt = (
            select(Tenant.status, func.count())
            .where(*self._scope_criteria())
            .group_by(Tenant.status)
        )
        result = await self.session.execute(stmt)
        counts: dict[str, Any] = {status: 0 for status in TenantStatus.values()}
        for status, total in result.all():
            counts[status] = int(total)
        return counts
