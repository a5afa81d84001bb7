from tenant_platform.domain.enums import EntityType
from tenant_platform.infrastructure.persistence.models import Address, ContactInfo
from tenant_platform.infrastructure.persistence.repositories.tenant_aware import (
    ModelType,
    TenantAwareRepository,
)
from tenant_platform.infrastructure.persistence.transaction import TransactionManager


class _SatelliteRepository(TenantAwareRepository[ModelType]):
    async def find_for_entity(
        self, entity_id: str, entity_type: EntityType | str = EntityType.TENANT
    ) -> list[ModelType]:
        """Non-deleted records attached to one owner, primary first"""
        return await self.find(
            {"entity_id": entity_id, "entity_type": EntityType(entity_type).value},
            order_by="is_primary",
            direction="DESC",
        )


class AddressRepository(_SatelliteRepository[Address]):
    def __init__(self, transactions: TransactionManager):
        super().__init__(transactions, Address)


class ContactInfoRepository(_SatelliteRepository[ContactInfo]):
    def __init__(self, transactions: TransactionManager):
        super().__init__(transactions, ContactInfo)
