from tenant_platform.infrastructure.persistence.repositories.base import GenericRepository
from tenant_platform.infrastructure.persistence.repositories.satellite_repo import (
    AddressRepository,
    ContactInfoRepository,
)
from tenant_platform.infrastructure.persistence.repositories.tenant_aware import (
    TenantAwareRepository,
)
from tenant_platform.infrastructure.persistence.repositories.tenant_repo import TenantRepository

__all__ = [
    "GenericRepository",
    "TenantAwareRepository",
    "TenantRepository",
    "AddressRepository",
    "ContactInfoRepository",
]
