from tenant_platform.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
    VersionedMixin,
)
from tenant_platform.infrastructure.persistence.models.satellites import Address, ContactInfo
from tenant_platform.infrastructure.persistence.models.tenant import Tenant

__all__ = [
    # Models
    "Tenant",
    "Address",
    "ContactInfo",
    # Mixins
    "CuidMixin",
    "SoftDeleteMixin",
    "TenantMixin",
    "TimestampMixin",
    "VersionedMixin",
]
