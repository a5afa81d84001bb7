"""Domain enumerations for the tenant platform."""

from enum import Enum


class TenantStatus(str, Enum):
    """Tenant lifecycle status"""

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    SUSPENDED = "SUSPENDED"
    TERMINATED = "TERMINATED"

    @classmethod
    def values(cls) -> list[str]:
        """Get all valid values"""
        return [status.value for status in cls]


class VerificationStatus(str, Enum):
    """Tenant verification workflow status"""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"

    @classmethod
    def values(cls) -> list[str]:
        return [status.value for status in cls]


class BusinessType(str, Enum):
    PRODUCT = "PRODUCT"
    SERVICE = "SERVICE"
    MANUFACTURING = "MANUFACTURING"
    RETAIL = "RETAIL"
    OTHER = "OTHER"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class BusinessScale(str, Enum):
    STARTUP = "STARTUP"
    SMALL = "SMALL"
    MEDIUM = "MEDIUM"
    LARGE = "LARGE"
    ENTERPRISE = "ENTERPRISE"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class AddressType(str, Enum):
    """Kind of address attached to an owning entity"""

    CURRENT = "CURRENT"
    CORPORATE = "CORPORATE"
    REGISTERED = "REGISTERED"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class ContactType(str, Enum):
    """Kind of contact attached to an owning entity"""

    PRIMARY = "PRIMARY"
    EMERGENCY = "EMERGENCY"

    @classmethod
    def values(cls) -> list[str]:
        return [item.value for item in cls]


class EntityType(str, Enum):
    """Owner types that satellite records (addresses, contacts) can attach to"""

    TENANT = "TENANT"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"
