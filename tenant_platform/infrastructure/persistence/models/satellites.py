"""
Satellite records attached to an owning entity.

Ownership is a polymorphic (entity_id, entity_type) reference rather than a
foreign key, so addresses and contacts can belong to tenants today and to other
entity types later.
"""
from sqlalchemy import Boolean, CheckConstraint, Float, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from tenant_platform.domain.enums import AddressType, ContactType, EntityType
from tenant_platform.infrastructure.persistence.database import Base
from tenant_platform.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
    VersionedMixin,
)


class Address(CuidMixin, TimestampMixin, SoftDeleteMixin, VersionedMixin, TenantMixin, Base):
    __tablename__ = "address"

    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    entity_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EntityType.TENANT.value
    )
    address_line1: Mapped[str] = mapped_column(String(255), nullable=False)
    address_line2: Mapped[str | None] = mapped_column(String(255), nullable=True)
    city: Mapped[str] = mapped_column(String(100), nullable=False)
    state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    postal_code: Mapped[str | None] = mapped_column(String(20), nullable=True)
    landmark: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AddressType.CURRENT.value
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        Index("ix_address_entity", "entity_type", "entity_id"),
        CheckConstraint(
            f"address_type IN {tuple(AddressType.values())}", name="address_type_check"
        ),
    )


class ContactInfo(CuidMixin, TimestampMixin, SoftDeleteMixin, VersionedMixin, TenantMixin, Base):
    __tablename__ = "contact_info"

    entity_id: Mapped[str] = mapped_column(String, nullable=False)
    entity_type: Mapped[str] = mapped_column(
        String(30), nullable=False, default=EntityType.TENANT.value
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    contact_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ContactType.PRIMARY.value
    )
    is_primary: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    relationship: Mapped[str | None] = mapped_column(String(50), nullable=True)

    __table_args__ = (
        Index("ix_contact_info_entity", "entity_type", "entity_id"),
        CheckConstraint(
            f"contact_type IN {tuple(ContactType.values())}", name="contact_type_check"
        ),
    )
