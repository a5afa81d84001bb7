"""
SQLAlchemy mixins for common model patterns.

These mixins provide reusable column definitions so every record type shares
the same id, timestamp, soft-delete, optimistic-lock and tenant-reference columns.

Levels:
    - TimestampMixin: Just timestamps (created_at, updated_at)
    - SoftDeleteMixin: Adds the is_deleted flag
    - VersionedMixin: Optimistic locking through a version counter
    - TenantMixin: Tenant reference used for isolation
"""
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, Integer, String, false
from sqlalchemy.orm import Mapped, declared_attr, mapped_column
from sqlalchemy.sql import func

from tenant_platform.shared.utils.generators import new_record_id


class CuidMixin:
    """
    Mixin for models using CUID as primary key.

    Provides:
        - id: String primary key with automatic CUID generation
    """

    @declared_attr
    def id(cls) -> Mapped[str]:
        return mapped_column(String, primary_key=True, default=new_record_id)


class TenantMixin:
    """
    Mixin for tenant-scoped models.

    Provides:
        - tenant_id: Owning tenant, indexed for the implicit isolation filter

    No foreign key: the tenant row is hard-deleted while its satellites are only
    soft-deleted, and satellites must survive that.
    """

    @declared_attr
    def tenant_id(cls) -> Mapped[str | None]:
        return mapped_column(String, nullable=True, index=True)


class TimestampMixin:
    """
    Mixin for timestamp tracking.

    Provides:
        - created_at: Timestamp set on creation (server-side default)
        - updated_at: Timestamp updated on modification (server-side default + onupdate)

    Note: Uses timezone-aware DateTime for consistency
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True), server_default=func.now(), nullable=False
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            server_default=func.now(),
            onupdate=func.now(),
            nullable=False,
        )


class SoftDeleteMixin:
    """
    Soft delete support.

    Provides:
        - is_deleted: True once the record has been removed through normal flows

    Repositories exclude deleted rows from reads and turn ``remove`` into a flag
    update for models carrying this mixin.
    """

    @declared_attr
    def is_deleted(cls) -> Mapped[bool]:
        return mapped_column(
            Boolean, nullable=False, default=False, server_default=false(), index=True
        )


class VersionedMixin:
    """
    Optimistic locking.

    Provides:
        - version: Incremented by SQLAlchemy on every UPDATE; an UPDATE whose
          WHERE version = :old matches no row raises StaleDataError.
    """

    @declared_attr
    def version(cls) -> Mapped[int]:
        return mapped_column(Integer, nullable=False)

    @declared_attr.directive
    def __mapper_args__(cls) -> dict[str, Any]:
        return {"version_id_col": cls.__table__.c.version}
