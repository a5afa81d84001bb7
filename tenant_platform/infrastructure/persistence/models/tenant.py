from datetime import date, datetime

from sqlalchemy import Boolean, CheckConstraint, Date, DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from tenant_platform.domain.enums import (
    BusinessScale,
    BusinessType,
    TenantStatus,
    VerificationStatus,
)
from tenant_platform.domain.value_objects.tenant import (
    BusinessInfo,
    RegistrationInfo,
    VerificationInfo,
)
from tenant_platform.infrastructure.persistence.database import Base
from tenant_platform.infrastructure.persistence.models.mixins import (
    CuidMixin,
    SoftDeleteMixin,
    TenantMixin,
    TimestampMixin,
    VersionedMixin,
)


class Tenant(CuidMixin, TimestampMixin, SoftDeleteMixin, VersionedMixin, TenantMixin, Base):
    """
    Root tenant entity for multi-tenant architecture.

    Note: a tenant is never scoped to another tenant, so ``tenant_id`` is always
    NULL on tenant rows (enforced by the repository and a check constraint).
    The verification, business and registration sub-records are stored in flat
    columns and exposed as value objects through properties.
    """

    __tablename__ = "tenant"

    # Identity
    name: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    subdomain: Mapped[str] = mapped_column(String(63), unique=True, nullable=False, index=True)
    identifier: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    legal_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    # Lifecycle
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TenantStatus.PENDING.value, index=True
    )

    # Contact details
    primary_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    primary_phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    website: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Business info
    business_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    business_scale: Mapped[str | None] = mapped_column(String(20), nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    employee_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    founded_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Registration info
    gst_number: Mapped[str | None] = mapped_column(String(15), nullable=True)
    pan_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    tan_number: Mapped[str | None] = mapped_column(String(10), nullable=True)
    msme_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    cin_number: Mapped[str | None] = mapped_column(String(21), nullable=True)

    # Verification info
    verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=VerificationStatus.PENDING.value, index=True
    )
    verification_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    verified_by_id: Mapped[str | None] = mapped_column(String, nullable=True)
    verification_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    verification_documents: Mapped[str | None] = mapped_column(Text, nullable=True)
    verification_attempted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (
        CheckConstraint(f"status IN {tuple(TenantStatus.values())}", name="tenant_status_check"),
        CheckConstraint(
            f"verification_status IN {tuple(VerificationStatus.values())}",
            name="tenant_verification_status_check",
        ),
        CheckConstraint("tenant_id IS NULL", name="tenant_not_tenant_scoped_check"),
        CheckConstraint(
            "employee_count IS NULL OR employee_count >= 0", name="tenant_employee_count_check"
        ),
    )

    @property
    def verification(self) -> VerificationInfo:
        return VerificationInfo(
            status=VerificationStatus(self.verification_status or VerificationStatus.PENDING),
            verification_date=self.verification_date,
            verified_by_id=self.verified_by_id,
            notes=self.verification_notes,
            documents=VerificationInfo.split_documents(self.verification_documents),
            attempted=bool(self.verification_attempted),
        )

    @verification.setter
    def verification(self, info: VerificationInfo) -> None:
        self.verification_status = info.status.value
        self.verification_date = info.verification_date
        self.verified_by_id = info.verified_by_id
        self.verification_notes = info.notes
        self.verification_documents = info.joined_documents()
        self.verification_attempted = info.attempted

    @property
    def business(self) -> BusinessInfo:
        return BusinessInfo(
            business_type=BusinessType(self.business_type) if self.business_type else None,
            business_scale=BusinessScale(self.business_scale) if self.business_scale else None,
            industry=self.industry,
            employee_count=self.employee_count,
            founded_date=self.founded_date,
        )

    @property
    def registration(self) -> RegistrationInfo:
        return RegistrationInfo(
            gst_number=self.gst_number,
            pan_number=self.pan_number,
            tan_number=self.tan_number,
            msme_number=self.msme_number,
            cin_number=self.cin_number,
        )
