"""
Value objects embedded in the Tenant aggregate.

They are immutable: every change produces a new instance, which the persistence
model writes back into its flat ``verification_*`` / business / registration
columns.
"""

from dataclasses import dataclass, replace
from datetime import date, datetime

from tenant_platform.domain.enums import BusinessScale, BusinessType, VerificationStatus


@dataclass(frozen=True)
class VerificationInfo:
    """Verification state of a tenant and the documents submitted for it."""

    status: VerificationStatus = VerificationStatus.PENDING
    verification_date: datetime | None = None
    verified_by_id: str | None = None
    notes: str | None = None
    documents: tuple[str, ...] = ()
    attempted: bool = False

    def is_verification_complete(self) -> bool:
        return self.status == VerificationStatus.VERIFIED and self.verification_date is not None

    def with_document(self, document_id: str) -> "VerificationInfo":
        """Return a copy with ``document_id`` appended (duplicates are ignored)."""
        if document_id in self.documents:
            return self
        return replace(self, documents=(*self.documents, document_id))

    def transition(
        self,
        status: VerificationStatus,
        verifier_id: str | None,
        now: datetime,
        notes: str | None = None,
    ) -> "VerificationInfo":
        """
        Move to ``status``.

        VERIFIED stamps the verification date; notes are only overwritten when given.
        """
        return replace(
            self,
            status=status,
            verified_by_id=verifier_id,
            verification_date=now if status == VerificationStatus.VERIFIED else self.verification_date,
            notes=notes if notes is not None else self.notes,
            attempted=True,
        )

    def reset(self) -> "VerificationInfo":
        return replace(self, status=VerificationStatus.PENDING)

    @staticmethod
    def split_documents(raw: str | None) -> tuple[str, ...]:
        if not raw:
            return ()
        return tuple(doc for doc in raw.split(",") if doc)

    def joined_documents(self) -> str | None:
        return ",".join(self.documents) if self.documents else None


@dataclass(frozen=True)
class BusinessInfo:
    business_type: BusinessType | None = None
    business_scale: BusinessScale | None = None
    industry: str | None = None
    employee_count: int | None = None
    founded_date: date | None = None


@dataclass(frozen=True)
class RegistrationInfo:
    """National tax / registration numbers."""

    gst_number: str | None = None
    pan_number: str | None = None
    tan_number: str | None = None
    msme_number: str | None = None
    cin_number: str | None = None
