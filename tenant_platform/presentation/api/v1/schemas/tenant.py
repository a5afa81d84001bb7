from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from tenant_platform.domain.value_objects.tenant import VerificationInfo


class VerificationResponse(BaseModel):
    """Verification sub-record of a tenant"""

    status: str
    verification_date: datetime | None = None
    verified_by_id: str | None = None
    notes: str | None = None
    documents: list[str] = []
    attempted: bool = False
    is_complete: bool = False

    @model_validator(mode="before")
    @classmethod
    def from_value_object(cls, data: Any) -> Any:
        if isinstance(data, VerificationInfo):
            return {
                "status": data.status.value,
                "verification_date": data.verification_date,
                "verified_by_id": data.verified_by_id,
                "notes": data.notes,
                "documents": list(data.documents),
                "attempted": data.attempted,
                "is_complete": data.is_verification_complete(),
            }
        return data


class TenantResponse(BaseModel):
    """Schema for tenant responses"""

    id: str
    name: str
    subdomain: str
    identifier: str | None = None
    legal_name: str | None = None
    description: str | None = None
    is_active: bool
    status: str
    primary_email: str | None = None
    primary_phone: str | None = None
    website: str | None = None
    business_type: str | None = None
    business_scale: str | None = None
    industry: str | None = None
    employee_count: int | None = None
    founded_date: date | None = None
    gst_number: str | None = None
    pan_number: str | None = None
    tan_number: str | None = None
    msme_number: str | None = None
    cin_number: str | None = None
    verification: VerificationResponse
    tenant_id: str | None = None
    version: int
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class AddressResponse(BaseModel):
    id: str
    entity_id: str
    entity_type: str
    tenant_id: str | None
    address_line1: str
    address_line2: str | None = None
    city: str
    state: str | None = None
    country: str
    postal_code: str | None = None
    landmark: str | None = None
    address_type: str
    is_primary: bool
    latitude: float | None = None
    longitude: float | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class ContactInfoResponse(BaseModel):
    id: str
    entity_id: str
    entity_type: str
    tenant_id: str | None
    name: str
    email: str | None = None
    phone: str | None = None
    contact_type: str
    is_primary: bool
    relationship: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class TenantWithRelationsResponse(BaseModel):
    tenant: TenantResponse
    addresses: list[AddressResponse]
    contact_infos: list[ContactInfoResponse]

    model_config = ConfigDict(from_attributes=True)


class TenantPageResponse(BaseModel):
    """Offset-paginated tenant list"""

    items: list[TenantResponse]
    total: int
    page: int
    page_size: int
    pages: int
    has_next: bool
    has_previous: bool

    model_config = ConfigDict(from_attributes=True)


class TenantCursorPageResponse(BaseModel):
    """Cursor-paginated tenant list"""

    items: list[TenantResponse]
    has_more: bool
    next_cursor: str | None = None
    prev_cursor: str | None = None

    model_config = ConfigDict(from_attributes=True)


class TenantStatusCounts(BaseModel):
    counts: dict[str, int]
    total: int


class TenantValidationResponse(BaseModel):
    tenant_id: str
    exists: bool
    is_active: bool
    is_valid: bool
    error_code: str | None = None
    error_message: str | None = None
    validated_at: datetime
    metadata: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)


class BatchValidationRequest(BaseModel):
    tenant_ids: list[str] = Field(..., min_length=1, max_length=100)
    skip_cache: bool = False
