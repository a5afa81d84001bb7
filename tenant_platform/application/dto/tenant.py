"""
Input schemas for tenant operations.

Strings are whitespace-trimmed before validation; enum fields are stored as
their plain values. Fields a caller must not set on creation (status,
verification, tenant reference) are simply not accepted and are ignored.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, field_serializer

from tenant_platform.domain.enums import (
    AddressType,
    BusinessScale,
    BusinessType,
    ContactType,
    TenantStatus,
    VerificationStatus,
)

SLUG_PATTERN = r"^[a-z0-9-]+$"

_INPUT_CONFIG = ConfigDict(str_strip_whitespace=True, use_enum_values=True, validate_default=True)


class _TenantFields(BaseModel):
    model_config = _INPUT_CONFIG

    legal_name: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    identifier: str | None = Field(default=None, max_length=50, pattern=SLUG_PATTERN)

    primary_email: EmailStr | None = None
    primary_phone: str | None = Field(default=None, max_length=20)
    website: HttpUrl | None = None

    business_type: BusinessType | None = None
    business_scale: BusinessScale | None = None
    industry: str | None = Field(default=None, max_length=100)
    employee_count: int | None = Field(default=None, ge=0)
    founded_date: date | None = None

    gst_number: str | None = Field(default=None, max_length=15)
    pan_number: str | None = Field(default=None, max_length=10)
    tan_number: str | None = Field(default=None, max_length=10)
    msme_number: str | None = Field(default=None, max_length=20)
    cin_number: str | None = Field(default=None, max_length=21)

    @field_serializer("website")
    def serialize_website(self, website: HttpUrl | None) -> str | None:
        return str(website) if website is not None else None


class TenantCreate(_TenantFields):
    name: str = Field(..., min_length=1, max_length=100)
    subdomain: str = Field(..., min_length=1, max_length=63, pattern=SLUG_PATTERN)


class TenantUpdate(_TenantFields):
    """Partial update; only fields that were sent are applied."""

    name: str | None = Field(default=None, min_length=1, max_length=100)
    subdomain: str | None = Field(default=None, min_length=1, max_length=63, pattern=SLUG_PATTERN)


class TenantStatusUpdate(BaseModel):
    status: TenantStatus


class VerificationStatusUpdate(BaseModel):
    model_config = _INPUT_CONFIG

    status: VerificationStatus
    verifier_id: str = Field(..., min_length=1)
    notes: str | None = Field(default=None, max_length=1000)


class VerificationDocumentAdd(BaseModel):
    model_config = _INPUT_CONFIG

    document_id: str = Field(..., min_length=1, max_length=100, pattern=r"^[^,]+$")


class TenantSearchCriteria(BaseModel):
    model_config = _INPUT_CONFIG

    name: str | None = None
    industry: str | None = None
    status: TenantStatus | None = None
    verification_status: VerificationStatus | None = None
    business_type: BusinessType | None = None
    founded_after: date | None = None
    founded_before: date | None = None
    limit: int | None = Field(default=None, ge=1, le=100)


class AddressCreate(BaseModel):
    model_config = _INPUT_CONFIG

    address_line1: str = Field(..., min_length=1, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str = Field(..., min_length=1, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    country: str = Field(..., min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    landmark: str | None = Field(default=None, max_length=255)
    address_type: AddressType = AddressType.CURRENT
    is_primary: bool = False
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class AddressUpdate(BaseModel):
    model_config = _INPUT_CONFIG

    address_line1: str | None = Field(default=None, min_length=1, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str | None = Field(default=None, min_length=1, max_length=100)
    state: str | None = Field(default=None, max_length=100)
    country: str | None = Field(default=None, min_length=1, max_length=100)
    postal_code: str | None = Field(default=None, max_length=20)
    landmark: str | None = Field(default=None, max_length=255)
    address_type: AddressType | None = None
    is_primary: bool | None = None
    latitude: float | None = Field(default=None, ge=-90, le=90)
    longitude: float | None = Field(default=None, ge=-180, le=180)


class ContactInfoCreate(BaseModel):
    model_config = _INPUT_CONFIG

    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    contact_type: ContactType = ContactType.PRIMARY
    is_primary: bool = False
    relationship: str | None = Field(default=None, max_length=50)


class ContactInfoUpdate(BaseModel):
    model_config = _INPUT_CONFIG

    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=20)
    contact_type: ContactType | None = None
    is_primary: bool | None = None
    relationship: str | None = Field(default=None, max_length=50)
