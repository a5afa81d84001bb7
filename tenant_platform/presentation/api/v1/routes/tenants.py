from typing import Annotated

from fastapi import APIRouter, Depends, Header, Query, Response, status

from tenant_platform.application.dto.tenant import (
    AddressCreate,
    AddressUpdate,
    ContactInfoCreate,
    ContactInfoUpdate,
    TenantCreate,
    TenantSearchCriteria,
    TenantStatusUpdate,
    TenantUpdate,
    VerificationDocumentAdd,
    VerificationStatusUpdate,
)
from tenant_platform.application.services.tenant_lifecycle_service import TenantLifecycleService
from tenant_platform.application.services.tenant_service import TenantService
from tenant_platform.domain.enums import SortDirection, TenantStatus, VerificationStatus
from tenant_platform.domain.exceptions import NotFoundError
from tenant_platform.infrastructure.persistence.pagination import PaginationParams
from tenant_platform.presentation.api.dependencies import (
    get_lifecycle_service,
    get_tenant_service,
)
from tenant_platform.presentation.api.v1.schemas.tenant import (
    AddressResponse,
    ContactInfoResponse,
    TenantCursorPageResponse,
    TenantPageResponse,
    TenantResponse,
    TenantStatusCounts,
    TenantWithRelationsResponse,
)

router = APIRouter()

Service = Annotated[TenantService, Depends(get_tenant_service)]
Lifecycle = Annotated[TenantLifecycleService, Depends(get_lifecycle_service)]


@router.get("/", response_model=TenantPageResponse)
async def list_tenants(
    service: Service,
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=100),
    order_by: str = Query("id"),
    direction: SortDirection = Query(SortDirection.ASC),
    status_filter: TenantStatus | None = Query(None, alias="status"),
    verification_status: VerificationStatus | None = Query(None),
):
    """List non-deleted tenants, one page at a time"""
    params = PaginationParams(page=page, page_size=page_size, order_by=order_by, direction=direction)
    return await service.find_all(params, status_filter, verification_status)


@router.get("/cursor", response_model=TenantCursorPageResponse)
async def list_tenants_by_cursor(
    service: Service,
    cursor: str | None = Query(None),
    page_size: int = Query(10, ge=1, le=100),
    order_by: str = Query("id"),
    direction: SortDirection = Query(SortDirection.ASC),
):
    """
    List tenants with cursor pagination.

    Pass ``next_cursor`` from the previous response to get the following page;
    keep ``order_by`` and ``direction`` unchanged between calls.
    """
    return await service.find_page_by_cursor(cursor, page_size, order_by, direction)


@router.get("/search", response_model=list[TenantResponse])
async def search_tenants(
    service: Service,
    q: str = Query(..., min_length=1, max_length=100),
    limit: int | None = Query(None, ge=1, le=100),
):
    """Case-insensitive search on name and legal name"""
    return await service.search_by_name(q, limit)


@router.post("/search", response_model=list[TenantResponse])
async def advanced_search_tenants(criteria: TenantSearchCriteria, service: Service):
    return await service.advanced_search(criteria)


@router.get("/stats", response_model=TenantStatusCounts)
async def tenant_stats(service: Service):
    """Number of tenants per status"""
    counts = await service.count_by_status()
    return TenantStatusCounts(counts=counts, total=sum(counts.values()))


@router.get("/by-subdomain/{subdomain}", response_model=TenantResponse)
async def get_tenant_by_subdomain(subdomain: str, service: Service):
    tenant = await service.find_by_subdomain(subdomain)
    if tenant is None:
        raise NotFoundError("Tenant", subdomain, "TENANT_NOT_FOUND")
    return tenant


@router.get("/by-identifier/{identifier}", response_model=TenantResponse)
async def get_tenant_by_identifier(identifier: str, service: Service):
    tenant = await service.find_by_identifier(identifier)
    if tenant is None:
        raise NotFoundError("Tenant", identifier, "TENANT_NOT_FOUND")
    return tenant


@router.post("/", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant(data: TenantCreate, service: Service):
    """
    Create a tenant.

    New tenants always start PENDING with verification PENDING; use
    ``/provision`` to activate them.
    """
    return await service.create(data)


@router.post("/idempotent", response_model=TenantResponse, status_code=status.HTTP_201_CREATED)
async def create_tenant_idempotent(
    data: TenantCreate,
    response: Response,
    service: Service,
    idempotency_key: Annotated[str | None, Header(alias="Idempotency-Key")] = None,
):
    """
    Create a tenant at most once per Idempotency-Key header.

    Returns 201 on first creation and 200 with the original tenant on a replay.
    """
    result = await service.create_with_idempotency(data, idempotency_key or "")
    if not result.created:
        response.status_code = status.HTTP_200_OK
    return result.tenant


@router.get("/{tenant_id}", response_model=TenantResponse)
async def get_tenant(tenant_id: str, service: Service):
    """Get a tenant by ID"""
    return await service.find_by_id(tenant_id)


@router.get("/{tenant_id}/relations", response_model=TenantWithRelationsResponse)
async def get_tenant_with_relations(tenant_id: str, service: Service):
    """Tenant with its addresses and contacts"""
    return await service.get_with_relations(tenant_id)


@router.patch("/{tenant_id}", response_model=TenantResponse)
async def update_tenant(tenant_id: str, data: TenantUpdate, service: Service):
    """Partially update a tenant; status and verification have their own endpoints"""
    return await service.update(tenant_id, data)


@router.patch("/{tenant_id}/status", response_model=TenantResponse)
async def update_tenant_status(tenant_id: str, data: TenantStatusUpdate, service: Service):
    """
    Change tenant status.

    Allowed moves: PENDING to any other status, ACTIVE and SUSPENDED to each
    other or to TERMINATED. TERMINATED is final.
    """
    return await service.set_status(tenant_id, data.status)


@router.patch("/{tenant_id}/verification", response_model=TenantResponse)
async def update_verification_status(
    tenant_id: str, data: VerificationStatusUpdate, service: Service
):
    return await service.set_verification_status(
        tenant_id, data.status, data.verifier_id, data.notes
    )


@router.post("/{tenant_id}/verification/documents", response_model=TenantResponse)
async def add_verification_document(
    tenant_id: str, data: VerificationDocumentAdd, service: Service
):
    return await service.add_verification_document(tenant_id, data.document_id)


@router.post("/{tenant_id}/provision", response_model=TenantResponse)
async def provision_tenant(tenant_id: str, lifecycle: Lifecycle):
    return await lifecycle.provision(tenant_id)


@router.post("/{tenant_id}/deprovision", response_model=TenantResponse)
async def deprovision_tenant(tenant_id: str, lifecycle: Lifecycle):
    return await lifecycle.deprovision(tenant_id)


@router.delete("/{tenant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_tenant(tenant_id: str, service: Service):
    """Delete a tenant; its addresses and contacts are soft-deleted"""
    await service.remove(tenant_id)


# Addresses


@router.get("/{tenant_id}/addresses", response_model=list[AddressResponse])
async def list_addresses(tenant_id: str, service: Service):
    return await service.get_addresses(tenant_id)


@router.post(
    "/{tenant_id}/addresses", response_model=AddressResponse, status_code=status.HTTP_201_CREATED
)
async def add_address(tenant_id: str, data: AddressCreate, service: Service):
    return await service.add_address(tenant_id, data)


@router.patch("/{tenant_id}/addresses/{address_id}", response_model=AddressResponse)
async def update_address(tenant_id: str, address_id: str, data: AddressUpdate, service: Service):
    return await service.update_address(tenant_id, address_id, data)


@router.delete("/{tenant_id}/addresses/{address_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_address(tenant_id: str, address_id: str, service: Service):
    await service.remove_address(tenant_id, address_id)


# Contacts


@router.get("/{tenant_id}/contacts", response_model=list[ContactInfoResponse])
async def list_contacts(tenant_id: str, service: Service):
    return await service.get_contact_infos(tenant_id)


@router.post(
    "/{tenant_id}/contacts",
    response_model=ContactInfoResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_contact(tenant_id: str, data: ContactInfoCreate, service: Service):
    return await service.add_contact_info(tenant_id, data)


@router.patch("/{tenant_id}/contacts/{contact_id}", response_model=ContactInfoResponse)
async def update_contact(
    tenant_id: str, contact_id: str, data: ContactInfoUpdate, service: Service
):
    return await service.update_contact_info(tenant_id, contact_id, data)


@router.delete("/{tenant_id}/contacts/{contact_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_contact(tenant_id: str, contact_id: str, service: Service):
    await service.remove_contact_info(tenant_id, contact_id)
