from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from tenant_platform.application.services.tenant_validation_service import (
    TenantValidationService,
)
from tenant_platform.presentation.api.dependencies import get_validation_service
from tenant_platform.presentation.api.v1.schemas.tenant import (
    BatchValidationRequest,
    TenantValidationResponse,
)

router = APIRouter()

Validation = Annotated[TenantValidationService, Depends(get_validation_service)]


@router.get("/current", response_model=TenantValidationResponse)
async def validate_current_tenant(validation: Validation, skip_cache: bool = Query(False)):
    """Validation result for the tenant resolved from the request (header, host or path)"""
    tenant_id = validation.get_current_tenant_id_or_fail()
    return await validation.get_detailed_validation(tenant_id, skip_cache)


@router.post("/batch", response_model=dict[str, TenantValidationResponse])
async def batch_validate(data: BatchValidationRequest, validation: Validation):
    return await validation.batch_validate(data.tenant_ids, data.skip_cache)


@router.delete("/cache", status_code=status.HTTP_204_NO_CONTENT)
async def clear_validation_cache(validation: Validation, tenant_id: str | None = Query(None)):
    """Drop cached results for one tenant, or for all tenants"""
    validation.clear_cache(tenant_id)


@router.get("/{tenant_id}", response_model=TenantValidationResponse)
async def get_tenant_validation(
    tenant_id: str, validation: Validation, skip_cache: bool = Query(False)
):
    """Detailed validation result; a missing or inactive tenant is reported, not raised"""
    return await validation.get_detailed_validation(tenant_id, skip_cache)
