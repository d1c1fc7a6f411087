"""Health data provider permission endpoints."""

import logging
from fastapi import APIRouter, Depends

from healthbridge.core.services import Services, get_services
from healthbridge.schemas.responses import PermissionsResponse

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/provider", tags=["provider"])


@router.get("/permissions", response_model=PermissionsResponse)
async def permission_status(services: Services = Depends(get_services)):
    """Check whether the provider grants every capability the workers need."""
    source = services.source
    return PermissionsResponse(
        source_app=source.source_app,
        required=sorted(source.permissions()),
        granted=await source.has_permission(),
    )


@router.post("/permissions/request", response_model=PermissionsResponse)
async def request_permissions(services: Services = Depends(get_services)):
    """Ask the provider to grant the required capabilities."""
    source = services.source
    granted = await source.request_permission()
    if not granted:
        logger.warning(f"{source.source_app} did not grant the required permissions")
    return PermissionsResponse(
        source_app=source.source_app,
        required=sorted(source.permissions()),
        granted=granted,
    )
