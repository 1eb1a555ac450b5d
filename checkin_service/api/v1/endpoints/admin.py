# checkin_service/api/v1/endpoints/admin.py
"""
**[ADMIN]** endpoints. Every route requires a bearer token with role=admin.
"""

import logging

from fastapi import APIRouter, Depends

from checkin_service.api import deps
from checkin_service.schemas.token import TokenPayload
from checkin_service.services.admin import AdminService
from checkin_service.utils.responses import success_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/stats")
async def get_system_stats(
    admin_service: AdminService = Depends(deps.get_admin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    stats = await admin_service.system_stats()
    return success_response(stats, "System statistics retrieved")


@router.get("/health")
async def health_check(
    admin_service: AdminService = Depends(deps.get_admin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    report = await admin_service.health()
    return success_response(report, "Health check completed")


@router.delete("/queue")
async def clear_queue(
    admin_service: AdminService = Depends(deps.get_admin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    logger.warning(f"Queue clear requested by {admin.sub}")
    result = await admin_service.clear_queue()
    return success_response(result, "Queue cleared successfully")


@router.post("/reset")
async def reset_checkins(
    admin_service: AdminService = Depends(deps.get_admin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    logger.warning(f"Check-in reset requested by {admin.sub}")
    result = await admin_service.reset_checkins()
    return success_response(result, "Check-ins reset successfully")


@router.post("/reset-data")
async def reset_data(
    admin_service: AdminService = Depends(deps.get_admin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    logger.warning(f"Full data reset requested by {admin.sub}")
    result = await admin_service.reset_data()
    return success_response(result, "All data reset successfully")
