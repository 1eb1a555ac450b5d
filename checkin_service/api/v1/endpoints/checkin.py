# checkin_service/api/v1/endpoints/checkin.py
"""
Check-in endpoints.

Provides:
- AI check-in (pre-matched identifier or face image)
- QR check-in (public kiosk scanner)
- Manual check-in (staff desk, admin token required)
- Check-in history
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from checkin_service.api import deps
from checkin_service.core.config import settings
from checkin_service.core.constants import CheckinMethod, DEFAULT_HISTORY_LIMIT
from checkin_service.core.limiter import limiter
from checkin_service.schemas.checkin import AICheckinRequest, IdentifierCheckinRequest, CheckinResult
from checkin_service.schemas.token import TokenPayload
from checkin_service.services.checkin import CheckinOrchestrator
from checkin_service.utils.responses import success_response
from checkin_service.utils.validators import validate_user_id

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkin", tags=["Check-in"])


def _checkin_payload(result: CheckinResult) -> dict:
    payload = result.model_dump(mode="json", by_alias=True, exclude_none=True)
    # Flat shortcut for display clients that only care about the admitted slot
    if result.queue is not None:
        payload["queue"] = result.queue.model_dump(mode="json", by_alias=True)
    return payload


@router.post("/ai")
@limiter.limit(settings.RATE_LIMIT_CHECKIN)
async def checkin_with_ai(
    request: Request,
    body: AICheckinRequest,
    checkin: CheckinOrchestrator = Depends(deps.get_checkin),
):
    """
    Check in via face recognition.

    Send either `userId` (already matched by the camera client) or
    `imageBase64` for server-side recognition.
    """
    if body.user_id:
        validate_user_id(body.user_id)

    result = await checkin.checkin_by_image_or_identifier(
        user_id=body.user_id,
        image_base64=body.image_base64,
        confidence=body.confidence,
    )
    return success_response(_checkin_payload(result), "Check-in successful via AI")


@router.post("/qr")
@limiter.limit(settings.RATE_LIMIT_CHECKIN)
async def checkin_with_qr(
    request: Request,
    body: IdentifierCheckinRequest,
    checkin: CheckinOrchestrator = Depends(deps.get_checkin),
):
    validate_user_id(body.user_id)
    logger.info(f"QR check-in request from {request.client.host if request.client else 'unknown'}")

    result = await checkin.checkin_by_identifier(body.user_id, CheckinMethod.QR)
    return success_response(_checkin_payload(result), "Check-in successful")


@router.post("/manual")
@limiter.limit(settings.RATE_LIMIT_CHECKIN)
async def checkin_manual(
    request: Request,
    body: IdentifierCheckinRequest,
    checkin: CheckinOrchestrator = Depends(deps.get_checkin),
    admin: TokenPayload = Depends(deps.get_current_admin),
):
    logger.info(f"Manual check-in of {body.user_id} by {admin.sub}")

    result = await checkin.checkin_by_identifier(body.user_id, CheckinMethod.MANUAL)
    return success_response(_checkin_payload(result), "Check-in successful")


@router.get("/history")
async def get_history(
    limit: int = Query(DEFAULT_HISTORY_LIMIT, ge=1, le=100),
    checkin: CheckinOrchestrator = Depends(deps.get_checkin),
):
    history = await checkin.get_history(limit)
    return success_response(history, "Check-in history retrieved")
