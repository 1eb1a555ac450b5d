# checkin_service/api/v1/endpoints/queue.py
"""Playback queue endpoints used by the venue display driver."""

from fastapi import APIRouter, Depends

from checkin_service.api import deps
from checkin_service.services.admission import AdmissionController
from checkin_service.utils.responses import success_response

router = APIRouter(prefix="/queue", tags=["Queue"])


@router.get("")
async def get_queue(admission: AdmissionController = Depends(deps.get_admission)):
    """WAITING entries with 1-based positions and estimated wait in seconds."""
    queue = await admission.list_with_positions()
    return success_response({"queue": queue, "total": len(queue)}, "Queue retrieved successfully")


@router.get("/next")
async def get_next(admission: AdmissionController = Depends(deps.get_admission)):
    entry = await admission.next_entry()
    if entry is None:
        return success_response(None, "Queue is empty")
    return success_response(entry, "Next item retrieved")


@router.get("/stats")
async def get_stats(admission: AdmissionController = Depends(deps.get_admission)):
    stats = await admission.stats()
    return success_response(stats, "Queue statistics retrieved")


@router.put("/{queue_id}/playing")
async def mark_playing(queue_id: str, admission: AdmissionController = Depends(deps.get_admission)):
    entry = await admission.mark_playing(queue_id)
    return success_response(entry, "Marked as playing")


@router.put("/{queue_id}/done")
async def mark_done(queue_id: str, admission: AdmissionController = Depends(deps.get_admission)):
    entry = await admission.mark_done(queue_id)
    return success_response(entry, "Marked as done")


@router.put("/{queue_id}/error")
async def mark_error(queue_id: str, admission: AdmissionController = Depends(deps.get_admission)):
    entry = await admission.mark_error(queue_id)
    return success_response(entry, "Marked as error")
