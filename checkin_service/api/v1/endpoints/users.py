# checkin_service/api/v1/endpoints/users.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from checkin_service.api import deps
from checkin_service.schemas.attendee import AttendeeCreate, AttendeeUpdate
from checkin_service.services.directory import AttendeeDirectory
from checkin_service.utils.responses import success_response

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
async def list_users(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    start_after: Optional[str] = Query(None, alias="startAfter"),
    directory: AttendeeDirectory = Depends(deps.get_directory),
):
    """All attendees ordered by identifier; page with `limit` and `startAfter`."""
    users = await directory.list_attendees(limit=limit, start_after=start_after)
    return success_response(
        {"users": users, "total": len(users), "limit": limit},
        "Users retrieved successfully",
    )


@router.get("/vips")
async def list_vips(directory: AttendeeDirectory = Depends(deps.get_directory)):
    vips = await directory.list_vips()
    return success_response({"vips": vips, "total": len(vips)}, "VIPs retrieved successfully")


@router.get("/list")
async def list_summary(directory: AttendeeDirectory = Depends(deps.get_directory)):
    """Identifier and name only, for enrolling faces in the recognition service."""
    users = await directory.list_summary()
    return success_response({"users": users, "total": len(users)}, "User list retrieved")


@router.get("/stats")
async def get_stats(directory: AttendeeDirectory = Depends(deps.get_directory)):
    stats = await directory.attendee_stats()
    return success_response(stats, "Statistics retrieved")


@router.get("/{user_id}")
async def get_user(user_id: str, directory: AttendeeDirectory = Depends(deps.get_directory)):
    attendee = await directory.get_attendee(user_id)
    return success_response(attendee, "User found")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: AttendeeCreate,
    directory: AttendeeDirectory = Depends(deps.get_directory),
):
    attendee = await directory.create_attendee(body)
    return success_response(attendee, "User created successfully")


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    body: AttendeeUpdate,
    directory: AttendeeDirectory = Depends(deps.get_directory),
):
    """Partial update of registration fields. Check-in state cannot be changed here."""
    attendee = await directory.update_attendee(user_id, body)
    return success_response(attendee, "User updated successfully")
