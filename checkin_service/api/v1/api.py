# checkin_service/api/v1/api.py

from fastapi import APIRouter
from checkin_service.api.v1.endpoints import (
    checkin,
    queue,
    users,
    admin,
)

# This is the main router for the v1 API.
api_router = APIRouter()

api_router.include_router(checkin.router)
api_router.include_router(queue.router)
api_router.include_router(users.router)
api_router.include_router(admin.router)
