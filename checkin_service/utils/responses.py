# checkin_service/utils/responses.py
from datetime import datetime, timezone
from typing import Any

from fastapi.encoders import jsonable_encoder


def success_response(data: Any = None, message: str = "Success") -> dict:
    """Envelope shared by every successful API response."""
    return {
        "success": True,
        "message": message,
        "data": jsonable_encoder(data, by_alias=True),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
