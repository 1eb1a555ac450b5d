# checkin_service/core/exceptions.py
"""
Custom exception hierarchy for the check-in service.
All exceptions inherit from CheckinServiceError for consistent handling.
"""

from typing import Optional


class ErrorCategory:
    """Error categories for structured error handling"""
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    SERVICE_UNAVAILABLE = "service_unavailable"
    INVALID_TRANSITION = "invalid_transition"
    AUTHENTICATION = "authentication"
    INTERNAL = "internal"


class CheckinServiceError(Exception):
    """Base exception for all check-in service errors."""

    category = ErrorCategory.INTERNAL
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: str = "INTERNAL_ERROR",
        details: Optional[dict] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


# ===========================================
# Taxonomy
# ===========================================


class NotFoundError(CheckinServiceError):
    category = ErrorCategory.NOT_FOUND
    status_code = 404


class ConflictError(CheckinServiceError):
    category = ErrorCategory.CONFLICT
    status_code = 409


class InvalidInputError(CheckinServiceError):
    category = ErrorCategory.INVALID_INPUT
    status_code = 400


class ServiceUnavailableError(CheckinServiceError):
    category = ErrorCategory.SERVICE_UNAVAILABLE
    status_code = 503


class InvalidTransitionError(CheckinServiceError):
    """Queue entry status change not allowed by the playback state machine."""

    category = ErrorCategory.INVALID_TRANSITION
    status_code = 409

    def __init__(self, queue_id: str, current: str, requested: str):
        self.queue_id = queue_id
        self.current = current
        self.requested = requested
        super().__init__(
            message=f"Queue entry {queue_id} cannot move from {current} to {requested}",
            error_code="INVALID_TRANSITION",
            details={"queue_id": queue_id, "current": current, "requested": requested},
        )


class UnauthorizedError(CheckinServiceError):
    category = ErrorCategory.AUTHENTICATION
    status_code = 401


class ForbiddenError(CheckinServiceError):
    category = ErrorCategory.AUTHENTICATION
    status_code = 403


# ===========================================
# Attendee Exceptions
# ===========================================


class AttendeeNotFoundError(NotFoundError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            message=f"User {user_id} not found",
            error_code="USER_NOT_FOUND",
            details={"user_id": user_id},
        )


class AttendeeExistsError(ConflictError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            message=f"User {user_id} already exists",
            error_code="USER_EXISTS",
            details={"user_id": user_id},
        )


class AlreadyCheckedInError(ConflictError):
    """Check-in attempted inside the cooldown window, or with no usable timestamp."""

    def __init__(self, user_id: str, elapsed_minutes: Optional[int] = None):
        self.user_id = user_id
        self.elapsed_minutes = elapsed_minutes
        if elapsed_minutes is None:
            message = "User already checked in"
        else:
            message = f"Already checked in {elapsed_minutes} minutes ago"
        super().__init__(
            message=message,
            error_code="ALREADY_CHECKED_IN",
            details={"user_id": user_id, "elapsed_minutes": elapsed_minutes},
        )


class VideoRequiredError(InvalidInputError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            message="videoUrl is required for VIP attendees",
            error_code="VIDEO_URL_REQUIRED",
            details={"user_id": user_id},
        )


class InvalidIdentifierError(InvalidInputError):
    def __init__(self, user_id: str):
        super().__init__(
            message="UserId must follow format: VIP_001, STAFF_001, GUEST_001",
            error_code="INVALID_USER_ID",
            details={"user_id": user_id},
        )


class MissingParametersError(InvalidInputError):
    def __init__(self, message: str = "Either userId or imageBase64 is required"):
        super().__init__(message=message, error_code="MISSING_PARAMETERS")


# ===========================================
# Queue Exceptions
# ===========================================


class QueueEntryNotFoundError(NotFoundError):
    def __init__(self, queue_id: str):
        self.queue_id = queue_id
        super().__init__(
            message=f"Queue entry {queue_id} not found",
            error_code="QUEUE_ENTRY_NOT_FOUND",
            details={"queue_id": queue_id},
        )


class QueueFullError(ConflictError):
    def __init__(self, max_length: int):
        self.max_length = max_length
        super().__init__(
            message=f"Queue is full (max {max_length} items)",
            error_code="QUEUE_FULL",
            details={"max_length": max_length},
        )


class AlreadyQueuedError(ConflictError):
    def __init__(self, user_id: str):
        self.user_id = user_id
        super().__init__(
            message="User already in queue",
            error_code="ALREADY_IN_QUEUE",
            details={"user_id": user_id},
        )


class InvalidMediaError(InvalidInputError):
    def __init__(self, video_url: Optional[str]):
        super().__init__(
            message="Invalid video URL",
            error_code="INVALID_VIDEO_URL",
            details={"video_url": video_url},
        )


# ===========================================
# Recognition Exceptions
# ===========================================


class FaceNotFoundError(InvalidInputError):
    def __init__(
        self,
        message: str = "No faces recognized in the image",
        detected_faces: Optional[int] = None,
    ):
        super().__init__(
            message=message,
            error_code="FACE_NOT_FOUND",
            details={"detected_faces": detected_faces} if detected_faces is not None else {},
        )


class RecognitionUnavailableError(ServiceUnavailableError):
    """Recognition service unreachable, timed out, or not ready."""

    def __init__(self, message: str, error_code: str = "AI_SERVICE_ERROR"):
        super().__init__(message=message, error_code=error_code, details={"service": "recognition"})
