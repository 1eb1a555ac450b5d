# checkin_service/services/checkin.py
"""
Check-in orchestration shared by the AI, QR and MANUAL methods.

Each attempt resolves an identity, checks eligibility against the
cooldown window, records the check-in and, for VIPs with a video, asks the
admission controller for a playback slot. Queue admission is best-effort:
its failure is reported in the result and never undoes the check-in.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from checkin_service.core.constants import CheckinMethod, DEFAULT_HISTORY_LIMIT
from checkin_service.core.exceptions import (
    CheckinServiceError,
    AttendeeNotFoundError,
    AlreadyCheckedInError,
    InvalidInputError,
    MissingParametersError,
)
from checkin_service.crud.base import AttendeeStore
from checkin_service.schemas.attendee import Attendee, CheckinRecord
from checkin_service.schemas.checkin import (
    AIRecognitionInfo,
    CheckinResult,
    CheckinHistory,
    HistoryItem,
    RecognitionResult,
)
from checkin_service.schemas.queue import QueueOutcome
from checkin_service.services.admission import AdmissionController
from checkin_service.services.recognition import RecognitionClient
from checkin_service.utils.time_utils import utc_now, elapsed_minutes

logger = logging.getLogger(__name__)


class CheckinOrchestrator:
    """Sole writer of attendee check-in state."""

    def __init__(
        self,
        attendees: AttendeeStore,
        admission: AdmissionController,
        recognition: RecognitionClient,
        *,
        cooldown_minutes: int = 5,
        default_confidence: float = 0.95,
        now: Callable[[], datetime] = utc_now,
    ):
        self.attendees = attendees
        self.admission = admission
        self.recognition = recognition
        self.cooldown_minutes = cooldown_minutes
        self.default_confidence = default_confidence
        self._now = now

    async def checkin_by_identifier(self, user_id: str, method: CheckinMethod) -> CheckinResult:
        """QR or MANUAL check-in of a known identifier."""
        if method not in (CheckinMethod.QR, CheckinMethod.MANUAL):
            raise InvalidInputError(
                f"Method {method.value} cannot be used with a bare identifier",
                error_code="INVALID_CHECKIN_METHOD",
            )
        logger.info(f"{method.value} check-in initiated for {user_id}")
        return await self._checkin(user_id, method)

    async def checkin_by_image_or_identifier(
        self,
        user_id: Optional[str] = None,
        image_base64: Optional[str] = None,
        confidence: Optional[float] = None,
    ) -> CheckinResult:
        """
        AI check-in.

        A supplied identifier is trusted as already matched and short-circuits
        recognition; otherwise the image is sent to the recognition service.

        Raises:
            MissingParametersError: Neither user_id nor image_base64 given
            FaceNotFoundError: Nobody recognized in the image
            RecognitionUnavailableError: Recognition service down or timing out
        """
        recognition: Optional[RecognitionResult] = None

        if user_id:
            resolved_id = user_id
            resolved_confidence = confidence if confidence is not None else self.default_confidence
            logger.info(f"AI check-in with pre-detected userId {user_id} (confidence={resolved_confidence})")
        elif image_base64:
            recognition = await self.recognition.recognize(image_base64)
            resolved_id = recognition.user_id
            resolved_confidence = recognition.confidence
            logger.info(
                f"AI recognition resolved {resolved_id} "
                f"(confidence={resolved_confidence}, {recognition.processing_time_ms}ms)"
            )
        else:
            raise MissingParametersError()

        ai_info = None
        if recognition is not None:
            ai_info = AIRecognitionInfo(
                confidence=resolved_confidence,
                processing_time_ms=recognition.processing_time_ms,
                detected_faces=recognition.detected_faces,
                recognized_faces=recognition.recognized_faces,
            )

        return await self._checkin(
            resolved_id,
            CheckinMethod.AI,
            confidence=resolved_confidence,
            ai_recognition=ai_info,
        )

    async def get_history(self, limit: int = DEFAULT_HISTORY_LIMIT) -> CheckinHistory:
        """Checked-in attendees, most recent check-in first."""
        attendees = await self.attendees.list_checked_in(limit=max(limit, 0))
        history = [HistoryItem.from_attendee(a) for a in attendees]
        return CheckinHistory(history=history, total=len(history))

    # ============================================
    # Internals
    # ============================================

    def _ensure_eligible(self, attendee: Attendee, now: datetime) -> None:
        if not attendee.checked_in:
            return

        if attendee.checkin is None:
            # Flagged as checked in but the time is gone: blocked until reset
            logger.warning(f"{attendee.user_id} is checked in without a timestamp")
            raise AlreadyCheckedInError(attendee.user_id)

        elapsed = elapsed_minutes(attendee.checkin.at, now)
        if elapsed < self.cooldown_minutes:
            logger.warning(f"{attendee.user_id} already checked in {elapsed} minutes ago")
            raise AlreadyCheckedInError(attendee.user_id, elapsed)

        logger.info(f"{attendee.user_id} re-checking in after {elapsed} minutes")

    async def _checkin(
        self,
        user_id: str,
        method: CheckinMethod,
        *,
        confidence: Optional[float] = None,
        ai_recognition: Optional[AIRecognitionInfo] = None,
    ) -> CheckinResult:
        attendee = await self.attendees.get(user_id)
        if attendee is None:
            raise AttendeeNotFoundError(user_id)

        now = self._now()
        self._ensure_eligible(attendee, now)

        previous_at = attendee.checkin.at if attendee.checkin else None
        updated = await self.attendees.record_checkin(
            user_id,
            CheckinRecord(at=now, method=method),
            previous_at=previous_at,
        )
        if updated is None:
            # A concurrent check-in won the write
            latest = await self.attendees.get(user_id)
            if latest is None:
                raise AttendeeNotFoundError(user_id)
            self._ensure_eligible(latest, now)
            raise AlreadyCheckedInError(user_id)

        logger.info(f"{method.value} check-in successful for {user_id}")

        queue_outcome = None
        if updated.is_vip and updated.video_url:
            queue_outcome = await self._try_enqueue(updated)

        return CheckinResult(
            attendee=updated,
            checkin_method=method,
            timestamp=now,
            confidence=confidence,
            ai_recognition=ai_recognition,
            queue_outcome=queue_outcome,
        )

    async def _try_enqueue(self, attendee: Attendee) -> QueueOutcome:
        try:
            entry = await self.admission.enqueue(attendee.user_id, attendee.name, attendee.video_url)
        except CheckinServiceError as e:
            logger.warning(f"Failed to add VIP {attendee.user_id} to queue: {e.error_code} {e.message}")
            return QueueOutcome.skipped(e.error_code, e.message)
        except Exception as e:
            logger.exception(f"Queue unavailable while admitting VIP {attendee.user_id}: {e}")
            return QueueOutcome.skipped("QUEUE_UNAVAILABLE", "Queue admission failed")
        return QueueOutcome.queued(entry)
