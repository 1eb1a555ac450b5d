# checkin_service/services/recognition.py
"""
HTTP client for the face recognition service.

The service is an opaque remote model:
- POST /recognize {"image": <base64>} -> {users: [...], detected_faces, recognized_faces}
- GET /health -> {status, model_loaded, database_size}

No retries are attempted; timeouts and refused connections surface
immediately as RecognitionUnavailableError so callers can retry the whole
check-in.
"""

import logging
import time
from typing import Optional

import httpx

from checkin_service.core.exceptions import FaceNotFoundError, RecognitionUnavailableError
from checkin_service.schemas.checkin import RecognitionResult, RecognitionHealth

logger = logging.getLogger(__name__)


class RecognitionClient:
    """Async client for the remote face recognition API."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        timeout: float = 10.0,
        health_timeout: float = 5.0,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Recognition service base URL
            timeout: Timeout for /recognize in seconds
            health_timeout: Timeout for /health in seconds
            api_key: Optional key sent as X-API-Key
            transport: Custom transport (tests use httpx.MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.health_timeout = health_timeout
        self.api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            headers = {"Content-Type": "application/json"}
            if self.api_key:
                headers["X-API-Key"] = self.api_key
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=headers,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
        self._client = None

    async def recognize(self, image_base64: str) -> RecognitionResult:
        """
        Send an image and return the best (first) match.

        Raises:
            FaceNotFoundError: No user recognized, or the service rejected the image
            RecognitionUnavailableError: Service down, timed out, not ready or failing
        """
        logger.info(f"Calling recognition service ({len(image_base64)} chars of image data)")
        started = time.perf_counter()

        try:
            response = await self._get_client().post("/recognize", json={"image": image_base64})
        except httpx.ConnectError as e:
            logger.error(f"Recognition service is not available: {e}")
            raise RecognitionUnavailableError(
                "AI recognition service is not available",
                error_code="AI_SERVICE_DOWN",
            )
        except httpx.TimeoutException as e:
            logger.error(f"Recognition service timeout: {e}")
            raise RecognitionUnavailableError(
                "AI recognition service timeout",
                error_code="AI_SERVICE_TIMEOUT",
            )
        except httpx.HTTPError as e:
            logger.error(f"Unknown recognition service error: {e}")
            raise RecognitionUnavailableError("AI recognition failed")

        duration_ms = int((time.perf_counter() - started) * 1000)

        if response.status_code != 200:
            self._raise_for_status(response)

        try:
            payload = response.json()
        except ValueError:
            logger.error("Recognition service returned a non-JSON body")
            raise RecognitionUnavailableError("AI recognition failed")

        users = payload.get("users") or []
        detected_faces = payload.get("detected_faces")
        recognized_faces = payload.get("recognized_faces")

        if not users or not users[0].get("userId"):
            logger.info(
                f"No faces recognized (detected={detected_faces}, "
                f"recognized={recognized_faces}, {duration_ms}ms)"
            )
            raise FaceNotFoundError(detected_faces=detected_faces)

        best = users[0]
        result = RecognitionResult(
            user_id=best.get("userId"),
            name=best.get("name"),
            confidence=best.get("confidence") or 0.0,
            house=best.get("house") or "",
            processing_time_ms=duration_ms,
            detected_faces=detected_faces,
            recognized_faces=recognized_faces,
        )
        logger.info(
            f"Recognition completed in {duration_ms}ms: {result.user_id} "
            f"(confidence={result.confidence})"
        )
        return result

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            body = response.json()
        except ValueError:
            body = {}
        if not isinstance(body, dict):
            body = {}
        detail = body.get("error") or body.get("message")

        logger.error(f"Recognition service error: HTTP {response.status_code} {detail or ''}".rstrip())

        if response.status_code == 400:
            raise FaceNotFoundError(detail or "Face recognition failed")
        if response.status_code == 503:
            raise RecognitionUnavailableError(
                "AI model or database not loaded",
                error_code="AI_SERVICE_NOT_READY",
            )
        raise RecognitionUnavailableError(detail or "AI recognition failed")

    async def health_check(self) -> RecognitionHealth:
        """Probe /health. Never raises; failures come back as available=False."""
        try:
            response = await self._get_client().get("/health", timeout=self.health_timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Recognition service health check failed: {e}")
            return RecognitionHealth(available=False, error=str(e) or type(e).__name__)

        return RecognitionHealth(
            available=True,
            status=data.get("status") or "ok",
            model_loaded=bool(data.get("model_loaded")),
            database_size=data.get("database_size") or 0,
        )
