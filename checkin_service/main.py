# checkin_service/main.py
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from checkin_service.api.v1.api import api_router
from checkin_service.core.config import get_settings
from checkin_service.core.container import create_container
from checkin_service.core.exceptions import CheckinServiceError
from checkin_service.core.limiter import limiter
from checkin_service.core.logging import setup_logging
from checkin_service.middleware import (
    service_error_handler,
    validation_error_handler,
    http_exception_handler,
    rate_limit_handler,
    unexpected_error_handler,
)

settings = get_settings()

setup_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""

    # Startup
    logger.info(f"Starting {settings.PROJECT_NAME} v{settings.VERSION} ({settings.ENV})...")

    # Tests install their own container before the app starts
    owns_container = getattr(app.state, "container", None) is None
    if owns_container:
        try:
            app.state.container = await create_container(settings)
        except Exception as e:
            logger.error(f"Startup failed: {e}")
            raise

    logger.info(
        f"Check-in service ready (queue limit={settings.MAX_QUEUE_LENGTH}, "
        f"cooldown={settings.CHECKIN_COOLDOWN_MINUTES}min)"
    )

    yield

    # Shutdown
    logger.info("Shutting down check-in service...")
    if owns_container:
        await app.state.container.aclose()
        app.state.container = None


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Event check-in backend with an ordered VIP video playback queue",
    version=settings.VERSION,
    lifespan=lifespan,
)

# Add CORS middleware (production-safe)
cors_origins = settings.get_cors_origins() or [
    "http://localhost:3000",  # Development only
    "http://localhost:5173",
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# Rate limiting
app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)

# Register exception handlers
app.add_exception_handler(CheckinServiceError, service_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(RateLimitExceeded, rate_limit_handler)
app.add_exception_handler(Exception, unexpected_error_handler)

# Include routers
app.include_router(api_router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": settings.PROJECT_NAME,
        "status": "operational",
        "version": settings.VERSION,
    }


@app.get("/health")
async def health():
    """Liveness check endpoint"""
    return {"status": "healthy", "service": settings.PROJECT_NAME}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=3000)
