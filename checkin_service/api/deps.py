# checkin_service/api/deps.py
import logging

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt

from checkin_service.core.config import Settings
from checkin_service.core.container import ServiceContainer
from checkin_service.core.exceptions import UnauthorizedError, ForbiddenError
from checkin_service.schemas.token import TokenPayload
from checkin_service.services.admin import AdminService
from checkin_service.services.admission import AdmissionController
from checkin_service.services.checkin import CheckinOrchestrator
from checkin_service.services.directory import AttendeeDirectory

logger = logging.getLogger(__name__)


def get_container(request: Request) -> ServiceContainer:
    """The service graph built at startup."""
    return request.app.state.container


def get_app_settings(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_admission(container: ServiceContainer = Depends(get_container)) -> AdmissionController:
    return container.admission


def get_checkin(container: ServiceContainer = Depends(get_container)) -> CheckinOrchestrator:
    return container.checkin


def get_directory(container: ServiceContainer = Depends(get_container)) -> AttendeeDirectory:
    return container.directory


def get_admin(container: ServiceContainer = Depends(get_container)) -> AdminService:
    return container.admin


# The `tokenUrl` doesn't have to be a real endpoint in this service,
# it's just for the OpenAPI documentation.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="token", auto_error=False)


def get_current_admin(
    token: str | None = Depends(oauth2_scheme),
    settings: Settings = Depends(get_app_settings),
) -> TokenPayload:
    if not token:
        raise UnauthorizedError("Missing authorization token", error_code="UNAUTHORIZED")

    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.JWT_AUDIENCE,
            issuer=settings.JWT_ISSUER,
        )
        token_data = TokenPayload(**payload)
    except (JWTError, ValueError):
        raise UnauthorizedError("Could not validate credentials", error_code="INVALID_TOKEN")

    if token_data.role != "admin":
        logger.warning(f"Non-admin subject {token_data.sub} attempted an admin action")
        raise ForbiddenError("Admin access required", error_code="FORBIDDEN")

    return token_data
