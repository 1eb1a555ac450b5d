# checkin_service/utils/validators.py
"""
Input validation utilities for identifiers and media links.
"""

import re
from typing import Optional

from pydantic import HttpUrl, TypeAdapter, ValidationError

from checkin_service.core.constants import USER_ID_PATTERN
from checkin_service.core.exceptions import InvalidIdentifierError

_http_url = TypeAdapter(HttpUrl)
_user_id_re = re.compile(USER_ID_PATTERN)


def is_valid_media_url(url: Optional[str]) -> bool:
    """
    Check that a media link is a syntactically valid http/https URL.

    Any host is accepted (CDN, media store, local server); only the scheme
    and overall shape are checked.
    """
    if not url or not isinstance(url, str):
        return False
    try:
        _http_url.validate_python(url)
    except ValidationError:
        return False
    return True


def validate_user_id(user_id: str) -> str:
    """
    Validate attendee identifier format.

    Expected format: VIP_001, STAFF_001, GUEST_001

    Raises:
        InvalidIdentifierError: If format is invalid
    """
    if not user_id or not _user_id_re.match(user_id):
        raise InvalidIdentifierError(user_id)
    return user_id
