# checkin_service/schemas/attendee.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from checkin_service.core.constants import (
    CheckinMethod,
    USER_ID_PATTERN,
    SEAT_PATTERN,
    PHONE_PATTERN,
)
from checkin_service.utils.validators import is_valid_media_url


class CheckinRecord(BaseModel):
    """When and how an attendee checked in. Both fields always travel together."""

    at: datetime
    method: CheckinMethod

    model_config = ConfigDict(frozen=True)


class AttendeeBase(BaseModel):
    user_id: str
    name: str
    is_vip: bool = Field(default=False, alias="isVIP")
    seat: Optional[str] = None
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class AttendeeCreate(AttendeeBase):
    """Registration payload. Formats are enforced here, at the boundary."""

    user_id: str = Field(pattern=USER_ID_PATTERN)
    name: str = Field(min_length=2, max_length=100)
    is_vip: bool = Field(alias="isVIP")
    seat: str = Field(pattern=SEAT_PATTERN)
    email: Optional[str] = Field(default=None, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("video_url", "image_url")
    @classmethod
    def check_media_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_media_url(v):
            raise ValueError("must be a valid http(s) URL")
        return v

    @model_validator(mode="after")
    def vip_needs_video(self):
        if self.is_vip and not self.video_url:
            raise ValueError("videoUrl is required for VIP attendees")
        return self


class AttendeeUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    is_vip: Optional[bool] = Field(default=None, alias="isVIP")
    seat: Optional[str] = Field(default=None, pattern=SEAT_PATTERN)
    image_url: Optional[str] = None
    video_url: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = Field(default=None, pattern=PHONE_PATTERN)

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    @field_validator("video_url", "image_url")
    @classmethod
    def check_media_url(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not is_valid_media_url(v):
            raise ValueError("must be a valid http(s) URL")
        return v

    @model_validator(mode="after")
    def vip_needs_video(self):
        # Only what the payload itself says; the merge with the stored record
        # is checked by AttendeeDirectory.update_attendee
        if self.is_vip and "video_url" in self.model_fields_set and not self.video_url:
            raise ValueError("videoUrl is required for VIP attendees")
        return self


class Attendee(AttendeeBase):
    checkin: Optional[CheckinRecord] = None
    # Stored rows flagged as checked in whose timestamp was lost. Such
    # attendees stay blocked until an administrative reset.
    checkin_unrecoverable: bool = Field(default=False, exclude=True)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @computed_field(alias="checkedIn")
    @property
    def checked_in(self) -> bool:
        return self.checkin is not None or self.checkin_unrecoverable


class AttendeeSummary(BaseModel):
    user_id: str
    name: str

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttendeeCounts(BaseModel):
    total_users: int = 0
    total_checked_in: int = 0
    total_vips: int = 0
    vips_checked_in: int = 0

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AttendeeStats(AttendeeCounts):
    queue_length: int = 0
    checkin_rate: float = 0.0
