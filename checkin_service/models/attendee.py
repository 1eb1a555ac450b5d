# checkin_service/models/attendee.py
from sqlalchemy import Column, String, Boolean, DateTime, CheckConstraint, func
from checkin_service.db.base_class import Base


class Attendee(Base):
    """
    Registered event participant (VIP, staff or guest).

    checked_in_at and checked_in_method are written together; the check
    constraint keeps one from being set without the other.
    """
    __tablename__ = "attendees"

    user_id = Column(String(32), primary_key=True)  # VIP_001, STAFF_012, GUEST_104
    name = Column(String(100), nullable=False)
    is_vip = Column(Boolean, nullable=False, default=False, index=True)
    seat = Column(String(8), nullable=True)

    # Media (hosted externally, stored as links)
    image_url = Column(String(1024), nullable=True)
    video_url = Column(String(1024), nullable=True)

    email = Column(String(255), nullable=True)
    phone = Column(String(20), nullable=True)

    # Check-in state
    checked_in = Column(Boolean, nullable=False, default=False, index=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_method = Column(String(10), nullable=True)  # AI, QR, MANUAL

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "(checked_in_at IS NULL) = (checked_in_method IS NULL)",
            name="ck_attendees_checkin_pair",
        ),
    )
