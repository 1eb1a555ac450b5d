# checkin_service/models/queue_entry.py
from sqlalchemy import Column, String, Integer, DateTime, Index, text
from checkin_service.db.base_class import Base


class QueueEntry(Base):
    """
    VIP video playback slot on the venue display.

    Status flow: WAITING -> PLAYING -> DONE | ERROR
    `id` grows with every insert and breaks created_at ties.
    """
    __tablename__ = "checkin_queue"

    id = Column(Integer, primary_key=True, autoincrement=True)
    queue_id = Column(String(32), unique=True, nullable=False)
    attendee_id = Column(String(32), nullable=False, index=True)  # No FK - correlated by value
    name = Column(String(100), nullable=False)
    video_url = Column(String(1024), nullable=False)

    status = Column(String(10), nullable=False, server_default="WAITING", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    played_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        # At most one active entry per attendee
        Index(
            "uq_checkin_queue_active_attendee",
            "attendee_id",
            unique=True,
            postgresql_where=text("status IN ('WAITING', 'PLAYING')"),
            sqlite_where=text("status IN ('WAITING', 'PLAYING')"),
        ),
        Index("ix_checkin_queue_status_created", "status", "created_at", "id"),
    )
