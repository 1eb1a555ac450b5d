from checkin_service.models.attendee import Attendee
from checkin_service.models.queue_entry import QueueEntry

__all__ = ["Attendee", "QueueEntry"]
