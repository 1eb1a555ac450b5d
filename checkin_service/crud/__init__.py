from .base import AttendeeStore, QueueStore, AdmitResult, AdmitRejection
from .memory import InMemoryAttendeeStore, InMemoryQueueStore
