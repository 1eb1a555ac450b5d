from .admission import AdmissionController
from .checkin import CheckinOrchestrator
from .directory import AttendeeDirectory
from .recognition import RecognitionClient
from .admin import AdminService
