"""Repository pattern implementations for data access."""

from carehome.repositories.activity_repository import (
    AnnouncementRepository,
    EventRepository,
    TaskRepository,
    TodoRepository,
)
from carehome.repositories.base import MAX_LIMIT, Repository, ScopedRepository
from carehome.repositories.clinical_repository import (
    CarePlanRepository,
    CareRoutineRepository,
    IncidentRepository,
    MedicationLogRepository,
    MedicationRepository,
)
from carehome.repositories.messaging_repository import (
    ChatMessageRepository,
    NotificationRepository,
)
from carehome.repositories.profile_repository import (
    CredentialRepository,
    ProfileRepository,
    SessionRepository,
)
from carehome.repositories.resident_repository import (
    FamilyLinkRepository,
    ResidentRepository,
    StaffRepository,
)

__all__ = [
    "MAX_LIMIT",
    "AnnouncementRepository",
    "CarePlanRepository",
    "CareRoutineRepository",
    "ChatMessageRepository",
    "CredentialRepository",
    "EventRepository",
    "FamilyLinkRepository",
    "IncidentRepository",
    "MedicationLogRepository",
    "MedicationRepository",
    "NotificationRepository",
    "ProfileRepository",
    "Repository",
    "ResidentRepository",
    "ScopedRepository",
    "SessionRepository",
    "StaffRepository",
    "TaskRepository",
    "TodoRepository",
]
