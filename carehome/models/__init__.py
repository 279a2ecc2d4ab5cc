"""SQLAlchemy models for the CareHome platform."""

from carehome.core.database import Base

from .care import CarePlan, CareRoutine
from .enums import (
    CareLevel,
    DoseStatus,
    IncidentSeverity,
    IncidentStatus,
    NotificationType,
    Priority,
    ProfileStatus,
    Role,
    Shift,
    TaskStatus,
)
from .event import Announcement, Event
from .incident import Incident
from .medication import Medication, MedicationLog
from .messaging import ChatMessage, Notification
from .profile import AuthSession, Credential, Profile
from .resident import FamilyResidentLink, Resident
from .staff import Staff
from .task import Task, Todo

__all__ = [
    "Announcement",
    "AuthSession",
    "Base",
    "CareLevel",
    "CarePlan",
    "CareRoutine",
    "ChatMessage",
    "Credential",
    "DoseStatus",
    "Event",
    "FamilyResidentLink",
    "Incident",
    "IncidentSeverity",
    "IncidentStatus",
    "Medication",
    "MedicationLog",
    "Notification",
    "NotificationType",
    "Priority",
    "Profile",
    "ProfileStatus",
    "Resident",
    "Role",
    "Shift",
    "Staff",
    "Task",
    "TaskStatus",
    "Todo",
]
