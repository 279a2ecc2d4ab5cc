"""Enumeration types for the CareHome platform."""

from enum import Enum


class Role(str, Enum):
    """Role carried by every profile; drives access policy eligibility."""

    ADMIN = "ADMIN"
    STAFF = "STAFF"
    FAMILY = "FAMILY"
    RESIDENT = "RESIDENT"

    def __str__(self) -> str:
        return self.value


class ProfileStatus(str, Enum):
    """Soft-delete flag for profiles."""

    ACTIVE = "active"
    INACTIVE = "inactive"

    def __str__(self) -> str:
        return self.value


class CareLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Shift(str, Enum):
    MORNING = "MORNING"
    AFTERNOON = "AFTERNOON"
    NIGHT = "NIGHT"


class IncidentSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class IncidentStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"


class Priority(str, Enum):
    """Priority shared by announcements and tasks."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class NotificationType(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ALERT = "ALERT"


class TaskStatus(str, Enum):
    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


class DoseStatus(str, Enum):
    """Outcome recorded when a medication dose is due."""

    GIVEN = "GIVEN"
    MISSED = "MISSED"
    REFUSED = "REFUSED"


def enum_values(enum_cls: type[Enum]) -> list[str]:
    """Persist enum values rather than member names."""
    return [member.value for member in enum_cls]
