"""Value types shared by the access policy engine."""

from __future__ import annotations

import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from carehome.models.enums import ProfileStatus, Role


class Operation(str, Enum):
    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value


class Table(str, Enum):
    """Tables (and the file namespace) guarded by access policies."""

    PROFILES = "profiles"
    RESIDENTS = "residents"
    STAFF = "staff"
    EVENTS = "events"
    ANNOUNCEMENTS = "announcements"
    INCIDENTS = "incidents"
    CARE_PLANS = "care_plans"
    CARE_ROUTINES = "care_routines"
    MEDICATIONS = "medications"
    MEDICATION_LOG = "medication_log"
    CHAT_MESSAGES = "chat_messages"
    NOTIFICATIONS = "notifications"
    TASKS = "tasks"
    TODOS = "todos"
    FAMILY_RESIDENT_LINKS = "family_resident_links"
    RESIDENT_FILES = "resident_files"

    def __str__(self) -> str:
        return self.value


Row = Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class Actor:
    """The authenticated caller an access decision is made for.

    Attributes:
        id: Profile id of the caller
        role: Role read from the caller's profile
        status: Soft-delete flag read from the caller's profile
        linked_resident_profile_ids: Resident profiles a FAMILY caller follows
    """

    id: uuid.UUID
    role: Role
    status: ProfileStatus = ProfileStatus.ACTIVE
    linked_resident_profile_ids: frozenset[uuid.UUID] = field(default_factory=frozenset)

    @property
    def is_active(self) -> bool:
        return self.status == ProfileStatus.ACTIVE

    def is_linked_to(self, resident_profile_id: Any) -> bool:
        if resident_profile_id is None:
            return False
        return str(resident_profile_id) in {str(pid) for pid in self.linked_resident_profile_ids}


Predicate = Callable[[Actor, Row], bool]


@dataclass(frozen=True, slots=True)
class Policy:
    """One named rule: who may perform which operations on a table.

    Policies that apply to the same table and operation are combined with OR.
    """

    name: str
    table: Table
    operations: frozenset[Operation]
    predicate: Predicate
    description: str = ""

    def applies_to(self, table: Table, operation: Operation) -> bool:
        return self.table == table and operation in self.operations

    def check(self, actor: Actor, row: Row) -> bool:
        return bool(self.predicate(actor, row))


@dataclass(frozen=True, slots=True)
class Decision:
    """Outcome of evaluating one access request."""

    allowed: bool
    table: Table
    operation: Operation
    policy: str | None = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.allowed

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "table": self.table.value,
            "operation": self.operation.value,
            "policy": self.policy,
            "reason": self.reason,
        }


@dataclass(frozen=True, slots=True)
class PolicyOptions:
    """Switches between the shipped rule set and its corrected form.

    Attributes:
        profile_select_open: Any authenticated user may read every profile
        chat_select_open: Any authenticated user may read every chat message
        family_linked_only: FAMILY users only see residents they are linked to
        enforce_soft_delete: Inactive actors are denied and inactive profiles hidden
    """

    profile_select_open: bool = False
    chat_select_open: bool = False
    family_linked_only: bool = True
    enforce_soft_delete: bool = True

    @classmethod
    def from_settings(cls, settings: Any) -> PolicyOptions:
        return cls(
            profile_select_open=settings.rbac_profile_select_open,
            chat_select_open=settings.rbac_chat_select_open,
            family_linked_only=settings.rbac_family_linked_only,
            enforce_soft_delete=settings.rbac_enforce_soft_delete,
        )


# The rule set as it was deployed: open profile reads, blanket FAMILY
# visibility of residents and a status column nothing checks.
LEGACY_OPTIONS = PolicyOptions(
    profile_select_open=True,
    chat_select_open=False,
    family_linked_only=False,
    enforce_soft_delete=False,
)
