"""Declarative access rule table.

Each table carries an ordered list of named policies. A request is permitted
when any policy applying to its table and operation accepts the (actor, row)
pair, the same permissive union a row-level security engine uses.

The rule set is built from PolicyOptions so that the deployed behavior
(``LEGACY_OPTIONS``) and the corrected defaults share one definition.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from carehome.models.enums import ProfileStatus, Role

from .types import Actor, Operation, Policy, PolicyOptions, Predicate, Row, Table

SELECT = frozenset({Operation.SELECT})
INSERT = frozenset({Operation.INSERT})
UPDATE = frozenset({Operation.UPDATE})
DELETE = frozenset({Operation.DELETE})
SELECT_INSERT = SELECT | INSERT
SELECT_UPDATE = SELECT | UPDATE
INSERT_DELETE = INSERT | DELETE
INSERT_UPDATE = INSERT | UPDATE

CARE_TEAM = (Role.ADMIN, Role.STAFF)


# Predicate building blocks


def authenticated(actor: Actor, row: Row) -> bool:
    return True


def has_role(*roles: Role) -> Predicate:
    allowed = frozenset(roles)

    def predicate(actor: Actor, row: Row) -> bool:
        return actor.role in allowed

    predicate.__name__ = f"has_role({', '.join(r.value for r in roles)})"
    return predicate


def _same_id(left: Any, right: Any) -> bool:
    if left is None or right is None:
        return False
    return str(left) == str(right)


def owns(column: str) -> Predicate:
    """The row's ``column`` holds the actor's profile id."""

    def predicate(actor: Actor, row: Row) -> bool:
        return _same_id(row.get(column), actor.id)

    predicate.__name__ = f"owns({column})"
    return predicate


def linked_resident(column: str) -> Predicate:
    """The actor is FAMILY and linked to the resident profile in ``column``."""

    def predicate(actor: Actor, row: Row) -> bool:
        return actor.role == Role.FAMILY and actor.is_linked_to(row.get(column))

    predicate.__name__ = f"linked_resident({column})"
    return predicate


def row_active(actor: Actor, row: Row) -> bool:
    status = row.get("status")
    if status is None:
        return True
    return str(status) == ProfileStatus.ACTIVE.value


def any_of(*predicates: Predicate) -> Predicate:
    def predicate(actor: Actor, row: Row) -> bool:
        return any(p(actor, row) for p in predicates)

    return predicate


def all_of(*predicates: Predicate) -> Predicate:
    def predicate(actor: Actor, row: Row) -> bool:
        return all(p(actor, row) for p in predicates)

    return predicate


def _policy(
    name: str,
    table: Table,
    operations: Iterable[Operation],
    predicate: Predicate,
    description: str,
) -> Policy:
    return Policy(
        name=name,
        table=table,
        operations=frozenset(operations),
        predicate=predicate,
        description=description,
    )


# Per-table rules


def _profile_policies(options: PolicyOptions) -> list[Policy]:
    # Non-admin readers only see active profiles when soft delete is enforced
    visible: Predicate = row_active if options.enforce_soft_delete else authenticated

    policies = [
        _policy(
            "profiles_select_own",
            Table.PROFILES,
            SELECT,
            owns("id"),
            "Users can view their own profile",
        ),
        _policy(
            "profiles_select_admin",
            Table.PROFILES,
            SELECT,
            has_role(Role.ADMIN),
            "Admins can view all profiles",
        ),
    ]
    if options.profile_select_open:
        policies.append(
            _policy(
                "profiles_select_authenticated",
                Table.PROFILES,
                SELECT,
                all_of(authenticated, visible),
                "Any authenticated user can view all profiles",
            )
        )
    else:
        policies.extend(
            [
                _policy(
                    "profiles_select_staff",
                    Table.PROFILES,
                    SELECT,
                    all_of(has_role(Role.STAFF), visible),
                    "Staff can view profiles of the people they care for and work with",
                ),
                _policy(
                    "profiles_select_family_linked",
                    Table.PROFILES,
                    SELECT,
                    all_of(linked_resident("id"), visible),
                    "Family members can view the profiles of their linked residents",
                ),
            ]
        )
    policies.extend(
        [
            _policy(
                "profiles_insert_authenticated",
                Table.PROFILES,
                INSERT,
                authenticated,
                "Any authenticated user can create profiles",
            ),
            _policy(
                "profiles_update_own",
                Table.PROFILES,
                UPDATE,
                owns("id"),
                "Users can update their own profile",
            ),
            _policy(
                "profiles_update_admin",
                Table.PROFILES,
                UPDATE,
                has_role(Role.ADMIN),
                "Admins can update any profile",
            ),
        ]
    )
    return policies


def _resident_policies(options: PolicyOptions) -> list[Policy]:
    if options.family_linked_only:
        family_select = _policy(
            "residents_select_family_linked",
            Table.RESIDENTS,
            SELECT,
            linked_resident("profile_id"),
            "Family members can view the residents they are linked to",
        )
    else:
        family_select = _policy(
            "residents_select_family",
            Table.RESIDENTS,
            SELECT,
            has_role(Role.FAMILY),
            "Family members can view all residents",
        )
    return [
        _policy(
            "residents_select_care_team",
            Table.RESIDENTS,
            SELECT,
            has_role(*CARE_TEAM),
            "Staff and admins can view all residents",
        ),
        family_select,
        _policy(
            "residents_select_own",
            Table.RESIDENTS,
            SELECT,
            all_of(has_role(Role.RESIDENT), owns("profile_id")),
            "Residents can view their own record",
        ),
        _policy(
            "residents_write_care_team",
            Table.RESIDENTS,
            INSERT_UPDATE,
            has_role(*CARE_TEAM),
            "Staff and admins can create and update residents",
        ),
        _policy(
            "residents_delete_admin",
            Table.RESIDENTS,
            DELETE,
            has_role(Role.ADMIN),
            "Admins can delete residents",
        ),
    ]


def _staff_policies(options: PolicyOptions) -> list[Policy]:
    return [
        _policy(
            "staff_select_care_team",
            Table.STAFF,
            SELECT,
            has_role(*CARE_TEAM),
            "Staff and admins can view staff",
        ),
        _policy(
            "staff_select_authenticated",
            Table.STAFF,
            SELECT,
            authenticated,
            "Any authenticated user can view staff",
        ),
        _policy(
            "staff_write_admin",
            Table.STAFF,
            INSERT | UPDATE | DELETE,
            has_role(Role.ADMIN),
            "Admins can manage staff",
        ),
    ]


def _bulletin_policies(table: Table) -> list[Policy]:
    """Events and announcements share one rule shape."""
    name = table.value
    return [
        _policy(
            f"{name}_select_authenticated",
            table,
            SELECT,
            authenticated,
            f"Any authenticated user can view {name}",
        ),
        _policy(
            f"{name}_write_care_team",
            table,
            INSERT_UPDATE,
            has_role(*CARE_TEAM),
            f"Staff and admins can create and update {name}",
        ),
        _policy(
            f"{name}_delete_admin",
            table,
            DELETE,
            has_role(Role.ADMIN),
            f"Admins can delete {name}",
        ),
    ]


def _clinical_policies(table: Table) -> list[Policy]:
    """Incidents, care plans, care routines and medications: care team only."""
    name = table.value
    return [
        _policy(
            f"{name}_care_team",
            table,
            SELECT | INSERT | UPDATE,
            has_role(*CARE_TEAM),
            f"Staff and admins can view, create and update {name}",
        ),
    ]


def _medication_log_policies(options: PolicyOptions) -> list[Policy]:
    return [
        _policy(
            "medication_log_select_care_team",
            Table.MEDICATION_LOG,
            SELECT,
            has_role(*CARE_TEAM),
            "Staff and admins can view the medication log",
        ),
        _policy(
            "medication_log_insert_administering",
            Table.MEDICATION_LOG,
            INSERT,
            all_of(has_role(*CARE_TEAM), owns("administered_by")),
            "Staff and admins can log doses they administered",
        ),
    ]


def _chat_policies(options: PolicyOptions) -> list[Policy]:
    policies = [
        _policy(
            "chat_select_participant",
            Table.CHAT_MESSAGES,
            SELECT,
            any_of(owns("sender_id"), owns("receiver_id")),
            "Users can view messages they sent or received",
        ),
    ]
    if options.chat_select_open:
        policies.append(
            _policy(
                "chat_select_authenticated",
                Table.CHAT_MESSAGES,
                SELECT,
                authenticated,
                "Any authenticated user can view all messages",
            )
        )
    policies.extend(
        [
            _policy(
                "chat_insert_sender",
                Table.CHAT_MESSAGES,
                INSERT,
                owns("sender_id"),
                "Users can send messages as themselves",
            ),
            _policy(
                "chat_update_receiver",
                Table.CHAT_MESSAGES,
                UPDATE,
                owns("receiver_id"),
                "Receivers can mark messages as read",
            ),
        ]
    )
    return policies


def _notification_policies(options: PolicyOptions) -> list[Policy]:
    return [
        _policy(
            "notifications_own",
            Table.NOTIFICATIONS,
            SELECT_UPDATE,
            owns("user_id"),
            "Users can view and mark their own notifications",
        ),
        _policy(
            "notifications_insert_care_team",
            Table.NOTIFICATIONS,
            INSERT,
            has_role(*CARE_TEAM),
            "Staff and admins can send notifications",
        ),
    ]


def _task_policies(options: PolicyOptions) -> list[Policy]:
    return [
        _policy(
            "tasks_select_assignee",
            Table.TASKS,
            SELECT,
            owns("assigned_to"),
            "Users can view tasks assigned to them",
        ),
        _policy(
            "tasks_insert_care_team",
            Table.TASKS,
            INSERT,
            has_role(*CARE_TEAM),
            "Staff and admins can assign tasks",
        ),
        _policy(
            "todos_select_assignee",
            Table.TODOS,
            SELECT,
            owns("assigned_to"),
            "Users can view their own todos",
        ),
        _policy(
            "todos_insert_own",
            Table.TODOS,
            INSERT,
            owns("assigned_to"),
            "Users can create todos for themselves",
        ),
    ]


def _family_link_policies(options: PolicyOptions) -> list[Policy]:
    return [
        _policy(
            "family_links_select_care_team",
            Table.FAMILY_RESIDENT_LINKS,
            SELECT,
            has_role(*CARE_TEAM),
            "Staff and admins can view family links",
        ),
        _policy(
            "family_links_select_own",
            Table.FAMILY_RESIDENT_LINKS,
            SELECT,
            owns("family_profile_id"),
            "Family members can view their own links",
        ),
        _policy(
            "family_links_write_admin",
            Table.FAMILY_RESIDENT_LINKS,
            INSERT_DELETE,
            has_role(Role.ADMIN),
            "Admins can link and unlink family members",
        ),
    ]


def _resident_file_policies(options: PolicyOptions) -> list[Policy]:
    if options.family_linked_only:
        family: Predicate = linked_resident("profile_id")
        family_description = "Family members can read files of their linked residents"
    else:
        family = has_role(Role.FAMILY)
        family_description = "Family members can read all resident files"
    return [
        _policy(
            "resident_files_select_care_team",
            Table.RESIDENT_FILES,
            SELECT,
            has_role(*CARE_TEAM),
            "Staff and admins can read resident files",
        ),
        _policy(
            "resident_files_select_owner",
            Table.RESIDENT_FILES,
            SELECT,
            all_of(has_role(Role.RESIDENT), owns("profile_id")),
            "Residents can read their own files",
        ),
        _policy(
            "resident_files_select_family",
            Table.RESIDENT_FILES,
            SELECT,
            family,
            family_description,
        ),
        _policy(
            "resident_files_insert_care_team",
            Table.RESIDENT_FILES,
            INSERT,
            has_role(*CARE_TEAM),
            "Staff and admins can upload resident files",
        ),
        _policy(
            "resident_files_delete_admin",
            Table.RESIDENT_FILES,
            DELETE,
            has_role(Role.ADMIN),
            "Admins can delete resident files",
        ),
    ]


def build_rules(options: PolicyOptions) -> list[Policy]:
    """Return the full, ordered rule table for the given options."""
    rules: list[Policy] = []
    rules.extend(_profile_policies(options))
    rules.extend(_resident_policies(options))
    rules.extend(_staff_policies(options))
    rules.extend(_bulletin_policies(Table.EVENTS))
    rules.extend(_bulletin_policies(Table.ANNOUNCEMENTS))
    for table in (Table.INCIDENTS, Table.CARE_PLANS, Table.CARE_ROUTINES, Table.MEDICATIONS):
        rules.extend(_clinical_policies(table))
    rules.extend(_medication_log_policies(options))
    rules.extend(_chat_policies(options))
    rules.extend(_notification_policies(options))
    rules.extend(_task_policies(options))
    rules.extend(_family_link_policies(options))
    rules.extend(_resident_file_policies(options))
    return rules
