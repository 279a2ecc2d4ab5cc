"""Unit tests for the access policy engine.

Coverage includes:
- Unauthenticated and inactive actors
- Per-table rules for each role
- UPDATE checks on the old and new row
- The shipped rule set versus the corrected defaults
- require() / filter_rows() / describe()
"""

from __future__ import annotations

import uuid

import pytest

from carehome.core.exceptions import PolicyDeniedError
from carehome.models import ChatMessage, Profile, ProfileStatus, Role
from carehome.policy import (
    LEGACY_OPTIONS,
    Operation,
    PolicyOptions,
    Table,
    as_row,
    build_policy_set,
)
from carehome.tests.factories import ActorFactory, ChatMessageFactory, ProfileFactory

# =============================================================================
# Actor gate
# =============================================================================


def test_anonymous_actor_is_denied_everything(policies):
    for table in Table:
        for operation in Operation:
            decision = policies.evaluate(None, table, operation, {})
            assert not decision
            assert decision.reason == "not authenticated"


def test_inactive_actor_denied_when_soft_delete_enforced(policies):
    admin = ActorFactory(admin=True, inactive=True)

    decision = policies.evaluate(admin, Table.EVENTS, Operation.SELECT, {})

    assert not decision
    assert decision.reason == "actor profile is inactive"


def test_inactive_actor_ignored_by_legacy_rules(legacy_policies):
    admin = ActorFactory(admin=True, inactive=True)

    assert legacy_policies.permits(admin, Table.EVENTS, Operation.SELECT, {})


def test_operation_without_policies_is_denied(policies):
    staff = ActorFactory()

    decision = policies.evaluate(staff, Table.MEDICATION_LOG, Operation.DELETE, {})

    assert not decision
    assert "no policy grants DELETE on medication_log" in decision.reason


def test_string_table_and_operation_accepted(policies):
    staff = ActorFactory()
    decision = policies.evaluate(staff, "incidents", "SELECT", {})
    assert decision.allowed
    assert decision.policy == "incidents_care_team"


def test_unknown_table_raises(policies):
    with pytest.raises(ValueError):
        policies.evaluate(ActorFactory(), "invoices", "SELECT", {})


# =============================================================================
# Profiles
# =============================================================================


class TestProfilePolicies:
    def test_user_reads_own_profile(self, policies):
        resident = ActorFactory(resident=True)
        row = {"id": resident.id, "status": "active"}
        decision = policies.evaluate(resident, Table.PROFILES, Operation.SELECT, row)
        assert decision.policy == "profiles_select_own"

    def test_resident_cannot_read_other_profiles(self, policies):
        resident = ActorFactory(resident=True)
        row = {"id": uuid.uuid4(), "status": "active"}
        assert not policies.permits(resident, Table.PROFILES, Operation.SELECT, row)

    def test_open_profile_select_lets_anyone_read(self, legacy_policies):
        resident = ActorFactory(resident=True)
        row = {"id": uuid.uuid4(), "status": "active"}
        decision = legacy_policies.evaluate(resident, Table.PROFILES, Operation.SELECT, row)
        assert decision.policy == "profiles_select_authenticated"

    def test_family_reads_linked_resident_profile_only(self, policies):
        linked = uuid.uuid4()
        family = ActorFactory(family=True, linked_resident_profile_ids=frozenset({linked}))

        assert policies.permits(family, Table.PROFILES, Operation.SELECT, {"id": linked})
        assert not policies.permits(family, Table.PROFILES, Operation.SELECT, {"id": uuid.uuid4()})

    def test_inactive_profiles_hidden_from_staff(self, policies):
        staff = ActorFactory()
        row = {"id": uuid.uuid4(), "status": ProfileStatus.INACTIVE}
        assert not policies.permits(staff, Table.PROFILES, Operation.SELECT, row)

    def test_inactive_profiles_visible_to_admin(self, policies):
        admin = ActorFactory(admin=True)
        row = {"id": uuid.uuid4(), "status": ProfileStatus.INACTIVE}
        assert policies.permits(admin, Table.PROFILES, Operation.SELECT, row)

    def test_own_inactive_profile_still_readable_without_enforcement(self, legacy_policies):
        actor = ActorFactory(resident=True, inactive=True)
        row = {"id": actor.id, "status": ProfileStatus.INACTIVE}
        assert legacy_policies.permits(actor, Table.PROFILES, Operation.SELECT, row)

    def test_orm_instance_is_accepted_as_row(self, policies):
        profile: Profile = ProfileFactory(role=Role.RESIDENT)
        actor = ActorFactory(id=profile.id, resident=True)
        assert policies.permits(actor, Table.PROFILES, Operation.SELECT, profile)

    def test_any_actor_may_insert_profile(self, policies):
        family = ActorFactory(family=True)
        assert policies.permits(family, Table.PROFILES, Operation.INSERT, {"id": uuid.uuid4()})


# =============================================================================
# UPDATE semantics
# =============================================================================


class TestUpdateChecks:
    def test_self_update_allowed(self, policies):
        actor = ActorFactory(family=True)
        row = {"id": actor.id, "full_name": "Old"}
        new_row = {"id": actor.id, "full_name": "New"}
        assert policies.permits(actor, Table.PROFILES, Operation.UPDATE, row, new_row)

    def test_new_row_must_also_pass(self, policies):
        receiver = ActorFactory()
        other_id = uuid.uuid4()
        row = {"sender_id": uuid.uuid4(), "receiver_id": receiver.id, "read": False}
        # Receiver reassigns the message to someone else
        new_row = {**row, "receiver_id": other_id, "read": True}

        decision = policies.evaluate(receiver, Table.CHAT_MESSAGES, Operation.UPDATE, row, new_row)

        assert not decision
        assert decision.reason == "updated row violates chat_messages policies"

    def test_staff_cannot_update_other_profile(self, policies):
        staff = ActorFactory()
        row = {"id": uuid.uuid4()}
        assert not policies.permits(staff, Table.PROFILES, Operation.UPDATE, row, row)

    def test_admin_updates_any_profile(self, policies):
        admin = ActorFactory(admin=True)
        row = {"id": uuid.uuid4(), "status": "active"}
        new_row = {**row, "status": "inactive"}
        decision = policies.evaluate(admin, Table.PROFILES, Operation.UPDATE, row, new_row)
        assert decision.policy == "profiles_update_admin"


# =============================================================================
# Residents and clinical data
# =============================================================================


class TestResidentPolicies:
    def test_care_team_reads_all_residents(self, policies):
        for role in (Role.ADMIN, Role.STAFF):
            actor = ActorFactory(role=role)
            row = {"profile_id": uuid.uuid4()}
            assert policies.permits(actor, Table.RESIDENTS, Operation.SELECT, row)

    def test_family_linked_only_by_default(self, policies):
        linked = uuid.uuid4()
        family = ActorFactory(family=True, linked_resident_profile_ids=frozenset({linked}))

        assert policies.permits(family, Table.RESIDENTS, Operation.SELECT, {"profile_id": linked})
        assert not policies.permits(
            family, Table.RESIDENTS, Operation.SELECT, {"profile_id": uuid.uuid4()}
        )

    def test_legacy_family_reads_every_resident(self, legacy_policies):
        family = ActorFactory(family=True)
        decision = legacy_policies.evaluate(
            family, Table.RESIDENTS, Operation.SELECT, {"profile_id": uuid.uuid4()}
        )
        assert decision.policy == "residents_select_family"

    def test_resident_reads_only_own_record(self, policies):
        resident = ActorFactory(resident=True)
        assert policies.permits(
            resident, Table.RESIDENTS, Operation.SELECT, {"profile_id": resident.id}
        )
        assert not policies.permits(
            resident, Table.RESIDENTS, Operation.SELECT, {"profile_id": uuid.uuid4()}
        )

    def test_only_admin_deletes_residents(self, policies):
        assert policies.permits(ActorFactory(admin=True), Table.RESIDENTS, Operation.DELETE, {})
        assert not policies.permits(ActorFactory(), Table.RESIDENTS, Operation.DELETE, {})

    @pytest.mark.parametrize(
        "table", [Table.INCIDENTS, Table.CARE_PLANS, Table.CARE_ROUTINES, Table.MEDICATIONS]
    )
    def test_clinical_tables_closed_to_family_and_residents(self, policies, table):
        for role in (Role.FAMILY, Role.RESIDENT):
            actor = ActorFactory(role=role)
            assert not policies.permits(actor, table, Operation.SELECT, {})
        assert policies.permits(ActorFactory(), table, Operation.INSERT, {})

    def test_medication_log_insert_requires_administering_actor(self, policies):
        staff = ActorFactory()
        assert policies.permits(
            staff, Table.MEDICATION_LOG, Operation.INSERT, {"administered_by": staff.id}
        )
        assert not policies.permits(
            staff, Table.MEDICATION_LOG, Operation.INSERT, {"administered_by": uuid.uuid4()}
        )

    def test_staff_cannot_create_staff(self, policies):
        assert not policies.permits(ActorFactory(), Table.STAFF, Operation.INSERT, {})
        assert policies.permits(ActorFactory(admin=True), Table.STAFF, Operation.INSERT, {})


# =============================================================================
# Messaging
# =============================================================================


class TestMessagingPolicies:
    def test_participants_read_chat(self, policies):
        message: ChatMessage = ChatMessageFactory()
        sender = ActorFactory(id=message.sender_id, family=True)
        receiver = ActorFactory(id=message.receiver_id)

        assert policies.permits(sender, Table.CHAT_MESSAGES, Operation.SELECT, message)
        assert policies.permits(receiver, Table.CHAT_MESSAGES, Operation.SELECT, message)

    def test_third_party_cannot_read_chat(self, policies):
        message = ChatMessageFactory()
        assert not policies.permits(ActorFactory(admin=True), Table.CHAT_MESSAGES, Operation.SELECT, message)

    def test_open_chat_select_option(self):
        open_chat = build_policy_set(PolicyOptions(chat_select_open=True))
        message = ChatMessageFactory()
        decision = open_chat.evaluate(ActorFactory(), Table.CHAT_MESSAGES, Operation.SELECT, message)
        assert decision.policy == "chat_select_authenticated"

    def test_sender_cannot_impersonate(self, policies):
        actor = ActorFactory()
        row = {"sender_id": uuid.uuid4(), "receiver_id": actor.id}
        assert not policies.permits(actor, Table.CHAT_MESSAGES, Operation.INSERT, row)

    def test_notifications_are_private(self, policies):
        owner = ActorFactory(family=True)
        row = {"user_id": owner.id}
        assert policies.permits(owner, Table.NOTIFICATIONS, Operation.SELECT, row)
        assert not policies.permits(ActorFactory(admin=True), Table.NOTIFICATIONS, Operation.SELECT, row)

    def test_only_care_team_sends_notifications(self, policies):
        row = {"user_id": uuid.uuid4()}
        assert policies.permits(ActorFactory(), Table.NOTIFICATIONS, Operation.INSERT, row)
        assert not policies.permits(ActorFactory(family=True), Table.NOTIFICATIONS, Operation.INSERT, row)


# =============================================================================
# Helpers
# =============================================================================


def test_require_raises_policy_denied(policies):
    family = ActorFactory(family=True)
    with pytest.raises(PolicyDeniedError) as exc_info:
        policies.require(family, Table.INCIDENTS, Operation.INSERT, {})
    assert exc_info.value.status_code == 403


def test_require_returns_decision(policies):
    decision = policies.require(ActorFactory(admin=True), Table.EVENTS, Operation.DELETE, {})
    assert decision.policy == "events_delete_admin"


def test_filter_rows_keeps_visible_rows(policies):
    actor = ActorFactory()
    mine = {"assigned_to": actor.id}
    theirs = {"assigned_to": uuid.uuid4()}
    assert policies.filter_rows(actor, Table.TASKS, [mine, theirs]) == [mine]


def test_describe_lists_rules_in_order(policies):
    described = policies.describe()
    assert described[0]["name"] == "profiles_select_own"
    assert {"name", "table", "operations", "description"} <= set(described[0])
    names = [rule["name"] for rule in described]
    assert "profiles_select_authenticated" not in names
    assert len(names) == len(set(names))


def test_legacy_rule_set_has_open_profile_select(legacy_policies):
    names = {rule["name"] for rule in legacy_policies.describe()}
    assert "profiles_select_authenticated" in names
    assert "residents_select_family" in names
    assert legacy_policies.options == LEGACY_OPTIONS


def test_decision_to_dict():
    decision = build_policy_set().evaluate(None, Table.TASKS, Operation.SELECT)
    assert decision.to_dict() == {
        "allowed": False,
        "table": "tasks",
        "operation": "SELECT",
        "policy": None,
        "reason": "not authenticated",
    }


def test_as_row_handles_none_mapping_and_orm():
    profile = ProfileFactory()
    assert as_row(None) == {}
    assert as_row({"id": 1}) == {"id": 1}
    assert as_row(profile)["id"] == profile.id
