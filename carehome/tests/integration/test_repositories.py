"""Tests for policy-scoped repositories against a real session."""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import select

from carehome.core.exceptions import PolicyDeniedError, ResourceNotFoundError
from carehome.models import Profile, ProfileStatus, Role
from carehome.repositories import (
    ChatMessageRepository,
    FamilyLinkRepository,
    IncidentRepository,
    NotificationRepository,
    ProfileRepository,
    ResidentRepository,
)
from carehome.repositories import base as repository_base
from carehome.services.identity import resolve_actor
from carehome.tests.factories import ChatMessageFactory, IncidentFactory, NotificationFactory


@pytest.fixture
async def household(seed):
    """A family member linked to one of two residents, plus a staff member."""
    family = await seed.profile(Role.FAMILY)
    mine, _ = await seed.resident(room_number="1A")
    other, _ = await seed.resident(room_number="2B")
    staff, _ = await seed.staff()
    await seed.link(family, mine)
    return {"family": family, "mine": mine, "other": other, "staff": staff}


class TestResidentRepository:
    async def test_family_scope(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        residents = await ResidentRepository(db_session, actor, policies).list_visible()
        assert [r.profile_id for r in residents] == [household["mine"].id]

    async def test_legacy_family_scope(self, db_session, legacy_policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        residents = await ResidentRepository(db_session, actor, legacy_policies).list_visible()
        assert len(residents) == 2

    async def test_hidden_resident_is_not_found(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        repo = ResidentRepository(db_session, actor, policies)
        with pytest.raises(ResourceNotFoundError):
            await repo.get_by_profile_id(household["other"].id)

    async def test_room_lookup(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["staff"].id)
        residents = await ResidentRepository(db_session, actor, policies).list_by_room("2B")
        assert [r.profile_id for r in residents] == [household["other"].id]

    async def test_anonymous_sees_nothing(self, db_session, policies, household):
        assert await ResidentRepository(db_session, None, policies).list_visible() == []


class TestProfileRepository:
    async def test_inactive_profile_hidden_unless_admin(self, db_session, policies, seed, household):
        admin, _ = await seed.staff(Role.ADMIN)
        admin_actor = await resolve_actor(db_session, admin.id)
        staff_actor = await resolve_actor(db_session, household["staff"].id)

        await ProfileRepository(db_session, admin_actor, policies).set_status(
            household["other"], ProfileStatus.INACTIVE
        )

        staff_view = await ProfileRepository(db_session, staff_actor, policies).list_visible_filtered(
            include_inactive=True
        )
        admin_view = await ProfileRepository(db_session, admin_actor, policies).list_visible_filtered(
            include_inactive=True
        )
        assert household["other"].id not in {p.id for p in staff_view}
        assert household["other"].id in {p.id for p in admin_view}

    async def test_update_cannot_hand_profile_to_someone_else(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["staff"].id)
        repo = ProfileRepository(db_session, actor, policies)
        with pytest.raises(PolicyDeniedError):
            await repo.apply_update(household["staff"], {"id": uuid.uuid4()})

    async def test_pagination_applies_after_filtering(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        repo = ProfileRepository(db_session, actor, policies)
        first = await repo.list_visible_filtered(limit=1)
        second = await repo.list_visible_filtered(skip=1, limit=1)
        assert len(first) == len(second) == 1
        assert first[0].id != second[0].id


class TestPaging:
    @pytest.fixture(autouse=True)
    def small_batches(self, monkeypatch):
        monkeypatch.setattr(repository_base, "FETCH_BATCH_SIZE", 2)

    async def test_pages_reach_past_the_row_cap(self, db_session, policies, seed, monkeypatch):
        monkeypatch.setattr(repository_base, "MAX_LIMIT", 3)
        admin, _ = await seed.staff(Role.ADMIN)
        for _ in range(6):
            await seed.profile(Role.STAFF)
        repo = ProfileRepository(db_session, await resolve_actor(db_session, admin.id), policies)

        collected = []
        skip = 0
        while page := await repo.list_visible_filtered(skip=skip, limit=100):
            assert len(page) <= 3
            collected.extend(page)
            skip += len(page)

        assert skip > 3
        assert len({p.id for p in collected}) == await repo.count() == 7

    async def test_invisible_rows_do_not_shrink_the_page(
        self, db_session, policies, seed, household, monkeypatch
    ):
        monkeypatch.setattr(repository_base, "MAX_LIMIT", 5)
        for i in range(5):
            await seed.profile(Role.RESIDENT, full_name=f"Aaron {i}", status=ProfileStatus.INACTIVE)
        actor = await resolve_actor(db_session, household["staff"].id)

        visible = await ProfileRepository(db_session, actor, policies).list_visible_filtered(
            include_inactive=True, limit=3
        )

        result = await db_session.execute(
            select(Profile.id).where(Profile.status == ProfileStatus.ACTIVE)
        )
        active_ids = set(result.scalars().all())
        assert len(visible) == 3
        assert {p.id for p in visible} <= active_ids

    async def test_mark_all_read_covers_every_batch(self, db_session, policies, seed):
        family = await seed.profile(Role.FAMILY)
        await seed.add(*NotificationFactory.build_batch(5, user_id=family.id))
        repo = NotificationRepository(db_session, await resolve_actor(db_session, family.id), policies)

        assert await repo.mark_all_read() == 5
        assert await repo.list_mine(unread_only=True) == []


class TestWrites:
    async def test_denied_insert_is_not_persisted(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        repo = IncidentRepository(db_session, actor, policies)
        with pytest.raises(PolicyDeniedError):
            await repo.insert(IncidentFactory(reported_by=actor.id))
        assert await repo.count() == 0

    async def test_staff_cannot_delete_incidents(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["staff"].id)
        repo = IncidentRepository(db_session, actor, policies)
        incident = await repo.insert(IncidentFactory(reported_by=actor.id))
        with pytest.raises(PolicyDeniedError):
            await repo.remove(incident)

    async def test_chat_insert_requires_own_sender(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        repo = ChatMessageRepository(db_session, actor, policies)
        forged = ChatMessageFactory(sender_id=household["staff"].id, receiver_id=actor.id)
        with pytest.raises(PolicyDeniedError):
            await repo.insert(forged)

    async def test_family_link_lookup(self, db_session, policies, household):
        actor = await resolve_actor(db_session, household["family"].id)
        links = await FamilyLinkRepository(db_session, actor, policies).list_visible()
        assert [link.resident_profile_id for link in links] == [household["mine"].id]
