"""Integration tests for chat and notifications, including change publishing."""

from __future__ import annotations

import uuid

from redis.exceptions import ConnectionError as RedisConnectionError

from carehome.services.change_feed import chat_channel, notification_channel


async def send(client, sender, receiver, content="Hello"):
    return await client.post(
        "/api/chat",
        json={"receiver_id": str(receiver.id), "content": content},
        headers=sender.headers,
    )


class TestChat:
    async def test_send_publishes_after_commit(self, client, people, mock_redis):
        response = await send(client, people.family, people.staff)

        assert response.status_code == 201
        assert response.json()["sender_id"] == str(people.family.id)
        channel, change = mock_redis.publish.call_args.args
        assert channel == chat_channel(people.family.id, people.staff.id, "test")
        assert change["table"] == "chat_messages"
        assert change["type"] == "INSERT"

    async def test_publish_failure_does_not_fail_send(self, client, people, mock_redis):
        mock_redis.publish.side_effect = RedisConnectionError("down")

        response = await send(client, people.family, people.staff)

        assert response.status_code == 201
        conversation = await client.get(f"/api/chat/{people.family.id}", headers=people.staff.headers)
        assert len(conversation.json()) == 1

    async def test_cannot_message_self(self, client, people):
        response = await send(client, people.staff, people.staff)
        assert response.status_code == 400

    async def test_unknown_receiver(self, client, people):
        response = await client.post(
            "/api/chat",
            json={"receiver_id": str(uuid.uuid4()), "content": "Hi"},
            headers=people.staff.headers,
        )
        assert response.status_code == 404

    async def test_conversation_visible_to_participants_only(self, client, people):
        await send(client, people.family, people.staff, "First")
        await send(client, people.staff, people.family, "Second")

        mine = await client.get(f"/api/chat/{people.staff.id}", headers=people.family.headers)
        outsider = await client.get(f"/api/chat/{people.staff.id}", headers=people.admin.headers)

        assert [m["content"] for m in mine.json()] == ["First", "Second"]
        assert outsider.json() == []

    async def test_unread_count_and_mark_read(self, client, people, mock_redis):
        sent = await send(client, people.family, people.staff)
        message_id = sent.json()["id"]

        unread = await client.get("/api/chat/unread", headers=people.staff.headers)
        assert unread.json() == {"unread": 1}

        by_sender = await client.post(
            f"/api/chat/messages/{message_id}/read", headers=people.family.headers
        )
        assert by_sender.status_code == 403

        by_receiver = await client.post(
            f"/api/chat/messages/{message_id}/read", headers=people.staff.headers
        )
        assert by_receiver.json()["read"] is True
        assert mock_redis.publish.call_args.args[1]["type"] == "UPDATE"

        unread = await client.get("/api/chat/unread", headers=people.staff.headers)
        assert unread.json() == {"unread": 0}

    async def test_outsider_cannot_mark_read(self, client, people):
        sent = await send(client, people.family, people.staff)
        response = await client.post(
            f"/api/chat/messages/{sent.json()['id']}/read", headers=people.admin.headers
        )
        assert response.status_code == 404


class TestNotifications:
    async def test_staff_notifies_family(self, client, people, mock_redis):
        response = await client.post(
            "/api/notifications",
            json={"user_id": str(people.family.id), "title": "Visit", "content": "See you at 3"},
            headers=people.staff.headers,
        )

        assert response.status_code == 201
        channel, _ = mock_redis.publish.call_args.args
        assert channel == notification_channel(people.family.id, "test")

        inbox = await client.get("/api/notifications", headers=people.family.headers)
        assert [n["title"] for n in inbox.json()] == ["Visit"]

        other_inbox = await client.get("/api/notifications", headers=people.staff.headers)
        assert other_inbox.json() == []

    async def test_family_cannot_send_notifications(self, client, people):
        response = await client.post(
            "/api/notifications",
            json={"user_id": str(people.staff.id), "title": "Hi", "content": "Hello"},
            headers=people.family.headers,
        )
        assert response.status_code == 403

    async def test_mark_read(self, client, people):
        for title in ("One", "Two"):
            await client.post(
                "/api/notifications",
                json={"user_id": str(people.family.id), "title": title, "content": "x"},
                headers=people.staff.headers,
            )
        inbox = await client.get("/api/notifications", headers=people.family.headers)
        first_id = inbox.json()[0]["id"]

        single = await client.post(
            f"/api/notifications/{first_id}/read", headers=people.family.headers
        )
        assert single.json()["read"] is True

        remaining = await client.post("/api/notifications/read-all", headers=people.family.headers)
        assert remaining.json() == {"updated": 1}

        unread = await client.get(
            "/api/notifications", params={"unread_only": True}, headers=people.family.headers
        )
        assert unread.json() == []

    async def test_cannot_read_someone_elses_notification(self, client, people):
        created = await client.post(
            "/api/notifications",
            json={"user_id": str(people.family.id), "title": "Private", "content": "x"},
            headers=people.staff.headers,
        )
        response = await client.post(
            f"/api/notifications/{created.json()['id']}/read", headers=people.staff.headers
        )
        assert response.status_code == 404
