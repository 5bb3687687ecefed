"""Tests for chat API endpoints."""

from uuid import uuid4

from fastapi import status

from cinematch.models.message import ChatMessage
from tests.helpers.auth_helper import get_auth_headers
from tests.helpers.data_helper import BASE_TIME


class TestChatEndpoints:
    """Test cases for /api/v1/chats."""

    def test_list_rooms(self, client, matched_room):
        response = client.get("/api/v1/chats", headers=get_auth_headers("bob"))

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["total"] == 1
        room = data["rooms"][0]
        assert room["room_id"] == str(matched_room)
        assert room["other_user_id"] == "alice"
        assert room["other_display_name"] == "Alice"
        assert room["tmdb_id"] == 550
        assert room["is_active"] is True

    def test_list_rooms_requires_auth(self, client):
        assert client.get("/api/v1/chats").status_code == status.HTTP_401_UNAUTHORIZED

    def test_send_and_read_messages(self, client, matched_room):
        """Test a message round trip through the API."""
        sent = client.post(
            f"/api/v1/chats/{matched_room}/messages",
            json={"text": "  Saturday?  "},
            headers=get_auth_headers("alice"),
        )
        assert sent.status_code == status.HTTP_201_CREATED
        assert sent.json()["text"] == "Saturday?"
        assert sent.json()["sender_display_name"] == "Alice"

        history = client.get(
            f"/api/v1/chats/{matched_room}/messages", headers=get_auth_headers("bob")
        )
        assert history.status_code == status.HTTP_200_OK
        data = history.json()
        assert [m["text"] for m in data["messages"]] == ["Saturday?"]
        assert data["has_more"] is False
        assert data["next_before"] is None

    def test_history_paging(self, client, matched_room):
        for i in range(3):
            client.post(
                f"/api/v1/chats/{matched_room}/messages",
                json={"text": f"m{i}"},
                headers=get_auth_headers("alice"),
            )

        page = client.get(
            f"/api/v1/chats/{matched_room}/messages?take=2",
            headers=get_auth_headers("alice"),
        ).json()

        assert [m["text"] for m in page["messages"]] == ["m2", "m1"]
        assert page["has_more"] is True
        assert page["next_before"] is not None
        assert page["next_before_id"] == page["messages"][-1]["id"]

    def test_blank_message_is_bad_request(self, client, matched_room):
        response = client.post(
            f"/api/v1/chats/{matched_room}/messages",
            json={"text": "   "},
            headers=get_auth_headers("alice"),
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_outsider_is_forbidden(self, client, matched_room):
        headers = get_auth_headers("carol")

        read = client.get(f"/api/v1/chats/{matched_room}/messages", headers=headers)
        send = client.post(
            f"/api/v1/chats/{matched_room}/messages", json={"text": "hi"}, headers=headers
        )
        join = client.post(f"/api/v1/chats/{matched_room}/join", headers=headers)

        assert read.status_code == status.HTTP_403_FORBIDDEN
        assert send.status_code == status.HTTP_403_FORBIDDEN
        assert join.status_code == status.HTTP_403_FORBIDDEN

    def test_leave_and_join(self, client, matched_room):
        """Test leaving blocks sending until the member rejoins."""
        headers = get_auth_headers("alice")

        left = client.post(f"/api/v1/chats/{matched_room}/leave", headers=headers)
        assert left.status_code == status.HTTP_200_OK
        assert left.json()["is_active"] is False
        assert left.json()["left_at"] is not None

        blocked = client.post(
            f"/api/v1/chats/{matched_room}/messages", json={"text": "hi"}, headers=headers
        )
        assert blocked.status_code == status.HTTP_403_FORBIDDEN

        joined = client.post(f"/api/v1/chats/{matched_room}/join", headers=headers)
        assert joined.status_code == status.HTTP_200_OK
        assert joined.json()["is_active"] is True

    def test_unknown_room_is_forbidden(self, client, sample_users):
        response = client.post(
            f"/api/v1/chats/{uuid4()}/join", headers=get_auth_headers("alice")
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    def test_invalid_room_id(self, client, sample_users):
        response = client.get(
            "/api/v1/chats/not-a-uuid/messages", headers=get_auth_headers("alice")
        )

        assert response.status_code == 422

    def test_history_cursor_with_shared_timestamp(
        self, client, matched_room, test_session_factory
    ):
        """Test following the returned cursor reaches every message of a tie."""
        session = test_session_factory()
        try:
            for i in range(3):
                session.add(
                    ChatMessage(
                        room_id=matched_room,
                        sender_id="bob",
                        text=f"m{i}",
                        sent_at=BASE_TIME,
                    )
                )
            session.commit()
        finally:
            session.close()

        first = client.get(
            f"/api/v1/chats/{matched_room}/messages",
            params={"take": 2},
            headers=get_auth_headers("alice"),
        ).json()
        second = client.get(
            f"/api/v1/chats/{matched_room}/messages",
            params={
                "take": 2,
                "before": first["next_before"],
                "before_id": first["next_before_id"],
            },
            headers=get_auth_headers("alice"),
        ).json()

        assert [m["text"] for m in first["messages"]] == ["m2", "m1"]
        assert [m["text"] for m in second["messages"]] == ["m0"]
        assert second["has_more"] is False
