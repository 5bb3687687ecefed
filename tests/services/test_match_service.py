"""Tests for MatchService."""

from unittest.mock import Mock, patch

import pytest

from cinematch.core.enums import MatchStatus, NotificationType
from cinematch.core.errors import NotFoundError, ValidationError
from cinematch.services.match_service import MAX_CANDIDATE_TAKE, MatchService


class TestRequestMatch:
    """Test cases for the request/acceptance handshake."""

    def test_first_request_is_pending(self, match_service: MatchService, sample_users):
        """Test a one-sided request does not match."""
        result = match_service.request_match("alice", "bob", 550)

        assert result.matched is False
        assert result.room_id is None

    def test_reciprocal_request_creates_room(
        self, match_service: MatchService, chat_repo, sample_users
    ):
        """Test the second side of the handshake opens a shared room."""
        match_service.request_match("alice", "bob", 550)
        result = match_service.request_match("bob", "alice", 550)

        assert result.matched is True
        assert result.room_id is not None
        room = chat_repo.get_room_by_id(result.room_id)
        assert room.tmdb_id == 550
        assert chat_repo.get_active_member_ids(result.room_id) == ["alice", "bob"]

    def test_reverse_order_yields_same_pair_room(
        self, match_service: MatchService, chat_repo, sample_users
    ):
        """Test whoever requests first, the pair ends up in the pair's room."""
        match_service.request_match("bob", "alice", 550)
        result = match_service.request_match("alice", "bob", 550)

        assert result.matched is True
        assert chat_repo.get_room_for_pair("alice", "bob").id == result.room_id

    def test_duplicate_request_is_idempotent(
        self, match_service: MatchService, match_repo, notifier, sample_users
    ):
        """Test replaying a request stores one row and notifies once."""
        first = match_service.request_match("alice", "bob", 550)
        second = match_service.request_match("alice", "bob", 550)

        assert first.matched is False
        assert second.matched is False
        assert match_repo.count_requests("alice", "bob", 550) == 1
        assert len(notifier.of_type(NotificationType.MATCH_REQUEST.value)) == 1

    def test_replay_after_match_returns_same_room(
        self, match_service: MatchService, notifier, sample_users
    ):
        """Test replaying either side after the match returns the existing room."""
        match_service.request_match("alice", "bob", 550)
        matched = match_service.request_match("bob", "alice", 550)

        replay_a = match_service.request_match("alice", "bob", 550)
        replay_b = match_service.request_match("bob", "alice", 550)

        assert replay_a.matched is True and replay_a.room_id == matched.room_id
        assert replay_b.matched is True and replay_b.room_id == matched.room_id
        assert len(notifier.of_type(NotificationType.MUTUAL_MATCH.value)) == 2

    def test_match_on_other_movie_reuses_room(
        self, match_service: MatchService, chat_repo, sample_users
    ):
        """Test a second movie for the same pair keeps the original room."""
        match_service.request_match("alice", "bob", 550)
        first = match_service.request_match("bob", "alice", 550)

        match_service.request_match("bob", "alice", 680)
        second = match_service.request_match("alice", "bob", 680)

        assert second.matched is True
        assert second.room_id == first.room_id
        assert chat_repo.get_room_by_id(first.room_id).tmdb_id == 550
        assert len(chat_repo.list_rooms_for("alice")) == 1

    def test_requests_for_different_movies_do_not_match(
        self, match_service: MatchService, sample_users
    ):
        match_service.request_match("alice", "bob", 550)
        result = match_service.request_match("bob", "alice", 680)

        assert result.matched is False

    def test_self_match_rejected(self, match_service: MatchService, match_repo, sample_users):
        """Test matching yourself fails before touching storage."""
        with pytest.raises(ValidationError, match="yourself"):
            match_service.request_match("alice", "alice", 550)

        assert match_repo.count_requests("alice", "alice", 550) == 0

    @pytest.mark.parametrize("tmdb_id", [0, -5, True, "550", None])
    def test_invalid_tmdb_id_rejected(
        self, match_service: MatchService, sample_users, tmdb_id
    ):
        with pytest.raises(ValidationError, match="TmdbId"):
            match_service.request_match("alice", "bob", tmdb_id)

    @pytest.mark.parametrize("target", ["", "   "])
    def test_empty_target_rejected(self, match_service: MatchService, sample_users, target):
        with pytest.raises(ValidationError):
            match_service.request_match("alice", target, 550)

    def test_unknown_target_raises_not_found(
        self, match_service: MatchService, sample_users
    ):
        with pytest.raises(NotFoundError):
            match_service.request_match("alice", "nobody", 550)

    def test_requestor_without_profile_raises_not_found(
        self, match_service: MatchService, match_repo, sample_users
    ):
        """Test a caller with no user row gets NotFoundError and stores nothing."""
        with pytest.raises(NotFoundError, match="User profile not found"):
            match_service.request_match("ghost", "alice", 550)

        assert match_repo.count_requests("ghost", "alice", 550) == 0


class TestMatchNotifications:
    """Test cases for notifications sent by the handshake."""

    def test_match_request_notifies_target(
        self, match_service: MatchService, notifier, sample_users
    ):
        """Test the target hears about a new request."""
        match_service.request_match("alice", "bob", 550)

        sent = notifier.of_type(NotificationType.MATCH_REQUEST.value)
        assert len(sent) == 1
        recipient, payload = sent[0]
        assert recipient == "bob"
        assert payload["user"] == {"id": "alice", "displayName": "Alice"}
        assert payload["tmdbId"] == 550
        assert "timestamp" in payload

    def test_mutual_match_notifies_both_users(
        self, match_service: MatchService, notifier, sample_users
    ):
        """Test both users learn about the room, each seeing the other."""
        match_service.request_match("alice", "bob", 550)
        result = match_service.request_match("bob", "alice", 550)

        sent = dict(notifier.of_type(NotificationType.MUTUAL_MATCH.value))
        assert set(sent) == {"alice", "bob"}
        assert sent["alice"]["user"]["id"] == "bob"
        assert sent["bob"]["user"]["displayName"] == "Alice"
        assert sent["alice"]["roomId"] == str(result.room_id)
        assert sent["bob"]["tmdbId"] == 550

    def test_match_on_second_movie_notifies_with_existing_room(
        self, match_service: MatchService, notifier, matched_room
    ):
        """Test a new movie match for an already matched pair is still announced."""
        match_service.request_match("bob", "alice", 680)
        match_service.request_match("alice", "bob", 680)

        sent = [
            (user_id, payload)
            for user_id, payload in notifier.of_type(NotificationType.MUTUAL_MATCH.value)
            if payload["tmdbId"] == 680
        ]
        assert sorted(user_id for user_id, _ in sent) == ["alice", "bob"]
        assert {payload["roomId"] for _, payload in sent} == {str(matched_room)}

    def test_notifier_failure_does_not_fail_request(
        self,
        test_session_factory,
        match_repo,
        chat_repo,
        like_repo,
        user_repo,
        sample_users,
    ):
        """Test delivery problems never undo a committed match."""
        failing = Mock()
        failing.notify.side_effect = RuntimeError("socket gone")
        service = MatchService(
            test_session_factory,
            match_repo,
            chat_repo,
            like_repo,
            user_repo,
            notifier=failing,
        )

        with patch("cinematch.services.match_service.logger") as mock_logger:
            service.request_match("alice", "bob", 550)
            result = service.request_match("bob", "alice", 550)

        assert result.matched is True
        assert chat_repo.get_room_for_pair("alice", "bob") is not None
        assert mock_logger.warning.call_count == 2

    def test_without_notifier(
        self, test_session_factory, match_repo, chat_repo, like_repo, user_repo, sample_users
    ):
        service = MatchService(
            test_session_factory, match_repo, chat_repo, like_repo, user_repo
        )

        service.request_match("alice", "bob", 550)
        assert service.request_match("bob", "alice", 550).matched is True


class TestGetCandidates:
    """Test cases for candidate discovery."""

    def test_ranked_by_overlap_then_recency_then_id(
        self, match_service: MatchService, sample_users, add_like
    ):
        """Test the ranking keys in priority order."""
        for tmdb_id in (1, 2, 3):
            add_like("alice", tmdb_id)
        # bob: two shared movies
        add_like("bob", 1, minute=1)
        add_like("bob", 2, minute=2)
        # carol and dave: one shared each, carol's more recent
        add_like("carol", 3, minute=9)
        add_like("dave", 1, minute=5)

        candidates = match_service.get_candidates("alice")

        assert [c.user_id for c in candidates] == ["bob", "carol", "dave"]
        assert candidates[0].overlap_count == 2
        assert candidates[0].shared_movie_ids == [1, 2]
        assert candidates[0].display_name == "Bob"

    def test_equal_overlap_and_recency_sorted_by_id(
        self, match_service: MatchService, sample_users, add_like
    ):
        add_like("alice", 1)
        add_like("dave", 1, minute=3)
        add_like("bob", 1, minute=3)

        candidates = match_service.get_candidates("alice")

        assert [c.user_id for c in candidates] == ["bob", "dave"]

    def test_excludes_self_and_users_without_overlap(
        self, match_service: MatchService, sample_users, add_like
    ):
        add_like("alice", 1)
        add_like("bob", 2)

        assert match_service.get_candidates("alice") == []

    def test_no_likes_means_no_candidates(self, match_service: MatchService, sample_users):
        assert match_service.get_candidates("alice") == []

    def test_take_limits_results(self, match_service: MatchService, sample_users, add_like):
        add_like("alice", 1)
        for user_id in ("bob", "carol", "dave"):
            add_like(user_id, 1)

        assert len(match_service.get_candidates("alice", take=2)) == 2
        assert len(match_service.get_candidates("alice", take=0)) == 1

    def test_take_is_capped(
        self, match_service: MatchService, user_repo, sample_users, add_like
    ):
        add_like("alice", 1)
        for i in range(MAX_CANDIDATE_TAKE + 5):
            user_repo.create_user(f"user{i:03d}")
            add_like(f"user{i:03d}", 1)

        candidates = match_service.get_candidates("alice", take=1000)

        assert len(candidates) == MAX_CANDIDATE_TAKE

    def test_candidates_carry_match_status(
        self, match_service: MatchService, sample_users, add_like
    ):
        """Test each candidate reflects the pair's handshake state."""
        add_like("alice", 1)
        for user_id in ("bob", "carol", "dave"):
            add_like(user_id, 1)
        match_service.request_match("alice", "bob", 1)
        match_service.request_match("carol", "alice", 1)
        match_service.request_match("alice", "dave", 1)
        match_service.request_match("dave", "alice", 1)

        by_id = {c.user_id: c for c in match_service.get_candidates("alice")}

        assert by_id["bob"].status == MatchStatus.PENDING_SENT
        assert by_id["carol"].status == MatchStatus.PENDING_RECEIVED
        assert by_id["dave"].status == MatchStatus.MATCHED
        assert by_id["dave"].room_id is not None
        assert by_id["bob"].room_id is None


class TestGetMatchStatus:
    """Test cases for pairwise status."""

    def test_status_none(self, match_service: MatchService, sample_users, add_like):
        add_like("alice", 1)
        add_like("alice", 2)
        add_like("bob", 2)

        view = match_service.get_match_status("alice", "bob")

        assert view.status == MatchStatus.NONE
        assert view.can_match is True
        assert view.request_sent_at is None
        assert view.shared_movie_ids == [2]

    def test_status_pending_sent(self, match_service: MatchService, sample_users):
        match_service.request_match("alice", "bob", 550)

        view = match_service.get_match_status("alice", "bob")

        assert view.status == MatchStatus.PENDING_SENT
        assert view.can_match is False
        assert view.request_sent_at is not None

    def test_status_pending_received(self, match_service: MatchService, sample_users):
        match_service.request_match("bob", "alice", 550)

        view = match_service.get_match_status("alice", "bob")

        assert view.status == MatchStatus.PENDING_RECEIVED
        assert view.can_match is True
        assert view.request_sent_at is not None

    def test_status_matched(self, match_service: MatchService, matched_room):
        view = match_service.get_match_status("bob", "alice")

        assert view.status == MatchStatus.MATCHED
        assert view.can_match is False
        assert view.room_id == matched_room

    def test_status_with_self_rejected(self, match_service: MatchService, sample_users):
        with pytest.raises(ValidationError):
            match_service.get_match_status("alice", "alice")

    def test_status_with_empty_target_rejected(
        self, match_service: MatchService, sample_users
    ):
        with pytest.raises(ValidationError):
            match_service.get_match_status("alice", " ")


class TestGetActiveMatches:
    """Test cases for listing matched users with open rooms."""

    def _match(self, match_service: MatchService, user_a: str, user_b: str, tmdb_id: int):
        match_service.request_match(user_a, user_b, tmdb_id)
        return match_service.request_match(user_b, user_a, tmdb_id).room_id

    def test_no_matches(self, match_service: MatchService, sample_users):
        assert match_service.get_active_matches("alice") == []

    def test_pending_request_is_not_active(self, match_service: MatchService, sample_users):
        match_service.request_match("alice", "bob", 550)

        assert match_service.get_active_matches("alice") == []

    def test_match_carries_room_and_shared_movies(
        self, match_service: MatchService, matched_room, add_like
    ):
        add_like("alice", 550)
        add_like("alice", 603)
        add_like("bob", 550)
        add_like("bob", 13)

        matches = match_service.get_active_matches("alice")

        assert len(matches) == 1
        match = matches[0]
        assert match.user_id == "bob"
        assert match.display_name == "Bob"
        assert match.room_id == matched_room
        assert match.matched_at is not None
        assert match.shared_movie_ids == [550]
        assert match.last_message_preview is None

    def test_left_room_is_excluded(
        self, match_service: MatchService, chat_service, matched_room
    ):
        chat_service.leave(matched_room, "alice")

        assert match_service.get_active_matches("alice") == []

    def test_stays_listed_when_other_user_left(
        self, match_service: MatchService, chat_service, matched_room
    ):
        """Test only the caller's own membership decides visibility."""
        chat_service.leave(matched_room, "bob")

        matches = match_service.get_active_matches("alice")

        assert [m.room_id for m in matches] == [matched_room]

    def test_sorted_by_latest_activity(
        self, match_service: MatchService, chat_service, sample_users
    ):
        """Test rooms with recent messages come first, then newer matches."""
        bob_room = self._match(match_service, "alice", "bob", 550)
        carol_room = self._match(match_service, "alice", "carol", 550)
        dave_room = self._match(match_service, "alice", "dave", 550)

        chat_service.append(bob_room, "bob", "Tonight?")

        matches = match_service.get_active_matches("alice")

        assert [m.room_id for m in matches] == [bob_room, dave_room, carol_room]
        assert matches[0].last_message_preview == "Tonight?"
        assert matches[0].last_message_at is not None
