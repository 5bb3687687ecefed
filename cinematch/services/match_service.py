"""Match service: candidate discovery and the request/acceptance handshake."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from cinematch.core.enums import MatchStatus, NotificationType
from cinematch.core.errors import ConflictError, NotFoundError, ValidationError
from cinematch.core.logging import get_logger
from cinematch.core.observability.metrics import log_counter_increment
from cinematch.models.chat import ChatRoom
from cinematch.models.match_request import MatchRequest
from cinematch.repositories.chat_repo import ChatRepo
from cinematch.repositories.like_repo import LikeRepo
from cinematch.repositories.match_repo import MatchRepo
from cinematch.repositories.transaction import transaction_scope
from cinematch.repositories.user_repo import UserRepo

logger = get_logger(__name__)

# Business rules constants
DEFAULT_CANDIDATE_TAKE = 20
MAX_CANDIDATE_TAKE = 100


class Notifier(Protocol):
    """Anything that can push a payload to a user without raising."""

    def notify(self, user_id: str, payload: Dict[str, Any]) -> Any:
        ...


@dataclass
class MatchResult:
    matched: bool
    room_id: Optional[UUID] = None


@dataclass
class Candidate:
    user_id: str
    display_name: str
    overlap_count: int
    shared_movie_ids: List[int]
    status: MatchStatus = MatchStatus.NONE
    room_id: Optional[UUID] = None


@dataclass
class ActiveMatch:
    """A matched user the caller still has an open room with."""

    user_id: str
    display_name: str
    room_id: UUID
    matched_at: datetime
    last_message_preview: Optional[str] = None
    last_message_at: Optional[datetime] = None
    shared_movie_ids: List[int] = field(default_factory=list)


@dataclass
class MatchStatusView:
    status: MatchStatus
    can_match: bool
    request_sent_at: Optional[datetime] = None
    room_id: Optional[UUID] = None
    shared_movie_ids: List[int] = field(default_factory=list)


class MatchService:
    """Match service for business logic."""

    def __init__(
        self,
        session_factory,
        match_repo: MatchRepo,
        chat_repo: ChatRepo,
        like_repo: LikeRepo,
        user_repo: UserRepo,
        notifier: Optional[Notifier] = None,
    ):
        """Initialize the match service."""
        self.session_factory = session_factory
        self.match_repo = match_repo
        self.chat_repo = chat_repo
        self.like_repo = like_repo
        self.user_repo = user_repo
        self.notifier = notifier

    def get_candidates(
        self, user_id: str, take: int = DEFAULT_CANDIDATE_TAKE
    ) -> List[Candidate]:
        """Rank other users by how many liked movies they share with ``user_id``."""
        take = max(1, min(take, MAX_CANDIDATE_TAKE))
        logger.debug(f"Getting up to {take} candidates for user {user_id}")

        my_likes = self.like_repo.get_liked_item_ids(user_id)
        if not my_likes:
            return []

        likers = self.like_repo.get_likers(my_likes, exclude_user_id=user_id)

        # Stable sorts: overlap desc, then most recent shared like desc, then id asc
        ranked = sorted(likers.items(), key=lambda item: item[0])
        ranked.sort(key=lambda item: max(like.created_at for like in item[1]), reverse=True)
        ranked.sort(key=lambda item: len(item[1]), reverse=True)
        ranked = ranked[:take]

        candidate_ids = [candidate_id for candidate_id, _ in ranked]
        names = self.user_repo.get_display_names(candidate_ids)
        relations = self._resolve_relations(user_id, candidate_ids)

        candidates = []
        for candidate_id, likes in ranked:
            status, room_id = relations[candidate_id]
            candidates.append(
                Candidate(
                    user_id=candidate_id,
                    display_name=names[candidate_id],
                    overlap_count=len(likes),
                    shared_movie_ids=sorted(like.tmdb_id for like in likes),
                    status=status,
                    room_id=room_id,
                )
            )
        return candidates

    def request_match(
        self, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> MatchResult:
        """
        Record a directed match request and complete the handshake if reciprocal.

        The request is committed before the reciprocal check, so of two
        opposite requests racing each other at least one sees the other.
        Both may then try to create the room; the unique pair key lets only
        one commit and the other adopts the winner's room.
        """
        self._validate_request(requestor_id, target_user_id, tmdb_id)
        logger.info(
            f"Match request {requestor_id} -> {target_user_id} for movie {tmdb_id}"
        )

        if self.user_repo.get_user_by_id(requestor_id) is None:
            raise NotFoundError("User profile not found")
        if self.user_repo.get_user_by_id(target_user_id) is None:
            raise NotFoundError(f"User {target_user_id} not found")

        _, created = self.match_repo.record_request(
            requestor_id, target_user_id, tmdb_id
        )

        reciprocal = self.match_repo.get_request(target_user_id, requestor_id, tmdb_id)
        if reciprocal is None:
            if created:
                log_counter_increment("match_requests_total", labels={"result": "pending"})
                self._notify_match_request(requestor_id, target_user_id, tmdb_id)
            return MatchResult(matched=False, room_id=None)

        room, room_created = self._ensure_room(requestor_id, target_user_id, tmdb_id)

        # Racing callers share a room created for this movie; only its creator announces it
        if room_created or (created and room.tmdb_id != tmdb_id):
            log_counter_increment("match_requests_total", labels={"result": "matched"})
            self._notify_mutual_match(requestor_id, target_user_id, tmdb_id, room.id)
        return MatchResult(matched=True, room_id=room.id)

    def get_active_matches(self, user_id: str) -> List[ActiveMatch]:
        """
        List the caller's matched users whose room the caller has not left.

        A room stays listed when only the other user left it. Most recent
        conversation first; rooms without messages sort by match time.
        """
        rooms = [r for r in self.chat_repo.list_rooms_for(user_id) if r.is_active]
        if not rooms:
            return []

        likers = self.like_repo.get_likers(
            self.like_repo.get_liked_item_ids(user_id), exclude_user_id=user_id
        )

        return [
            ActiveMatch(
                user_id=room.other_user_id,
                display_name=room.other_display_name,
                room_id=room.room_id,
                matched_at=room.created_at,
                last_message_preview=room.last_message_preview,
                last_message_at=room.last_message_at,
                shared_movie_ids=sorted(
                    like.tmdb_id for like in likers.get(room.other_user_id, [])
                ),
            )
            for room in rooms
        ]

    def get_match_status(self, user_id: str, target_user_id: str) -> MatchStatusView:
        """Get the relationship between a user and one specific other user."""
        if not target_user_id or not target_user_id.strip():
            raise ValidationError("Target user id is required")
        if user_id == target_user_id:
            raise ValidationError("Cannot check match status with yourself")

        requests = self.match_repo.get_requests_involving(user_id, [target_user_id])
        room_id = self.chat_repo.get_rooms_with(user_id, [target_user_id]).get(
            target_user_id
        )
        status = self._status_from(user_id, requests, room_id)

        request_sent_at = None
        if status == MatchStatus.PENDING_SENT:
            request_sent_at = min(
                r.created_at for r in requests if r.requestor_id == user_id
            )
        elif status == MatchStatus.PENDING_RECEIVED:
            request_sent_at = min(
                r.created_at for r in requests if r.requestor_id == target_user_id
            )

        shared = self.like_repo.get_liked_item_ids(
            user_id
        ) & self.like_repo.get_liked_item_ids(target_user_id)

        return MatchStatusView(
            status=status,
            can_match=status not in (MatchStatus.PENDING_SENT, MatchStatus.MATCHED),
            request_sent_at=request_sent_at,
            room_id=room_id,
            shared_movie_ids=sorted(shared),
        )

    def _validate_request(
        self, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> None:
        """Validate a match request according to business rules."""
        if not requestor_id or not target_user_id or not target_user_id.strip():
            raise ValidationError("Both requestor and target user ids are required")

        if requestor_id == target_user_id:
            raise ValidationError("Cannot match with yourself")

        if isinstance(tmdb_id, bool) or not isinstance(tmdb_id, int) or tmdb_id <= 0:
            raise ValidationError("TmdbId must be a positive integer")

    def _ensure_room(
        self, user_a: str, user_b: str, tmdb_id: int
    ) -> Tuple[ChatRoom, bool]:
        """Return the pair's room and whether this call created it."""
        try:
            with transaction_scope(self.session_factory) as session:
                room = self.chat_repo.get_room_for_pair(user_a, user_b, session=session)
                if room is not None:
                    return room, False
                room = self.chat_repo.create_room_with_members(
                    user_a, user_b, tmdb_id, session=session
                )
        except ConflictError:
            logger.info(f"Room for {user_a} and {user_b} created concurrently, re-reading")
            winner = self.chat_repo.get_room_for_pair(user_a, user_b)
            if winner is None:
                raise
            return winner, False

        log_counter_increment("chat_rooms_created_total")
        return room, True

    def _resolve_relations(
        self, user_id: str, other_ids: List[str]
    ) -> Dict[str, Tuple[MatchStatus, Optional[UUID]]]:
        """Resolve status and shared room for many users at once."""
        if not other_ids:
            return {}

        rooms = self.chat_repo.get_rooms_with(user_id, other_ids)
        by_other: Dict[str, List[MatchRequest]] = {other_id: [] for other_id in other_ids}
        for request in self.match_repo.get_requests_involving(user_id, other_ids):
            other_id = (
                request.target_user_id
                if request.requestor_id == user_id
                else request.requestor_id
            )
            by_other[other_id].append(request)

        return {
            other_id: (
                self._status_from(user_id, by_other[other_id], rooms.get(other_id)),
                rooms.get(other_id),
            )
            for other_id in other_ids
        }

    @staticmethod
    def _status_from(
        user_id: str, requests: List[MatchRequest], room_id: Optional[UUID]
    ) -> MatchStatus:
        if room_id is not None:
            return MatchStatus.MATCHED
        if any(r.requestor_id == user_id for r in requests):
            return MatchStatus.PENDING_SENT
        if requests:
            return MatchStatus.PENDING_RECEIVED
        return MatchStatus.NONE

    def _notify_match_request(
        self, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> None:
        """Tell the target someone wants to match. Never raises."""
        if self.notifier is None:
            return
        try:
            payload = {
                "type": NotificationType.MATCH_REQUEST.value,
                "user": {
                    "id": requestor_id,
                    "displayName": self.user_repo.resolve(requestor_id),
                },
                "tmdbId": tmdb_id,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
            self.notifier.notify(target_user_id, payload)
        except Exception as e:
            logger.warning(f"Failed to send match request notification: {e}")

    def _notify_mutual_match(
        self, user_a: str, user_b: str, tmdb_id: int, room_id: UUID
    ) -> None:
        """Tell both users their room is ready. Never raises."""
        if self.notifier is None:
            return
        try:
            names = self.user_repo.get_display_names([user_a, user_b])
            timestamp = datetime.now(timezone.utc).isoformat()
            for recipient, other in ((user_a, user_b), (user_b, user_a)):
                payload = {
                    "type": NotificationType.MUTUAL_MATCH.value,
                    "roomId": str(room_id),
                    "user": {"id": other, "displayName": names[other]},
                    "tmdbId": tmdb_id,
                    "timestamp": timestamp,
                }
                self.notifier.notify(recipient, payload)
        except Exception as e:
            logger.warning(f"Failed to send mutual match notifications: {e}")
