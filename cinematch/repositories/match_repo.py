"""Match request repository."""

from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple, cast

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from cinematch.core.logging import get_logger
from cinematch.models.match_request import MatchRequest
from cinematch.repositories.base_repo import BaseRepo

logger = get_logger(__name__)


class MatchRepo(BaseRepo):
    """Match request repository.

    Requests are append-only; there is no update or delete path.
    """

    def _create_request_implementation(
        self, session: Session, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> MatchRequest:
        """Implementation of request creation."""
        request = MatchRequest(
            requestor_id=requestor_id,
            target_user_id=target_user_id,
            tmdb_id=tmdb_id,
            created_at=datetime.now(timezone.utc),
        )
        session.add(request)
        session.flush()

        logger.info(
            f"Created match request: {requestor_id} -> {target_user_id} for movie {tmdb_id}"
        )
        return request

    def create_request(
        self,
        requestor_id: str,
        target_user_id: str,
        tmdb_id: int,
        session: Optional[Session] = None,
    ) -> MatchRequest:
        """Insert a directed request. Raises IntegrityError on a duplicate triple."""
        return cast(
            MatchRequest,
            self._execute_with_session(
                lambda s: self._create_request_implementation(
                    s, requestor_id, target_user_id, tmdb_id
                ),
                session=session,
                operation_name="create_request",
            ),
        )

    def _get_request_implementation(
        self, session: Session, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> Optional[MatchRequest]:
        """Implementation of single request lookup."""
        return cast(
            Optional[MatchRequest],
            (
                session.query(MatchRequest)
                .filter(
                    MatchRequest.requestor_id == requestor_id,
                    MatchRequest.target_user_id == target_user_id,
                    MatchRequest.tmdb_id == tmdb_id,
                )
                .one_or_none()
            ),
        )

    def get_request(
        self,
        requestor_id: str,
        target_user_id: str,
        tmdb_id: int,
        session: Optional[Session] = None,
    ) -> Optional[MatchRequest]:
        """Get the request for an exact ordered triple."""
        return cast(
            Optional[MatchRequest],
            self._execute_with_session(
                lambda s: self._get_request_implementation(
                    s, requestor_id, target_user_id, tmdb_id
                ),
                session=session,
                operation_name="get_request",
            ),
        )

    def record_request(
        self, requestor_id: str, target_user_id: str, tmdb_id: int
    ) -> Tuple[MatchRequest, bool]:
        """
        Record a request in its own committed transaction.

        Returns the stored row and whether this call created it. A duplicate
        of the same ordered triple, including one inserted concurrently by
        another worker, returns the existing row.
        """
        existing = self.get_request(requestor_id, target_user_id, tmdb_id)
        if existing is not None:
            logger.debug(
                f"Replayed match request {requestor_id} -> {target_user_id} ({tmdb_id})"
            )
            return existing, False

        try:
            return self.create_request(requestor_id, target_user_id, tmdb_id), True
        except IntegrityError:
            existing = self.get_request(requestor_id, target_user_id, tmdb_id)
            if existing is None:
                # Not a duplicate, e.g. an unknown user id
                raise
            logger.info(
                f"Concurrent duplicate request {requestor_id} -> {target_user_id} ({tmdb_id})"
            )
            return existing, False

    def _get_requests_involving_implementation(
        self, session: Session, user_id: str, other_user_ids: Iterable[str]
    ) -> List[MatchRequest]:
        """Implementation of requests lookup in both directions."""
        others = list(other_user_ids)
        if not others:
            return []

        return cast(
            List[MatchRequest],
            (
                session.query(MatchRequest)
                .filter(
                    or_(
                        and_(
                            MatchRequest.requestor_id == user_id,
                            MatchRequest.target_user_id.in_(others),
                        ),
                        and_(
                            MatchRequest.target_user_id == user_id,
                            MatchRequest.requestor_id.in_(others),
                        ),
                    )
                )
                .order_by(MatchRequest.created_at.asc(), MatchRequest.id.asc())
                .all()
            ),
        )

    def get_requests_involving(
        self,
        user_id: str,
        other_user_ids: Iterable[str],
        session: Optional[Session] = None,
    ) -> List[MatchRequest]:
        """Get requests between a user and any of the given users, either direction."""
        return cast(
            List[MatchRequest],
            self._execute_with_session(
                lambda s: self._get_requests_involving_implementation(
                    s, user_id, other_user_ids
                ),
                session=session,
                operation_name="get_requests_involving",
            ),
        )

    def count_requests(
        self,
        requestor_id: str,
        target_user_id: str,
        tmdb_id: int,
        session: Optional[Session] = None,
    ) -> int:
        """Count rows for an exact ordered triple."""
        return cast(
            int,
            self._execute_with_session(
                lambda s: s.query(MatchRequest)
                .filter(
                    MatchRequest.requestor_id == requestor_id,
                    MatchRequest.target_user_id == target_user_id,
                    MatchRequest.tmdb_id == tmdb_id,
                )
                .count(),
                session=session,
                operation_name="count_requests",
            ),
        )
