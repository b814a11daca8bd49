"""
Friend Service

Friend request lifecycle and the two-row friendship graph. Accepting a
request also materialises the private room of the new friends.
"""
import logging
from datetime import datetime
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .. import crud
from ..auth import normalize_username
from ..database import SessionLocal, transaction
from ..errors import AlreadyExists, FailedPrecondition, InvalidArgument, NotFound
from ..models import FriendRequest, FriendRequestStatus, Friendship, User, utcnow
from .rooms import ensure_private_room

logger = logging.getLogger(__name__)


def _load_parties(fr: FriendRequest) -> FriendRequest:
    # touch relationships so they survive the session closing
    _ = (fr.sender, fr.receiver)
    return fr


def _add_friendship(db: Session, user: User, friend: User, created_at: datetime) -> None:
    if crud.friendship_exists(db, user.id, friend.id):
        return
    db.add(Friendship(user_id=user.id, friend_id=friend.id, created_at=created_at))


class FriendService:
    """Social graph engine."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def send_friend_request(self, requester_id: int, target_username: str) -> FriendRequest:
        """
        Open a PENDING request from ``requester_id`` to ``target_username``.

        Any earlier request in the same direction blocks a new one, declined
        ones included.
        """
        if (requester_id or 0) <= 0 or not (target_username or "").strip():
            raise InvalidArgument("Missing data")

        try:
            with transaction(self.session_factory) as db:
                sender = crud.get_user(db, requester_id)
                receiver = crud.get_user_by_username(db, normalize_username(target_username))
                if not sender or not receiver:
                    raise NotFound("User not found")
                if sender.id == receiver.id:
                    raise InvalidArgument("Cannot add yourself")
                if crud.friendship_exists(db, sender.id, receiver.id):
                    raise AlreadyExists("Already friends")
                if crud.find_friend_request(db, sender.id, receiver.id):
                    raise AlreadyExists("Request already sent")

                fr = FriendRequest(
                    sender_id=sender.id,
                    receiver_id=receiver.id,
                    status=FriendRequestStatus.PENDING,
                )
                db.add(fr)
                db.flush()
                _load_parties(fr)
        except IntegrityError:
            raise AlreadyExists("Request already sent")

        logger.info("Friend request %s: %s -> %s", fr.id, fr.sender_id, fr.receiver_id)
        return fr

    def respond_friend_request(self, request_id: int, accept: bool) -> FriendRequest:
        """
        Accept or decline a PENDING request.

        Acceptance writes both friendship rows and the private room in the
        same transaction as the status change.
        """
        try:
            return self._respond_once(request_id, accept)
        except IntegrityError:
            # the reverse request was accepted concurrently
            logger.info("Conflict accepting friend request %s, retrying", request_id)
            return self._respond_once(request_id, accept)

    def _respond_once(self, request_id: int, accept: bool) -> FriendRequest:
        with transaction(self.session_factory) as db:
            fr = crud.get_friend_request(db, request_id)
            if not fr:
                raise NotFound("Request not found")
            if fr.status != FriendRequestStatus.PENDING:
                raise FailedPrecondition("Request already handled")

            # conditional update: of two concurrent responses only one sees PENDING
            now = utcnow()
            claimed = (
                db.query(FriendRequest)
                .filter_by(id=fr.id, status=FriendRequestStatus.PENDING)
                .update(
                    {
                        "status": FriendRequestStatus.ACCEPTED if accept else FriendRequestStatus.DECLINED,
                        "responded_at": now,
                    },
                    synchronize_session=False,
                )
            )
            if not claimed:
                raise FailedPrecondition("Request already handled")
            db.refresh(fr)

            if fr.status == FriendRequestStatus.ACCEPTED:
                _add_friendship(db, fr.sender, fr.receiver, now)
                _add_friendship(db, fr.receiver, fr.sender, now)
                db.flush()
                ensure_private_room(db, fr.sender, fr.receiver)

            db.flush()
            _load_parties(fr)

        logger.info("Friend request %s %s", fr.id, fr.status.value.lower())
        return fr

    def list_incoming_requests(self, user_id: int) -> List[FriendRequest]:
        with transaction(self.session_factory) as db:
            return [_load_parties(fr) for fr in crud.list_pending_requests(db, user_id)]

    def list_friends(self, user_id: int) -> List[User]:
        with transaction(self.session_factory) as db:
            return [f.friend for f in crud.list_friendships(db, user_id)]

    def remove_friend(self, user_id: int, friend_id: int) -> None:
        """Drop both directions of a friendship. The private room is kept."""
        with transaction(self.session_factory) as db:
            removed = 0
            for owner, other in ((user_id, friend_id), (friend_id, user_id)):
                row = crud.get_friendship(db, owner, other)
                if row is not None:
                    db.delete(row)
                    removed += 1
        if removed:
            logger.info("Users %s and %s are no longer friends", user_id, friend_id)
