"""
Membership Service

Role-gated roster changes for group rooms.

    OWNER  may add, remove and promote
    ADMIN  may add and remove
    MEMBER may only read

The owner can never be removed. Promotion moves MEMBER to ADMIN and is a
no-op for anyone already above MEMBER.
"""
import logging
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .. import crud
from ..database import SessionLocal, transaction
from ..errors import AlreadyExists, InvalidArgument, NotFound, PermissionDenied
from ..models import ChatRoom, ChatRoomMembership, ChatRoomType, MembershipRole
from .rooms import RoomSummary, summarize
from .users import require_user

logger = logging.getLogger(__name__)

MANAGERS = (MembershipRole.OWNER, MembershipRole.ADMIN)


def _require_room(db: Session, chat_room_id: int) -> ChatRoom:
    room = crud.get_chat_room(db, chat_room_id)
    if not room:
        raise NotFound("Chat room not found")
    return room


def _require_group(db: Session, chat_room_id: int) -> ChatRoom:
    room = _require_room(db, chat_room_id)
    if room.room_type != ChatRoomType.GROUP:
        raise InvalidArgument("Not a group chat")
    return room


def _require_role(db: Session, room: ChatRoom, requester_id: int, allowed, detail: str) -> None:
    requester = require_user(db, requester_id, "Requester")
    membership = crud.get_membership(db, room.id, requester.id)
    if membership is None or membership.role not in allowed:
        raise PermissionDenied(detail)


class MembershipService:
    """Membership governor for group rooms."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def add_member(self, chat_room_id: int, requester_id: int, user_id: int) -> None:
        try:
            with transaction(self.session_factory) as db:
                room = _require_group(db, chat_room_id)
                _require_role(db, room, requester_id, MANAGERS, "Insufficient permissions")
                user = require_user(db, user_id)
                if crud.get_membership(db, room.id, user.id):
                    raise AlreadyExists("User already a member")
                db.add(ChatRoomMembership(chat_room_id=room.id, user_id=user.id, role=MembershipRole.MEMBER))
                db.flush()
        except IntegrityError:
            raise AlreadyExists("User already a member")
        logger.info("User %s added %s to room %s", requester_id, user_id, chat_room_id)

    def remove_member(self, chat_room_id: int, requester_id: int, user_id: int) -> None:
        with transaction(self.session_factory) as db:
            room = _require_group(db, chat_room_id)
            _require_role(db, room, requester_id, MANAGERS, "Insufficient permissions")
            user = require_user(db, user_id)
            membership = crud.get_membership(db, room.id, user.id)
            if membership is None:
                raise NotFound("User not a member")
            if membership.role == MembershipRole.OWNER:
                raise InvalidArgument("Cannot remove owner")
            db.delete(membership)
        logger.info("User %s removed %s from room %s", requester_id, user_id, chat_room_id)

    def promote_member(self, chat_room_id: int, requester_id: int, user_id: int) -> None:
        with transaction(self.session_factory) as db:
            room = _require_group(db, chat_room_id)
            _require_role(db, room, requester_id, (MembershipRole.OWNER,), "Only owner can promote members")
            user = require_user(db, user_id)
            membership = crud.get_membership(db, room.id, user.id)
            if membership is None:
                raise NotFound("User not a member")
            if membership.role != MembershipRole.MEMBER:
                return
            membership.role = MembershipRole.ADMIN
        logger.info("User %s promoted %s to admin in room %s", requester_id, user_id, chat_room_id)

    def list_members(self, chat_room_id: int) -> List[ChatRoomMembership]:
        with transaction(self.session_factory) as db:
            _require_room(db, chat_room_id)
            members = crud.list_room_memberships(db, chat_room_id)
            for m in members:
                _ = m.user
            return members

    def list_user_group_rooms(self, user_id: int) -> List[RoomSummary]:
        with transaction(self.session_factory) as db:
            require_user(db, user_id)
            memberships = crud.list_user_memberships(db, user_id, ChatRoomType.GROUP)
            return [summarize(db, m.chat_room) for m in memberships]

    def role_of(self, chat_room_id: int, user_id: int) -> Optional[MembershipRole]:
        with transaction(self.session_factory) as db:
            membership = crud.get_membership(db, chat_room_id, user_id)
            return membership.role if membership else None
