"""
Room Service

Composes chat rooms: the single private room shared by two users, owned
group rooms with their initial roster, and ownerless open rooms. Also
resolves the display name of any room.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .. import crud
from ..database import SessionLocal, transaction
from ..errors import InvalidArgument
from ..models import (
    ChatRoom,
    ChatRoomMembership,
    ChatRoomType,
    GroupChatRoom,
    MembershipRole,
    PrivateChatRoom,
    User,
)
from .users import require_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoomSummary:
    id: int
    name: str
    room_type: ChatRoomType


def display_name(db: Session, room: ChatRoom) -> str:
    """Group name, "alice & bob" for private rooms, "Room {id}" otherwise."""
    if room.room_type == ChatRoomType.GROUP:
        group = crud.get_group_room(db, room.id)
        if group:
            return group.name
    elif room.room_type == ChatRoomType.PRIVATE:
        private = crud.get_private_room(db, room.id)
        if private:
            return f"{private.user_a.username} & {private.user_b.username}"
    return f"Room {room.id}"


def summarize(db: Session, room: ChatRoom) -> RoomSummary:
    return RoomSummary(id=room.id, name=display_name(db, room), room_type=room.room_type)


def add_membership(db: Session, room: ChatRoom, user: User, role: MembershipRole) -> ChatRoomMembership:
    """Insert a membership unless (room, user) already has one."""
    existing = crud.get_membership(db, room.id, user.id)
    if existing:
        return existing
    membership = ChatRoomMembership(chat_room_id=room.id, user_id=user.id, role=role)
    db.add(membership)
    db.flush()
    return membership


def ensure_private_room(db: Session, a: User, b: User) -> PrivateChatRoom:
    """
    Materialise the private room between two users inside the caller's
    transaction. Repeated calls, in either argument order, return the same
    row. Participants are stored with user_a_id < user_b_id.
    """
    existing = crud.find_private_room(db, a.id, b.id) or crud.find_private_room(db, b.id, a.id)
    if existing:
        return existing

    first, second = (a, b) if a.id < b.id else (b, a)

    room = ChatRoom(room_type=ChatRoomType.PRIVATE, owner_id=None)
    db.add(room)
    db.flush()

    private = PrivateChatRoom(chat_room_id=room.id, user_a_id=first.id, user_b_id=second.id)
    db.add(private)
    db.flush()

    add_membership(db, room, a, MembershipRole.MEMBER)
    add_membership(db, room, b, MembershipRole.MEMBER)

    logger.info("Created private room %s for users %s and %s", room.id, first.id, second.id)
    return private


class RoomService:
    """Room composer: private, group and open rooms."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def get_private_room(self, user_id_1: int, user_id_2: int) -> RoomSummary:
        """
        Return the private room of two users, creating it on first use.

        Two callers racing on the same pair both reach the insert; the loser
        trips the unique pair constraint, rolls back and finds the winner's
        room on the second probe.
        """
        try:
            return self._get_private_room_once(user_id_1, user_id_2)
        except IntegrityError:
            logger.info("Private room for %s/%s created concurrently, probing again", user_id_1, user_id_2)
            return self._get_private_room_once(user_id_1, user_id_2)

    def _get_private_room_once(self, user_id_1: int, user_id_2: int) -> RoomSummary:
        with transaction(self.session_factory) as db:
            first = require_user(db, user_id_1)
            second = require_user(db, user_id_2)
            if first.id == second.id:
                raise InvalidArgument("Cannot open a private chat with yourself")
            private = ensure_private_room(db, first, second)
            return summarize(db, private.chat_room)

    def create_group_room(
        self,
        owner_id: int,
        name: str,
        description: Optional[str] = None,
        member_ids: Iterable[int] = (),
        is_private: bool = False,
    ) -> RoomSummary:
        """
        Create a group room owned by ``owner_id``.

        Unknown ids in ``member_ids`` are skipped; duplicates and the owner's
        own id are ignored.
        """
        with transaction(self.session_factory) as db:
            owner = require_user(db, owner_id, "Owner")
            clean_name = (name or "").strip()
            if not clean_name:
                raise InvalidArgument("Group name is required")

            room = ChatRoom(room_type=ChatRoomType.GROUP, owner_id=owner.id)
            db.add(room)
            db.flush()

            db.add(GroupChatRoom(
                chat_room_id=room.id,
                name=clean_name,
                description=(description or "").strip() or None,
                is_private=bool(is_private),
            ))
            add_membership(db, room, owner, MembershipRole.OWNER)

            skipped: List[int] = []
            for member_id in dict.fromkeys(member_ids):
                if member_id == owner.id:
                    continue
                member = crud.get_user(db, member_id)
                if member is None:
                    skipped.append(member_id)
                    continue
                add_membership(db, room, member, MembershipRole.MEMBER)

            if skipped:
                logger.warning("Group room %s: skipped unknown member ids %s", room.id, skipped)
            logger.info("User %s created group room %s", owner.id, room.id)
            return RoomSummary(id=room.id, name=clean_name, room_type=room.room_type)

    def create_open_room(self, name: str) -> RoomSummary:
        """Ownerless group room with a name and no roster."""
        clean_name = (name or "").strip()
        if not clean_name:
            raise InvalidArgument("Chat room name is required")
        with transaction(self.session_factory) as db:
            room = ChatRoom(room_type=ChatRoomType.GROUP, owner_id=None)
            db.add(room)
            db.flush()
            db.add(GroupChatRoom(chat_room_id=room.id, name=clean_name))
            return RoomSummary(id=room.id, name=clean_name, room_type=room.room_type)

    def list_rooms(self) -> List[RoomSummary]:
        # TODO: restrict to rooms the caller belongs to once callers are authenticated
        with transaction(self.session_factory) as db:
            return [summarize(db, room) for room in crud.list_chat_rooms(db)]
