import enum
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .database import Base

MAX_MESSAGE_LENGTH = 2000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_unix(value: datetime | None) -> int | None:
    if value is None:
        return None
    return int(as_utc(value).timestamp())


class FriendRequestStatus(str, enum.Enum):
    PENDING  = "PENDING"
    ACCEPTED = "ACCEPTED"
    DECLINED = "DECLINED"


class ChatRoomType(str, enum.Enum):
    PRIVATE = "PRIVATE"
    GROUP   = "GROUP"


class MembershipRole(str, enum.Enum):
    OWNER  = "OWNER"
    ADMIN  = "ADMIN"
    MEMBER = "MEMBER"


def _enum(cls):
    return Enum(cls, native_enum=False, length=16, validate_strings=True)


class User(Base):
    __tablename__ = "users"
    id            = Column(Integer, primary_key=True, index=True)
    username      = Column(String(64), unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at    = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __repr__(self):
        return f"<User id={self.id} username={self.username!r}>"


class FriendRequest(Base):
    __tablename__ = "friend_requests"

    id           = Column(Integer, primary_key=True, index=True)
    sender_id    = Column(Integer, ForeignKey("users.id"), nullable=False)
    receiver_id  = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status       = Column(_enum(FriendRequestStatus), default=FriendRequestStatus.PENDING, nullable=False)
    created_at   = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    responded_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (UniqueConstraint("sender_id", "receiver_id", name="uq_friend_request"),)

    sender   = relationship("User", foreign_keys=[sender_id])
    receiver = relationship("User", foreign_keys=[receiver_id])


class Friendship(Base):
    """One direction of a friendship; (A, B) always has a twin (B, A)."""
    __tablename__ = "friendships"

    user_id    = Column(Integer, ForeignKey("users.id"), primary_key=True)
    friend_id  = Column(Integer, ForeignKey("users.id"), primary_key=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    user   = relationship("User", foreign_keys=[user_id])
    friend = relationship("User", foreign_keys=[friend_id])


class ChatRoom(Base):
    __tablename__ = "chat_rooms"

    id         = Column(Integer, primary_key=True, index=True)
    room_type  = Column(_enum(ChatRoomType), nullable=False)
    owner_id   = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    owner = relationship("User", foreign_keys=[owner_id])


class PrivateChatRoom(Base):
    __tablename__ = "private_chat_rooms"

    chat_room_id = Column(Integer, ForeignKey("chat_rooms.id"), primary_key=True)
    user_a_id    = Column(Integer, ForeignKey("users.id"), nullable=False)
    user_b_id    = Column(Integer, ForeignKey("users.id"), nullable=False)

    __table_args__ = (UniqueConstraint("user_a_id", "user_b_id", name="uq_private_chat_pair"),)

    chat_room = relationship("ChatRoom")
    user_a    = relationship("User", foreign_keys=[user_a_id])
    user_b    = relationship("User", foreign_keys=[user_b_id])


class GroupChatRoom(Base):
    __tablename__ = "group_chat_rooms"

    chat_room_id = Column(Integer, ForeignKey("chat_rooms.id"), primary_key=True)
    name         = Column(String(255), nullable=False)
    description  = Column(Text, nullable=True)
    is_private   = Column(Boolean, nullable=False, default=False)

    chat_room = relationship("ChatRoom")


class ChatRoomMembership(Base):
    __tablename__ = "chat_room_memberships"

    id           = Column(Integer, primary_key=True, index=True)
    chat_room_id = Column(Integer, ForeignKey("chat_rooms.id"), nullable=False, index=True)
    user_id      = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    role         = Column(_enum(MembershipRole), nullable=False, default=MembershipRole.MEMBER)
    joined_at    = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("chat_room_id", "user_id", name="uq_room_member"),)

    chat_room = relationship("ChatRoom")
    user      = relationship("User")


class Message(Base):
    __tablename__ = "messages"

    id           = Column(Integer, primary_key=True, index=True)
    chat_room_id = Column(Integer, ForeignKey("chat_rooms.id"), nullable=False)
    sender_id    = Column(Integer, ForeignKey("users.id"), nullable=False)
    text         = Column(String(MAX_MESSAGE_LENGTH), nullable=False, default="")
    created_at   = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    edited_at    = Column(DateTime(timezone=True), nullable=True)
    deleted_at   = Column(DateTime(timezone=True), nullable=True)
    deleted_by   = Column(Integer, ForeignKey("users.id"), nullable=True)
    is_edited    = Column(Boolean, nullable=False, default=False)
    is_deleted   = Column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("ix_messages_room_time", "chat_room_id", "created_at"),)
