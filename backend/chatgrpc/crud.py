from sqlalchemy import func
from sqlalchemy.orm import Session

from .models import (
    ChatRoom,
    ChatRoomMembership,
    ChatRoomType,
    FriendRequest,
    FriendRequestStatus,
    Friendship,
    GroupChatRoom,
    Message,
    PrivateChatRoom,
    User,
)


# ---------- users ----------
def get_user(db: Session, user_id: int) -> User | None:
    return db.get(User, user_id)


def get_user_by_username(db: Session, username: str) -> User | None:
    return db.query(User).filter(User.username == username).first()


# ---------- friendships ----------
def get_friendship(db: Session, user_id: int, friend_id: int) -> Friendship | None:
    return db.get(Friendship, (user_id, friend_id))


def friendship_exists(db: Session, user_id: int, friend_id: int) -> bool:
    return get_friendship(db, user_id, friend_id) is not None


def list_friendships(db: Session, user_id: int) -> list[Friendship]:
    return (
        db.query(Friendship)
        .join(User, Friendship.friend_id == User.id)
        .filter(Friendship.user_id == user_id)
        .order_by(User.username)
        .all()
    )


# ---------- friend requests ----------
def get_friend_request(db: Session, request_id: int) -> FriendRequest | None:
    return db.get(FriendRequest, request_id)


def find_friend_request(db: Session, sender_id: int, receiver_id: int) -> FriendRequest | None:
    return (
        db.query(FriendRequest)
        .filter_by(sender_id=sender_id, receiver_id=receiver_id)
        .first()
    )


def list_pending_requests(db: Session, receiver_id: int) -> list[FriendRequest]:
    return (
        db.query(FriendRequest)
        .filter_by(receiver_id=receiver_id, status=FriendRequestStatus.PENDING)
        .order_by(FriendRequest.created_at.asc(), FriendRequest.id.asc())
        .all()
    )


# ---------- rooms ----------
def get_chat_room(db: Session, chat_room_id: int) -> ChatRoom | None:
    return db.get(ChatRoom, chat_room_id)


def list_chat_rooms(db: Session) -> list[ChatRoom]:
    return db.query(ChatRoom).order_by(ChatRoom.id.asc()).all()


def get_group_room(db: Session, chat_room_id: int) -> GroupChatRoom | None:
    return db.get(GroupChatRoom, chat_room_id)


def get_private_room(db: Session, chat_room_id: int) -> PrivateChatRoom | None:
    return db.get(PrivateChatRoom, chat_room_id)


def find_private_room(db: Session, user_a_id: int, user_b_id: int) -> PrivateChatRoom | None:
    """Exact (user_a, user_b) lookup; callers probe both orders."""
    return (
        db.query(PrivateChatRoom)
        .filter_by(user_a_id=user_a_id, user_b_id=user_b_id)
        .first()
    )


# ---------- memberships ----------
def get_membership(db: Session, chat_room_id: int, user_id: int) -> ChatRoomMembership | None:
    return (
        db.query(ChatRoomMembership)
        .filter_by(chat_room_id=chat_room_id, user_id=user_id)
        .first()
    )


def list_room_memberships(db: Session, chat_room_id: int) -> list[ChatRoomMembership]:
    return (
        db.query(ChatRoomMembership)
        .filter_by(chat_room_id=chat_room_id)
        .order_by(ChatRoomMembership.joined_at.asc(), ChatRoomMembership.id.asc())
        .all()
    )


def list_user_memberships(db: Session, user_id: int, room_type: ChatRoomType | None = None) -> list[ChatRoomMembership]:
    q = db.query(ChatRoomMembership).filter(ChatRoomMembership.user_id == user_id)
    if room_type is not None:
        q = q.join(ChatRoom, ChatRoom.id == ChatRoomMembership.chat_room_id).filter(
            ChatRoom.room_type == room_type
        )
    return q.order_by(ChatRoomMembership.chat_room_id.asc()).all()


# ---------- messages ----------
def get_message(db: Session, message_id: int) -> Message | None:
    return db.get(Message, message_id)


def list_room_messages(db: Session, chat_room_id: int) -> list[Message]:
    return (
        db.query(Message)
        .filter(Message.chat_room_id == chat_room_id)
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )


def search_room_messages(db: Session, chat_room_id: int, query: str) -> list[Message]:
    # LIKE wildcards in the query are matched literally
    escaped = query.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return (
        db.query(Message)
        .filter(
            Message.chat_room_id == chat_room_id,
            func.lower(Message.text).like(f"%{escaped}%", escape="\\"),
        )
        .order_by(Message.created_at.asc(), Message.id.asc())
        .all()
    )
