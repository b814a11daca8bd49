from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .models import MAX_MESSAGE_LENGTH


class Empty(BaseModel):
    pass


# --- users ---
class RegisterUserRequest(BaseModel):
    username: str
    password: str


class LoginRequest(BaseModel):
    username: str
    password: str


class GetUserRequest(BaseModel):
    user_id: int


# What we return when a user signs up, logs in or is fetched
class UserDto(BaseModel):
    id: int
    username: str
    created_at_unix: int


# --- friends ---
class SendFriendRequestRequest(BaseModel):
    requester_id: int = 0
    target_username: str = ""


class RespondFriendRequestRequest(BaseModel):
    request_id: int
    accept: bool = False


class ListFriendRequestsRequest(BaseModel):
    user_id: int


class ListFriendsRequest(BaseModel):
    user_id: int


class RemoveFriendRequest(BaseModel):
    user_id: int
    friend_id: int


class FriendRequestDto(BaseModel):
    id:                int
    sender_id:         int
    sender_username:   str
    receiver_id:       int
    receiver_username: str
    status:            str
    created_at_unix:   int
    responded_at_unix: Optional[int] = None


class FriendRequestListResponse(BaseModel):
    requests: List[FriendRequestDto] = []


class FriendDto(BaseModel):
    user_id:  int
    username: str


class FriendListResponse(BaseModel):
    friends: List[FriendDto] = []


# --- rooms ---
class ChatRoomDto(BaseModel):
    id:        int
    name:      str
    room_type: str


class ChatRoomListResponse(BaseModel):
    rooms: List[ChatRoomDto] = []


class CreateGroupChatRequest(BaseModel):
    owner_id:    int
    name:        str = ""
    description: Optional[str] = None
    member_ids:  List[int] = []
    is_private:  bool = False


class MemberChangeRequest(BaseModel):
    """
    Shared shape of AddMember, RemoveMember and PromoteMember.
    """
    chat_room_id: int
    requester_id: int
    user_id:      int


class ListMembersRequest(BaseModel):
    chat_room_id: int


class ChatRoomMemberDto(BaseModel):
    user_id:  int
    username: str
    role:     str


class ListMembersResponse(BaseModel):
    members: List[ChatRoomMemberDto] = []


class ListUserChatRoomsRequest(BaseModel):
    user_id: int


class GetPrivateChatRoomRequest(BaseModel):
    user_id_1: int
    user_id_2: int


class CreateChatRoomRequest(BaseModel):
    name: str = ""


# --- messages ---
class SendMessageRequest(BaseModel):
    chat_room_id: int
    sender_id:    int
    text:         str = Field(max_length=MAX_MESSAGE_LENGTH)

    @field_validator("text")
    @classmethod
    def text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Message text is required")
        return v


class GetMessagesRequest(BaseModel):
    chat_room_id: int


class EditMessageRequest(BaseModel):
    message_id: int
    sender_id:  int
    text:       str = Field(default="", max_length=MAX_MESSAGE_LENGTH)


class DeleteMessageRequest(BaseModel):
    message_id:   int
    requester_id: int


class SearchMessagesRequest(BaseModel):
    chat_room_id: int
    query:        str = ""


class MessageDto(BaseModel):
    id:              int
    chat_room_id:    int
    sender_id:       int
    text:            str
    sent_at_unix:    int
    is_edited:       bool
    is_deleted:      bool
    edited_at_unix:  Optional[int] = None
    deleted_at_unix: Optional[int] = None
    deleted_by:      Optional[int] = None


class MessageListResponse(BaseModel):
    messages: List[MessageDto] = []
