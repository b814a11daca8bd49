"""
gRPC servicers: request -> engine call -> response DTO.
"""
from . import schemas
from .models import FriendRequest, Message, User, to_unix
from .services.friends import FriendService
from .services.memberships import MembershipService
from .services.messages import MessageService
from .services.rooms import RoomService, RoomSummary
from .services.users import UserService


def user_dto(user: User) -> schemas.UserDto:
    return schemas.UserDto(
        id=user.id,
        username=user.username,
        created_at_unix=to_unix(user.created_at),
    )


def friend_request_dto(fr: FriendRequest) -> schemas.FriendRequestDto:
    return schemas.FriendRequestDto(
        id=fr.id,
        sender_id=fr.sender_id,
        sender_username=fr.sender.username,
        receiver_id=fr.receiver_id,
        receiver_username=fr.receiver.username,
        status=fr.status.value,
        created_at_unix=to_unix(fr.created_at),
        responded_at_unix=to_unix(fr.responded_at),
    )


def room_dto(room: RoomSummary) -> schemas.ChatRoomDto:
    return schemas.ChatRoomDto(id=room.id, name=room.name, room_type=room.room_type.value)


def message_dto(msg: Message) -> schemas.MessageDto:
    return schemas.MessageDto(
        id=msg.id,
        chat_room_id=msg.chat_room_id,
        sender_id=msg.sender_id,
        text=msg.text or "",
        sent_at_unix=to_unix(msg.created_at),
        is_edited=msg.is_edited,
        is_deleted=msg.is_deleted,
        edited_at_unix=to_unix(msg.edited_at),
        deleted_at_unix=to_unix(msg.deleted_at),
        deleted_by=msg.deleted_by,
    )


class UserServicer:
    def __init__(self, users: UserService):
        self.users = users

    def RegisterUser(self, request: schemas.RegisterUserRequest, context):
        return user_dto(self.users.register(request.username, request.password))

    def Login(self, request: schemas.LoginRequest, context):
        return user_dto(self.users.login(request.username, request.password))

    def GetUser(self, request: schemas.GetUserRequest, context):
        return user_dto(self.users.get(request.user_id))


class FriendServicer:
    def __init__(self, friends: FriendService):
        self.friends = friends

    def SendFriendRequest(self, request: schemas.SendFriendRequestRequest, context):
        fr = self.friends.send_friend_request(request.requester_id, request.target_username)
        return friend_request_dto(fr)

    def RespondFriendRequest(self, request: schemas.RespondFriendRequestRequest, context):
        return friend_request_dto(self.friends.respond_friend_request(request.request_id, request.accept))

    def ListIncomingRequests(self, request: schemas.ListFriendRequestsRequest, context):
        pending = self.friends.list_incoming_requests(request.user_id)
        return schemas.FriendRequestListResponse(requests=[friend_request_dto(fr) for fr in pending])

    def ListFriends(self, request: schemas.ListFriendsRequest, context):
        friends = self.friends.list_friends(request.user_id)
        return schemas.FriendListResponse(
            friends=[schemas.FriendDto(user_id=u.id, username=u.username) for u in friends]
        )

    def RemoveFriend(self, request: schemas.RemoveFriendRequest, context):
        self.friends.remove_friend(request.user_id, request.friend_id)
        return schemas.Empty()


class GroupChatServicer:
    def __init__(self, rooms: RoomService, memberships: MembershipService):
        self.rooms = rooms
        self.memberships = memberships

    def CreateGroupChat(self, request: schemas.CreateGroupChatRequest, context):
        room = self.rooms.create_group_room(
            request.owner_id,
            request.name,
            request.description,
            request.member_ids,
            request.is_private,
        )
        return room_dto(room)

    def AddMember(self, request: schemas.MemberChangeRequest, context):
        self.memberships.add_member(request.chat_room_id, request.requester_id, request.user_id)
        return schemas.Empty()

    def RemoveMember(self, request: schemas.MemberChangeRequest, context):
        self.memberships.remove_member(request.chat_room_id, request.requester_id, request.user_id)
        return schemas.Empty()

    def PromoteMember(self, request: schemas.MemberChangeRequest, context):
        self.memberships.promote_member(request.chat_room_id, request.requester_id, request.user_id)
        return schemas.Empty()

    def ListMembers(self, request: schemas.ListMembersRequest, context):
        members = self.memberships.list_members(request.chat_room_id)
        return schemas.ListMembersResponse(members=[
            schemas.ChatRoomMemberDto(user_id=m.user_id, username=m.user.username, role=m.role.value)
            for m in members
        ])

    def ListUserChatRooms(self, request: schemas.ListUserChatRoomsRequest, context):
        rooms = self.memberships.list_user_group_rooms(request.user_id)
        return schemas.ChatRoomListResponse(rooms=[room_dto(r) for r in rooms])

    def GetPrivateChatRoom(self, request: schemas.GetPrivateChatRoomRequest, context):
        return room_dto(self.rooms.get_private_room(request.user_id_1, request.user_id_2))


class ChatServicer:
    def __init__(self, messages: MessageService, rooms: RoomService):
        self.messages = messages
        self.rooms = rooms

    def SendMessage(self, request: schemas.SendMessageRequest, context):
        msg = self.messages.send(request.chat_room_id, request.sender_id, request.text)
        return message_dto(msg)

    def GetMessages(self, request: schemas.GetMessagesRequest, context):
        msgs = self.messages.list_by_room(request.chat_room_id)
        return schemas.MessageListResponse(messages=[message_dto(m) for m in msgs])

    def ListChatRooms(self, request: schemas.Empty, context):
        return schemas.ChatRoomListResponse(rooms=[room_dto(r) for r in self.rooms.list_rooms()])

    def EditMessage(self, request: schemas.EditMessageRequest, context):
        return message_dto(self.messages.edit(request.message_id, request.sender_id, request.text))

    def DeleteMessage(self, request: schemas.DeleteMessageRequest, context):
        return message_dto(self.messages.delete(request.message_id, request.requester_id))

    def SearchMessages(self, request: schemas.SearchMessagesRequest, context):
        msgs = self.messages.search(request.chat_room_id, request.query)
        return schemas.MessageListResponse(messages=[message_dto(m) for m in msgs])

    def CreateChatRoom(self, request: schemas.CreateChatRoomRequest, context):
        return room_dto(self.rooms.create_open_room(request.name))
