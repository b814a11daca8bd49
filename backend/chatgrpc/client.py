"""
Client stubs for the four chat services.

    channel = grpc.insecure_channel("localhost:9090")
    users = UserServiceStub(channel)
    user = users.RegisterUser(RegisterUserRequest(username="dani", password="pw"))
"""
from functools import partial

import grpc

from .rpc import SERVICES, decode, encode, method_path


class _ServiceStub:
    service = ""

    def __init__(self, channel: grpc.Channel):
        for method, (_request_model, response_model) in SERVICES[self.service].items():
            setattr(self, method, channel.unary_unary(
                method_path(self.service, method),
                request_serializer=encode,
                response_deserializer=partial(decode, response_model),
            ))


class UserServiceStub(_ServiceStub):
    service = "UserService"


class FriendServiceStub(_ServiceStub):
    service = "FriendService"


class GroupChatServiceStub(_ServiceStub):
    service = "GroupChatService"


class ChatServiceStub(_ServiceStub):
    service = "ChatService"
