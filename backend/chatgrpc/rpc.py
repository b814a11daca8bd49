"""
gRPC plumbing shared by the server and the client stubs.

Every RPC is unary-unary. Payloads travel as JSON documents described by
the pydantic models in ``schemas``; ``SERVICES`` is the single table of
service -> method -> (request model, response model) both sides build from.

The payloads are JSON, not protobuf. Clients generated from the `chat`
.proto files cannot talk to this server; use the stubs in ``client`` or any
gRPC client that sends the same JSON bytes.
"""
import logging
from typing import Callable, Dict, Iterable, Tuple, Type

import grpc
from pydantic import BaseModel, ValidationError

from . import schemas
from .errors import (
    AlreadyExists,
    FailedPrecondition,
    InvalidArgument,
    NotFound,
    PermissionDenied,
    ServiceError,
    Unauthenticated,
)

logger = logging.getLogger(__name__)

PACKAGE = "chat"

MethodTable = Dict[str, Tuple[Type[BaseModel], Type[BaseModel]]]

SERVICES: Dict[str, MethodTable] = {
    "UserService": {
        "RegisterUser": (schemas.RegisterUserRequest, schemas.UserDto),
        "Login":        (schemas.LoginRequest, schemas.UserDto),
        "GetUser":      (schemas.GetUserRequest, schemas.UserDto),
    },
    "FriendService": {
        "SendFriendRequest":    (schemas.SendFriendRequestRequest, schemas.FriendRequestDto),
        "RespondFriendRequest": (schemas.RespondFriendRequestRequest, schemas.FriendRequestDto),
        "ListIncomingRequests": (schemas.ListFriendRequestsRequest, schemas.FriendRequestListResponse),
        "ListFriends":          (schemas.ListFriendsRequest, schemas.FriendListResponse),
        "RemoveFriend":         (schemas.RemoveFriendRequest, schemas.Empty),
    },
    "GroupChatService": {
        "CreateGroupChat":    (schemas.CreateGroupChatRequest, schemas.ChatRoomDto),
        "AddMember":          (schemas.MemberChangeRequest, schemas.Empty),
        "RemoveMember":       (schemas.MemberChangeRequest, schemas.Empty),
        "PromoteMember":      (schemas.MemberChangeRequest, schemas.Empty),
        "ListMembers":        (schemas.ListMembersRequest, schemas.ListMembersResponse),
        "ListUserChatRooms":  (schemas.ListUserChatRoomsRequest, schemas.ChatRoomListResponse),
        "GetPrivateChatRoom": (schemas.GetPrivateChatRoomRequest, schemas.ChatRoomDto),
    },
    "ChatService": {
        "SendMessage":    (schemas.SendMessageRequest, schemas.MessageDto),
        "GetMessages":    (schemas.GetMessagesRequest, schemas.MessageListResponse),
        "ListChatRooms":  (schemas.Empty, schemas.ChatRoomListResponse),
        "EditMessage":    (schemas.EditMessageRequest, schemas.MessageDto),
        "DeleteMessage":  (schemas.DeleteMessageRequest, schemas.MessageDto),
        "SearchMessages": (schemas.SearchMessagesRequest, schemas.MessageListResponse),
        "CreateChatRoom": (schemas.CreateChatRoomRequest, schemas.ChatRoomDto),
    },
}

STATUS_CODES = {
    NotFound:           grpc.StatusCode.NOT_FOUND,
    AlreadyExists:      grpc.StatusCode.ALREADY_EXISTS,
    InvalidArgument:    grpc.StatusCode.INVALID_ARGUMENT,
    PermissionDenied:   grpc.StatusCode.PERMISSION_DENIED,
    FailedPrecondition: grpc.StatusCode.FAILED_PRECONDITION,
    Unauthenticated:    grpc.StatusCode.UNAUTHENTICATED,
}

INTERNAL_DETAIL = "Internal server error"


def full_service_name(service: str) -> str:
    return f"{PACKAGE}.{service}"


def method_path(service: str, method: str) -> str:
    return f"/{full_service_name(service)}/{method}"


def encode(message: BaseModel) -> bytes:
    return message.model_dump_json().encode("utf-8")


def decode(model: Type[BaseModel], data: bytes) -> BaseModel:
    return model.model_validate_json(data or b"{}")


def status_for(exc: ServiceError) -> grpc.StatusCode:
    for cls in type(exc).__mro__:
        if cls in STATUS_CODES:
            return STATUS_CODES[cls]
    return grpc.StatusCode.INTERNAL


def describe_validation_error(exc: ValidationError) -> str:
    # field locations and messages only, never the submitted values
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "request"
        parts.append(f"{loc}: {err.get('msg', 'invalid')}")
    return "; ".join(parts)


def _unary_handler(service: str, method: str, behavior: Callable, request_model: Type[BaseModel]):
    path = method_path(service, method)

    def handler(raw: bytes, context: grpc.ServicerContext):
        try:
            request = decode(request_model, raw)
        except ValidationError as exc:
            context.abort(grpc.StatusCode.INVALID_ARGUMENT, describe_validation_error(exc))

        try:
            return behavior(request, context)
        except ServiceError as exc:
            context.abort(status_for(exc), exc.detail)
        except Exception:
            logger.exception("Unhandled error in %s", path)
            context.abort(grpc.StatusCode.INTERNAL, INTERNAL_DETAIL)

    return grpc.unary_unary_rpc_method_handler(
        handler,
        request_deserializer=None,
        response_serializer=encode,
    )


def generic_handler(service: str, servicer) -> grpc.GenericRpcHandler:
    """Bind every method of ``service`` to the same-named servicer method."""
    handlers = {}
    for method, (request_model, _response_model) in SERVICES[service].items():
        behavior = getattr(servicer, method)
        handlers[method] = _unary_handler(service, method, behavior, request_model)
    return grpc.method_handlers_generic_handler(full_service_name(service), handlers)


def add_servicers(server: grpc.Server, servicers: Dict[str, object]) -> Iterable[str]:
    server.add_generic_rpc_handlers(
        tuple(generic_handler(service, servicer) for service, servicer in servicers.items())
    )
    return [full_service_name(service) for service in servicers]
