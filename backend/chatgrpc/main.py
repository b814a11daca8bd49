import logging
import signal
from concurrent import futures
from typing import Optional, Tuple

import grpc
from grpc_health.v1 import health, health_pb2, health_pb2_grpc
from sqlalchemy.orm import sessionmaker

from .config import Settings, get_settings
from .database import SessionLocal, engine, init_db
from .rpc import add_servicers
from .servicers import ChatServicer, FriendServicer, GroupChatServicer, UserServicer
from .services.friends import FriendService
from .services.memberships import MembershipService
from .services.messages import MessageService
from .services.rooms import RoomService
from .services.users import UserService

logger = logging.getLogger(__name__)


def build_servicers(session_factory: sessionmaker) -> dict:
    rooms = RoomService(session_factory)
    return {
        "UserService":      UserServicer(UserService(session_factory)),
        "FriendService":    FriendServicer(FriendService(session_factory)),
        "GroupChatService": GroupChatServicer(rooms, MembershipService(session_factory)),
        "ChatService":      ChatServicer(MessageService(session_factory), rooms),
    }


def create_server(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
) -> Tuple[grpc.Server, int]:
    """Build (but do not start) the server; returns it with the bound port."""
    settings = settings or get_settings()
    session_factory = session_factory or SessionLocal

    server = grpc.server(futures.ThreadPoolExecutor(max_workers=settings.GRPC_MAX_WORKERS))
    service_names = add_servicers(server, build_servicers(session_factory))

    # --- health (the gRPC counterpart of GET /health) ---
    health_servicer = health.HealthServicer()
    health_pb2_grpc.add_HealthServicer_to_server(health_servicer, server)
    for name in ["", *service_names]:
        health_servicer.set(name, health_pb2.HealthCheckResponse.SERVING)

    port = server.add_insecure_port(settings.bind_address)
    if port == 0:
        raise RuntimeError(f"Could not bind gRPC server to {settings.bind_address}")
    return server, port


def serve() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    init_db(engine)
    server, port = create_server(settings)
    server.start()
    logger.info("gRPC server listening on %s:%s", settings.GRPC_HOST, port)

    def _shutdown(signum, frame):
        logger.info("Received signal %s, shutting down", signum)
        server.stop(settings.GRPC_GRACE_SECONDS)

    signal.signal(signal.SIGTERM, _shutdown)
    try:
        server.wait_for_termination()
    except KeyboardInterrupt:
        server.stop(settings.GRPC_GRACE_SECONDS).wait()


if __name__ == "__main__":
    serve()
