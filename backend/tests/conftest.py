import os

# 1) Cheap hashing and a throwaway default DB, before the package reads settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATABASE_URL", "sqlite://")

import grpc
import pytest

from chatgrpc import models  # noqa: F401  (registers tables)
from chatgrpc.client import ChatServiceStub, FriendServiceStub, GroupChatServiceStub, UserServiceStub
from chatgrpc.config import configure
from chatgrpc.database import Base, make_engine, make_session_factory
from chatgrpc.main import create_server
from chatgrpc.services.friends import FriendService
from chatgrpc.services.memberships import MembershipService
from chatgrpc.services.messages import MessageService
from chatgrpc.services.rooms import RoomService
from chatgrpc.services.users import UserService


# 2) A fresh *test* database per test, so ids start at 1
@pytest.fixture()
def engine(tmp_path):
    test_engine = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    Base.metadata.drop_all(bind=test_engine)
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return make_session_factory(engine)


# 3) Raw SQLAlchemy session for seeding and inspecting rows
@pytest.fixture()
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


# 4) Engines over the test database
@pytest.fixture()
def users(session_factory):
    return UserService(session_factory)


@pytest.fixture()
def friends(session_factory):
    return FriendService(session_factory)


@pytest.fixture()
def rooms(session_factory):
    return RoomService(session_factory)


@pytest.fixture()
def memberships(session_factory):
    return MembershipService(session_factory)


@pytest.fixture()
def messages(session_factory):
    return MessageService(session_factory)


@pytest.fixture()
def people(users):
    """dani=1, jwan=2, omar=3, lena=4"""
    return [users.register(name, "secret123") for name in ("dani", "jwan", "omar", "lena")]


# 5) A real gRPC server on a free port, talking to the test database
@pytest.fixture()
def channel(session_factory):
    settings = configure({"GRPC_HOST": "127.0.0.1", "GRPC_PORT": 0, "GRPC_MAX_WORKERS": 4})
    server, port = create_server(settings, session_factory)
    server.start()
    ch = grpc.insecure_channel(f"127.0.0.1:{port}")
    try:
        yield ch
    finally:
        ch.close()
        server.stop(None)


@pytest.fixture()
def user_stub(channel):
    return UserServiceStub(channel)


@pytest.fixture()
def friend_stub(channel):
    return FriendServiceStub(channel)


@pytest.fixture()
def group_stub(channel):
    return GroupChatServiceStub(channel)


@pytest.fixture()
def chat_stub(channel):
    return ChatServiceStub(channel)
