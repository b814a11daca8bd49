import grpc
import pytest

from chatgrpc.auth import get_password_hash, normalize_username, verify_password
from chatgrpc.errors import AlreadyExists, InvalidArgument, NotFound, Unauthenticated
from chatgrpc.models import User
from chatgrpc.schemas import GetUserRequest, LoginRequest, RegisterUserRequest


def test_hash_and_verify():
    hashed = get_password_hash("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("wrongpw", hashed)


def test_normalize_username():
    assert normalize_username("  Dani ") == "dani"
    assert normalize_username(None) == ""


def test_register_stores_normalized_name_and_hash(users, db_session):
    user = users.register("  Alice ", "secret123")
    assert user.id == 1
    assert user.username == "alice"

    row = db_session.get(User, user.id)
    assert row.password_hash != "secret123"
    assert verify_password("secret123", row.password_hash)


def test_register_duplicate_is_case_insensitive(users):
    users.register("alice", "secret123")
    with pytest.raises(AlreadyExists):
        users.register("ALICE", "other")


@pytest.mark.parametrize("username,password", [("", "pw"), ("   ", "pw"), ("bob", "")])
def test_register_requires_username_and_password(users, username, password):
    with pytest.raises(InvalidArgument):
        users.register(username, password)


def test_login_happy_path(users):
    users.register("alice", "secret123")
    user = users.login(" Alice", "secret123")
    assert user.username == "alice"


def test_login_bad_password_and_unknown_user_look_the_same(users):
    users.register("alice", "secret123")
    with pytest.raises(Unauthenticated) as bad_pw:
        users.login("alice", "wrongpw")
    with pytest.raises(Unauthenticated) as unknown:
        users.login("bob", "doesntmatter")
    assert bad_pw.value.detail == unknown.value.detail


def test_get_user(users):
    created = users.register("alice", "secret123")
    assert users.get(created.id).username == "alice"
    with pytest.raises(NotFound):
        users.get(999)


# --- over the wire ---
def test_register_and_login_over_grpc(user_stub):
    created = user_stub.RegisterUser(RegisterUserRequest(username="Alice", password="secret123"))
    assert created.username == "alice"
    assert created.created_at_unix > 0

    logged_in = user_stub.Login(LoginRequest(username="alice", password="secret123"))
    assert logged_in.id == created.id

    fetched = user_stub.GetUser(GetUserRequest(user_id=created.id))
    assert fetched == created


def test_login_failure_over_grpc(user_stub):
    user_stub.RegisterUser(RegisterUserRequest(username="alice", password="secret123"))
    with pytest.raises(grpc.RpcError) as exc:
        user_stub.Login(LoginRequest(username="alice", password="wrongpw"))
    assert exc.value.code() == grpc.StatusCode.UNAUTHENTICATED
    assert exc.value.details() == "Invalid credentials"


def test_duplicate_registration_over_grpc(user_stub):
    user_stub.RegisterUser(RegisterUserRequest(username="alice", password="secret123"))
    with pytest.raises(grpc.RpcError) as exc:
        user_stub.RegisterUser(RegisterUserRequest(username="alice", password="secret123"))
    assert exc.value.code() == grpc.StatusCode.ALREADY_EXISTS


def test_get_unknown_user_over_grpc(user_stub):
    with pytest.raises(grpc.RpcError) as exc:
        user_stub.GetUser(GetUserRequest(user_id=42))
    assert exc.value.code() == grpc.StatusCode.NOT_FOUND
