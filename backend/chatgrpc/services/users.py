"""
User Service

Registration, login and lookup of user accounts.
"""
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .. import crud
from ..auth import get_password_hash, normalize_username, verify_password
from ..database import SessionLocal, transaction
from ..errors import AlreadyExists, InvalidArgument, NotFound, Unauthenticated
from ..models import User

logger = logging.getLogger(__name__)


class UserService:
    """Identity directory over the users table."""

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory

    def register(self, username: str, password: str) -> User:
        """
        Create an account.

        The username is trimmed and lowercased before the uniqueness check,
        so "Dani" and " dani " collide.

        Raises:
            InvalidArgument: blank username or empty password
            AlreadyExists: username taken
        """
        normalized = normalize_username(username)
        if not normalized or not password:
            raise InvalidArgument("Username and password are required")

        try:
            with transaction(self.session_factory) as db:
                if crud.get_user_by_username(db, normalized):
                    raise AlreadyExists("Username already taken")
                user = User(username=normalized, password_hash=get_password_hash(password))
                db.add(user)
                db.flush()
        except IntegrityError:
            # lost a race with a concurrent registration of the same name
            raise AlreadyExists("Username already taken")

        logger.info("Registered user %s (id=%s)", user.username, user.id)
        return user

    def login(self, username: str, password: str) -> User:
        normalized = normalize_username(username)
        with transaction(self.session_factory) as db:
            user = crud.get_user_by_username(db, normalized)
            # same error for unknown user and wrong password
            if not user or not verify_password(password or "", user.password_hash):
                raise Unauthenticated("Invalid credentials")
            return user

    def get(self, user_id: int) -> User:
        with transaction(self.session_factory) as db:
            return require_user(db, user_id)


def require_user(db: Session, user_id: int, what: str = "User") -> User:
    user = crud.get_user(db, user_id)
    if not user:
        raise NotFound(f"{what} not found")
    return user
