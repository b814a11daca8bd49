from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings


class Base(DeclarativeBase):
    pass


def _unicode_lower(value):
    return value.lower() if isinstance(value, str) else value


def _setup_sqlite(dbapi_conn, connection_record):
    # SQLite ships with foreign keys off and an ASCII-only lower()
    dbapi_conn.create_function("lower", 1, _unicode_lower, deterministic=True)
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        # handlers run on the gRPC worker pool, not the creating thread
        connect_args["check_same_thread"] = False
    engine = create_engine(url, echo=echo, pool_pre_ping=True, connect_args=connect_args)
    if is_sqlite:
        event.listen(engine, "connect", _setup_sqlite)
    return engine


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False, expire_on_commit=False)


settings = get_settings()
engine = make_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
SessionLocal = make_session_factory(engine)


def init_db(bind: Engine = engine) -> None:
    # import registers the tables on Base.metadata
    from . import models  # noqa: F401

    Base.metadata.create_all(bind=bind)


@contextmanager
def transaction(session_factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """
    Run a unit of work in one database transaction.

    Commits when the block exits normally; any exception rolls the whole
    unit back and propagates to the caller.
    """
    db = session_factory()
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise
    finally:
        db.close()
