import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from fixtrack.core.config import settings
from fixtrack.core.errors import ConcurrentModification, StorageFailure

logger = logging.getLogger(__name__)

Base = declarative_base()

_TX_DEPTH = "fixtrack.tx_depth"


def build_engine(database_url: str, echo: bool = False) -> Engine:
    url = make_url(database_url)
    connect_args = {}
    if url.get_backend_name() == "sqlite":
        # Sessions are handed across threads by the web server and the lock pool
        connect_args["check_same_thread"] = False
        if url.database and url.database != ":memory:":
            Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(database_url, echo=echo, pool_pre_ping=True, connect_args=connect_args)


engine = build_engine(settings.DATABASE_URL, echo=settings.SQL_ECHO)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    # Register every mapped class on Base before creating tables
    import fixtrack.models  # noqa: F401

    Base.metadata.create_all(bind=bind)
    logger.info("Database schema ensured on %s", bind.url.render_as_string(hide_password=True))


@contextmanager
def transaction(session: Session) -> Iterator[Session]:
    """
    Unit-of-work scope around a session.

    Scopes nest: only the outermost scope commits, and an exception escaping
    the outermost scope rolls the whole unit back. Inner scopes just let
    exceptions propagate to their parent.
    """
    depth = session.info.get(_TX_DEPTH, 0)
    session.info[_TX_DEPTH] = depth + 1
    try:
        yield session
        if depth == 0:
            session.commit()
    except StaleDataError as exc:
        if depth == 0:
            session.rollback()
        raise ConcurrentModification(None, "row version changed before commit") from exc
    except SQLAlchemyError as exc:
        if depth == 0:
            session.rollback()
        raise StorageFailure(str(exc)) from exc
    except Exception:
        if depth == 0:
            session.rollback()
        raise
    finally:
        session.info[_TX_DEPTH] = depth


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)
