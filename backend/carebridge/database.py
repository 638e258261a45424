from pathlib import Path
from typing import Generator

from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from carebridge.config import DATABASE_URL, SQL_ECHO


def _build_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, echo=SQL_ECHO, pool_pre_ping=True)

    if ":memory:" not in url:
        Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
    # Background jobs open their own sessions on executor threads
    return create_engine(url, echo=SQL_ECHO, connect_args={"check_same_thread": False})


engine: Engine = _build_engine(DATABASE_URL)


def new_session() -> Session:
    """Session for work outside a request, e.g. background re-syncs and seeding."""
    return Session(engine)


def get_session() -> Generator[Session, None, None]:
    with new_session() as session:
        yield session


def init_db() -> None:
    import carebridge.models  # noqa: F401

    SQLModel.metadata.create_all(engine)
