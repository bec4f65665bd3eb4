import uuid
from contextlib import contextmanager
from typing import Any, Iterator, Optional

from fastapi import Depends, Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

Base = declarative_base()


def new_id() -> str:
    return uuid.uuid4().hex


def normalize_id(value: Any) -> Optional[str]:
    """Return the canonical string form of an entity id, or None when empty.

    Every id that crosses the store boundary goes through here so that
    comparisons never mix representations (UUID objects, dashed strings,
    upper-case hex, stray whitespace).
    """
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value.hex
    text = str(value).strip().lower()
    if not text:
        return None
    try:
        return uuid.UUID(text).hex
    except ValueError:
        return text


class EntityStore:
    """Explicitly constructed handle on the document store.

    Created once at startup (or by a CLI runner), connected, handed to
    whoever needs sessions, and disconnected on shutdown.
    """

    def __init__(self, url: str):
        self.url = url
        self.engine: Optional[Engine] = None
        self._sessionmaker: Optional[sessionmaker] = None

    @property
    def connected(self) -> bool:
        return self.engine is not None

    def connect(self) -> "EntityStore":
        if self.engine is not None:
            return self
        kwargs: dict = {"future": True}
        if self.url.startswith("sqlite"):
            # For SQLite, enable check_same_thread=False for multithreading in FastAPI
            kwargs["connect_args"] = {"check_same_thread": False}
            if self.url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise each session sees an empty db
                kwargs["poolclass"] = StaticPool
        engine = create_engine(self.url, **kwargs)
        # models must be registered on Base before create_all
        from . import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        self.engine = engine
        self._sessionmaker = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=engine, future=True
        )
        return self

    def disconnect(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._sessionmaker = None

    def new_session(self) -> Session:
        if self._sessionmaker is None:
            raise RuntimeError("store is not connected")
        return self._sessionmaker()

    @contextmanager
    def session(self) -> Iterator[Session]:
        db = self.new_session()
        try:
            yield db
        finally:
            db.close()

    def __enter__(self) -> "EntityStore":
        return self.connect()

    def __exit__(self, *exc) -> None:
        self.disconnect()


# Dependencies to get the store / a DB session per request

def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_db(store: EntityStore = Depends(get_store)) -> Iterator[Session]:
    with store.session() as db:
        yield db
