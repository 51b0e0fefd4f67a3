from collections.abc import Generator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool


class Database:
    """Engine plus session factory owned by one application instance.

    Built in the lifespan and kept on ``app.state.database``; request handlers
    reach it through ``get_db`` and the live websocket through ``websocket.app``.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.session_factory = sessionmaker(bind=engine, autoflush=False, autocommit=False, class_=Session)

    @classmethod
    def from_url(cls, database_url: str, *, app_env: str = "local") -> "Database":
        is_sqlite = database_url.startswith("sqlite")
        engine_kwargs: dict = {
            "pool_pre_ping": True,
            "connect_args": {"check_same_thread": False} if is_sqlite else {},
        }
        if is_sqlite and app_env.lower() == "test":
            engine_kwargs["poolclass"] = NullPool
        return cls(create_engine(database_url, **engine_kwargs))

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Generator[Session, None, None]:
    db = request.app.state.database.session()
    try:
        yield db
    finally:
        db.close()
