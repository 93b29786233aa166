from __future__ import annotations

import logging
from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from scavhunt.core.config import Settings

_LOG = logging.getLogger("scavhunt.db")


class Base(DeclarativeBase):
    pass


class AppContext:
    """Process-wide resources owned by one application instance."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Engine | None = None
        self.session_factory: sessionmaker | None = None

    def start(self) -> None:
        if self.engine is not None:
            return
        url = self.settings.database_url
        kwargs: dict = {"pool_pre_ping": True}
        if url.startswith("sqlite"):
            kwargs = {"connect_args": {"check_same_thread": False}}
            if ":memory:" in url:
                kwargs["poolclass"] = StaticPool
        self.engine = create_engine(url, **kwargs)
        self.session_factory = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)
        if self.settings.DB_CREATE_ALL:
            # Registers the mapped tables on Base.metadata.
            import scavhunt.models.hunt  # noqa: F401
            import scavhunt.models.user  # noqa: F401

            Base.metadata.create_all(bind=self.engine)
        _LOG.info("DB connection successful (%s)", self.engine.url.render_as_string(hide_password=True))

    def stop(self) -> None:
        if self.engine is None:
            return
        self.engine.dispose()
        self.engine = None
        self.session_factory = None
        _LOG.info("DB connection closed")

    def session(self) -> Session:
        if self.session_factory is None:
            raise RuntimeError("Application context is not started")
        return self.session_factory()


def get_db(request: Request) -> Iterator[Session]:
    context: AppContext = request.app.state.context
    db = context.session()
    try:
        yield db
    finally:
        db.close()
