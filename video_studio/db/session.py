from collections.abc import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from video_studio.core.config import get_settings


def create_db_engine(database_url: str) -> Engine:
    """Engine for the job store.

    Route handlers run in FastAPI's thread pool, so SQLite connections must be
    shareable across threads. An in-memory SQLite database only exists for the
    life of its connection and is pinned to a single one.
    """
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    options: dict = {"connect_args": {"check_same_thread": False}}
    if database_url in ("sqlite://", "sqlite:///:memory:"):
        options["poolclass"] = StaticPool
    return create_engine(database_url, **options)


engine = create_db_engine(get_settings().database_url)
SessionLocal = sessionmaker(bind=engine, autoflush=False)


def get_db() -> Iterator[Session]:
    with SessionLocal() as db:
        yield db
