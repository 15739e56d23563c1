from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from reelfeed.db.base import Base


def make_engine(database_url: str) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Worker threads share the engine; wait on SQLite's write lock instead of failing
        connect_args = {"check_same_thread": False, "timeout": 30}
    return create_engine(database_url, pool_pre_ping=True, connect_args=connect_args)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create tables if they don't exist"""
    import reelfeed.models  # noqa: F401  registers every mapper on Base.metadata

    Base.metadata.create_all(bind=engine)
