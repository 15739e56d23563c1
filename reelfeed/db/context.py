from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker


@contextmanager
def get_db_session(session_factory: sessionmaker) -> Iterator[Session]:
    """Session for work outside a request. Callers commit; errors roll back."""
    db = session_factory()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def transaction(session_factory: sessionmaker) -> Iterator[Session]:
    """Session whose work is committed as one unit on clean exit."""
    with get_db_session(session_factory) as db:
        yield db
        db.commit()
