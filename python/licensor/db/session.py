"""Session factories and the commit/rollback helper.

Each store gets its own ``sessionmaker``. Objects stay readable after commit
(``expire_on_commit=False``) because services return values built from rows
after their session has closed.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory for the registry or secret store engine."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


@contextmanager
def transaction(db: Session) -> Generator[None, None, None]:
    """Commit ``db`` if the block succeeds, roll it back and re-raise otherwise.

    Usage:
        with sessions() as db, transaction(db):
            db.add(row)
    """
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise
