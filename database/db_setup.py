# database/db_setup.py
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from core.settings import DB_URL

# ---------------------------------------------------------------------
# Base class for ORM models
# ---------------------------------------------------------------------
Base = declarative_base()

# ---------------------------------------------------------------------
# Engine factory
# ---------------------------------------------------------------------
def get_engine(url: str = None) -> Engine:
    """
    Return a SQLAlchemy Engine for ``url`` (defaults to VIRTUAL_DB_URL).

    In-memory SQLite gets a single shared connection so every session sees
    the same database.

    Example:
        engine = get_engine("sqlite://")
    """
    url = url or DB_URL
    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            echo=False,
            future=True,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url, echo=False, future=True)


def init_db(engine: Engine) -> None:
    """Create every table known to ``Base`` (models must be imported first)."""
    from . import models  # noqa: F401 - registers the mapped classes

    Base.metadata.create_all(engine)
