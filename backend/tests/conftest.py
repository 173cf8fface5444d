import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from waterline.database import Base, enable_sqlite_savepoints
import waterline.models.outage  # noqa: F401


@pytest.fixture
def session_factory():
    """In-memory SQLite shared across sessions of one test."""
    engine = enable_sqlite_savepoints(create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    ))
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()
