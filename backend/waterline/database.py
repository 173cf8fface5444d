from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from waterline.config import settings


def enable_sqlite_savepoints(engine: Engine) -> Engine:
    """Let SQLAlchemy emit BEGIN itself so SAVEPOINT works under pysqlite.

    The outage replace runs delete + per-row savepoints in one transaction;
    pysqlite's own transaction handling would otherwise interfere.
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


is_sqlite = settings.database_url.startswith("sqlite")

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if is_sqlite else {},
    echo=False,
)
if is_sqlite:
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    import waterline.models.outage  # noqa: F401
    Base.metadata.create_all(bind=engine)
