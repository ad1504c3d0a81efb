import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from marketplace.core.config import settings
from marketplace.core.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def _serialize_sqlite_writers(engine: Engine):
    """
    Take the SQLite write lock as soon as a transaction starts.

    SQLite has no row locks and pysqlite defers BEGIN to the first write, so
    without this two balance updates on one account could interleave.
    """

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, _connection_record):
        # let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def build_engine(url: str) -> Engine:
    is_sqlite = url.startswith("sqlite")
    engine = create_engine(
        url,
        pool_pre_ping=True,  # test connections before using
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )
    if is_sqlite:
        _serialize_sqlite_writers(engine)
    return engine


engine = build_engine(settings.DATABASE_URL)

SessionLocal = sessionmaker(autoflush=False, bind=engine)
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session):
    """Run the enclosed read-modify-write block as one transaction.

    Commits on success. Any error rolls the whole block back; store failures
    are re-raised as PersistenceError and never retried here.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Transaction rolled back: {e}")
        raise PersistenceError("The data store is unavailable, no changes were applied") from e
    except Exception:
        db.rollback()
        raise
