"""SQLite engine and session handling for the options store."""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Union

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from ..utils import get_logger
from .schema import Base, Option, utcnow


logger = get_logger(__name__)


# Seconds SQLite waits on a locked database before failing
LOCK_TIMEOUT = 30


def sqlite_engine(db_path: Path) -> Engine:
    """Create an engine for a SQLite file in WAL mode."""
    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": LOCK_TIMEOUT}
    )

    @event.listens_for(engine, "connect")
    def _enable_wal(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.close()

    return engine


class Database:
    """
    Owns the engine and session factory for one options database.

    Attributes:
        db_path: Path to SQLite database file
        engine: SQLAlchemy engine
        SessionLocal: Session factory

    Example:
        >>> db = Database("data/mailbatch.db")
        >>> db.create_tables()
        >>> with db.get_session() as session:
        ...     cursor = session.get(Option, "nextPageToken")
    """

    def __init__(self, db_path: Union[str, Path] = "data/mailbatch.db"):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.engine = sqlite_engine(self.db_path)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

        logger.debug(f"Options database at {self.db_path}")

    def create_tables(self) -> None:
        """Create the options table if it is missing."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except Exception as e:
            logger.error(f"Could not create tables in {self.db_path}: {e}")
            raise

    @contextmanager
    def get_session(self) -> Iterator[Session]:
        """
        Session scope that commits on success and rolls back on error.

        Errors are logged and re-raised.

        Example:
            >>> with db.get_session() as session:
            ...     session.add(Option(name="token_id", value=42))
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Session error: {e}")
            raise
        finally:
            session.close()

    def purge_expired(self) -> int:
        """Delete options whose expiry has passed; returns the count."""
        with self.get_session() as session:
            count = session.query(Option).filter(
                Option.expires_at.isnot(None),
                Option.expires_at <= utcnow()
            ).delete(synchronize_session=False)

        if count:
            logger.info(f"Purged {count} expired options")
        return count

    def get_stats(self) -> dict:
        with self.get_session() as session:
            total = session.query(Option).count()
            expiring = session.query(Option).filter(Option.expires_at.isnot(None)).count()
        return {'options': total, 'expiring': expiring}

    def dispose(self) -> None:
        """Close pooled connections (the file stays on disk)."""
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"<Database(path={self.db_path})>"
