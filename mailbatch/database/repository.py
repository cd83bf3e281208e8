"""Repository layer for persisted mailbox options."""

from datetime import timedelta
from typing import Any, Optional

from ..utils import get_logger
from .database import Database
from .schema import Option, utcnow

logger = get_logger(__name__)


CURSOR_OPTION = 'nextPageToken'
LABEL_OPTION_PREFIX = 'label:'


class OptionsStore:
    """
    Key/value options for the connected mailbox, stored in SQLite.

    Also serves as the CursorStore for GmailClient and the LabelCache for
    LabelResolver, so cursor and label IDs survive restarts and are wiped
    together by `reset()`.

    Attributes:
        database: Database instance

    Example:
        >>> store = OptionsStore(Database("data/mailbatch.db"))
        >>> store.set_option("token_id", 42)
        >>> store.get_option("token_id")
        42
    """

    def __init__(self, database: Database):
        """
        Initialize the store, creating tables if needed.

        Args:
            database: Database instance
        """
        self.database = database
        self.database.create_tables()

    def get_option(self, name: str, default: Any = None) -> Any:
        """
        Get an option value.

        Expired options are treated as absent.

        Args:
            name: Option name
            default: Returned when the option is missing or expired

        Returns:
            Stored value or default
        """
        with self.database.get_session() as session:
            option = session.get(Option, name)
            if option is None or option.is_expired():
                return default
            return option.value

    def set_option(self, name: str, value: Any, ttl: Optional[float] = None) -> None:
        """
        Set an option value.

        Args:
            name: Option name
            value: JSON-serializable value; None deletes the option
            ttl: Seconds until the option expires (None = never)
        """
        if value is None:
            self.delete_option(name)
            return

        expires_at = utcnow() + timedelta(seconds=ttl) if ttl is not None else None

        with self.database.get_session() as session:
            option = session.get(Option, name)
            if option is None:
                session.add(Option(name=name, value=value, expires_at=expires_at))
            else:
                option.value = value
                option.expires_at = expires_at
                option.updated_at = utcnow()

        logger.debug(f"Set option '{name}'")

    def delete_option(self, name: str) -> None:
        with self.database.get_session() as session:
            session.query(Option).filter(Option.name == name).delete()

    def delete_prefixed(self, prefix: str) -> int:
        """Delete all options whose name starts with prefix."""
        with self.database.get_session() as session:
            count = session.query(Option).filter(
                Option.name.startswith(prefix, autoescape=True)
            ).delete(synchronize_session=False)
        return count

    def reset(self) -> None:
        """Delete every option."""
        with self.database.get_session() as session:
            count = session.query(Option).delete()
        logger.info(f"Reset {count} options")

    # CursorStore

    def set_cursor(self, token: str) -> None:
        self.set_option(CURSOR_OPTION, token)

    def get_cursor(self) -> Optional[str]:
        return self.get_option(CURSOR_OPTION)

    # LabelCache

    def get_label_id(self, label_name: str) -> Optional[str]:
        return self.get_option(LABEL_OPTION_PREFIX + label_name)

    def set_label_id(self, label_name: str, label_id: str) -> None:
        self.set_option(LABEL_OPTION_PREFIX + label_name, label_id)

    def clear_labels(self) -> None:
        self.delete_prefixed(LABEL_OPTION_PREFIX)
