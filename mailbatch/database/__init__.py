"""Option persistence for the connected mailbox."""

from .database import Database
from .repository import OptionsStore
from .schema import Base, Option

__all__ = [
    "Base",
    "Database",
    "Option",
    "OptionsStore",
]
