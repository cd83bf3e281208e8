"""Label name to label id resolution with a lazily filled cache."""

from typing import Optional

from ..utils import get_logger
from .client import GmailClient
from .stores import LabelCache, MemoryLabelCache


logger = get_logger(__name__)


class LabelResolver:
    """
    Resolve Gmail label names to label IDs.

    The first lookup for a name lists the mailbox labels; a match is cached
    until `invalidate()` is called (e.g. when the account is disconnected).
    Misses and failed lookups are not cached, so a label created later is
    picked up on the next call.

    Attributes:
        client: GmailClient used for the labels.list call
        cache: Where resolved IDs are kept

    Example:
        >>> resolver = LabelResolver(client)
        >>> label_id = resolver.resolve("imported")
        >>> if label_id is None:
        ...     print("Create the 'imported' label in Gmail first")
    """

    def __init__(self, client: GmailClient, cache: Optional[LabelCache] = None):
        self.client = client
        self.cache = cache if cache is not None else MemoryLabelCache()

    def resolve(self, label_name: str) -> Optional[str]:
        """
        Get the ID of a label by exact name.

        Args:
            label_name: Label name as shown in Gmail

        Returns:
            Label ID, or None if the label does not exist or the lookup failed
        """
        label_id = self.cache.get_label_id(label_name)
        if label_id:
            return label_id

        result = self.client.list_labels()
        if not result.is_ok:
            logger.warning(f"Could not resolve label '{label_name}': {result.error}")
            return None

        label = result.value.find(label_name)
        if label is None:
            logger.info(f"No label named '{label_name}' in mailbox")
            return None

        self.cache.set_label_id(label_name, label.id)
        logger.debug(f"Resolved label '{label_name}': {label.id}")
        return label.id

    def invalidate(self) -> None:
        """Forget all resolved labels."""
        self.cache.clear_labels()
        logger.debug("Label cache cleared")
