"""Inbox fetch and imported-label bookkeeping for a connected mailbox."""

from typing import Any, List, Sequence

from ..database import OptionsStore
from ..gmail import GmailClient, LabelResolver
from ..gmail.errors import ClassifiedError, Err, ErrorKind, Ok, Result, configuration_error
from ..gmail.models import Message, MessageQuery, ShapeError
from ..utils import get_logger


logger = get_logger(__name__)


# Option holding the last fetched inbox until it is imported
MESSAGES_OPTION = 'fetch-messages'

# Option used as a short lock against simultaneous fetches
QUERY_LOCK_OPTION = 'query-lock'
QUERY_LOCK_TTL = 7

TOKEN_ID_OPTION = 'token_id'


class MailboxSync:
    """
    Fetch not-yet-imported inbox messages and mark them as imported.

    Fetched messages are kept in the options store until they are labelled
    as imported, so repeated fetches are served without calling Gmail.

    Attributes:
        client: GmailClient for API access
        resolver: LabelResolver for the imported label
        store: OptionsStore for snapshots, lock and token id
        imported_label: Name of the label marking imported messages

    Example:
        >>> sync = MailboxSync(client, LabelResolver(client, store), store)
        >>> result = sync.fetch_inbox()
        >>> if result.is_ok:
        ...     ids = [m.id for m in result.value]
        ...     sync.label_imported(ids)
    """

    def __init__(
        self,
        client: GmailClient,
        resolver: LabelResolver,
        store: OptionsStore,
        imported_label: str = 'imported',
        max_results: int = 300
    ):
        self.client = client
        self.resolver = resolver
        self.store = store
        self.imported_label = imported_label
        self.max_results = max_results

    def inbox_query(self) -> MessageQuery:
        return MessageQuery(
            q=f"label:INBOX !label:{self.imported_label}",
            max_results=self.max_results,
            include_spam_trash=False
        )

    def fetch_inbox(self) -> Result:
        """
        Get inbox messages that are not labelled as imported.

        Returns:
            Ok(list of Message) or Err(ClassifiedError). A TRANSIENT
            `server_busy` error means another fetch holds the lock.
        """
        stored = self.store.get_option(MESSAGES_OPTION)
        if stored is not None:
            try:
                messages = [Message.from_json(item) for item in stored]
            except ShapeError as e:
                logger.warning(f"Discarding unreadable stored messages: {e}")
                self.store.delete_option(MESSAGES_OPTION)
            else:
                logger.info(f"Serving {len(messages)} stored messages")
                return Ok(messages)

        if self.store.get_option(QUERY_LOCK_OPTION) is not None:
            return Err(ClassifiedError(
                ErrorKind.TRANSIENT,
                'server_busy',
                "Server Busy try again",
                http_status=529
            ))

        self.store.set_option(QUERY_LOCK_OPTION, 1, ttl=QUERY_LOCK_TTL)
        try:
            return self._fetch_and_store()
        finally:
            self.store.delete_option(QUERY_LOCK_OPTION)

    def _fetch_and_store(self) -> Result:
        page = self.client.list_messages(self.inbox_query())
        if not page.is_ok:
            return page

        ids = page.value.ids
        logger.info(f"Found {len(ids)} messages to fetch")

        fetched = self.client.batch_fetch(ids)
        if not fetched.is_ok:
            return fetched

        if fetched.value:
            self.store_messages([message.raw for message in fetched.value])

        return fetched

    def store_messages(self, raw_messages: List[Any] | None) -> None:
        """Replace the stored snapshot; None clears it."""
        self.store.set_option(MESSAGES_OPTION, raw_messages)

    def label_imported(self, message_ids: Sequence[str]) -> Result:
        """
        Add the imported label to messages and drop the stored snapshot.

        Args:
            message_ids: Gmail message IDs

        Returns:
            Ok(OperationResult) or Err(ClassifiedError)
        """
        label_id = self.resolver.resolve(self.imported_label)
        if not label_id:
            return Err(configuration_error(
                'invalid_param_value',
                f'No label "{self.imported_label}" was found in Gmail'
            ))

        result = self.client.batch_modify(list(message_ids), [label_id])
        if not result.is_ok:
            return result

        # The next fetch should go to Gmail again
        self.store_messages(None)
        return result

    @property
    def token_id(self) -> Any:
        """ID of the connected token, None when no mailbox is connected."""
        return self.store.get_option(TOKEN_ID_OPTION)

    def connect(self, token_id: Any) -> bool:
        """
        Record the token the mailbox is accessed with.

        Connecting a different token than the stored one means another
        account, so cursor, label cache and snapshot are dropped first.

        Args:
            token_id: ID of the token now in use

        Returns:
            True if the stored state was reset
        """
        ours = self.token_id
        if ours is not None and str(ours) == str(token_id):
            return False

        reset = ours is not None
        if reset:
            logger.info("Mailbox token changed, options reset")
            self.store.reset()
            self.resolver.invalidate()

        self.store.set_option(TOKEN_ID_OPTION, token_id)
        logger.info(f"Mailbox connected with token {token_id}")
        return reset

    def on_connection_deleted(self, token_id: Any) -> bool:
        """
        Forget everything about the mailbox when its token is deleted.

        Args:
            token_id: ID of the deleted token

        Returns:
            True if the deleted token was ours and state was reset
        """
        ours = self.token_id
        if ours is None or str(ours) != str(token_id):
            return False

        self.store.reset()
        self.resolver.invalidate()
        logger.info("Mailbox connection deleted, options reset")
        return True
