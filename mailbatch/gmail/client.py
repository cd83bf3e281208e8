"""Gmail API client with retry, batching and pagination cursor handling."""

import json
import random
import time
from typing import Any, Callable, Iterable, Optional, Sequence, Union
from urllib.parse import urlencode

from ..utils import get_logger
from . import batch
from .classifier import ErrorClassifier, failure_codes
from .errors import (
    ClassifiedError,
    DecodeFailure,
    Err,
    ErrorKind,
    Ok,
    Result,
    configuration_error,
    decode_error,
)
from .models import LabelList, Message, MessageIdPage, MessageQuery, OperationResult, ShapeError
from .retry import DEFAULT_BASE_DELAY_MS, DEFAULT_MAX_ATTEMPTS, DEFAULT_WAIT_CAP_MS, RetryState
from .stores import CursorStore
from .transport import (
    AUTH_REFRESH_FAILED,
    DEFAULT_TIMEOUT,
    UNKNOWN_FAILURE,
    PreparedRequest,
    RequestOptions,
    Response,
    Transport,
    TransportFailure,
)

logger = get_logger(__name__)


DEFAULT_API_BASE = 'https://gmail.googleapis.com/gmail'
BATCH_API_ENDPOINT = 'https://www.googleapis.com/batch/gmail/v1'

# Path marker routed to the batch endpoint instead of /users/me
BATCH_PATH = 'batch'

Outcome = Union[Response, TransportFailure]


class GmailClient:
    """
    Gmail API wrapper for listing, batch fetching and batch modifying messages.

    Every request goes through `send_with_retry`, which applies exponential
    backoff with jitter to transient failures. Operations never raise for
    API or network failures; they return `Ok(value)` or `Err(error)`.

    Attributes:
        transport: Performs the HTTP exchanges (None when the account is
            not connected)
        cursor_store: Receives nextPageToken after list calls
        classifier: Decides which failures are worth retrying

    Example:
        >>> client = GmailClient(HttpTransport(creds), cursor_store=MemoryCursorStore())
        >>> page = client.list_messages(MessageQuery(q="label:INBOX"))
        >>> if page.is_ok:
        ...     messages = client.batch_fetch(page.value.ids)
    """

    def __init__(
        self,
        transport: Optional[Transport],
        cursor_store: Optional[CursorStore] = None,
        api_base: str = DEFAULT_API_BASE,
        batch_endpoint: str = BATCH_API_ENDPOINT,
        service: str = 'gmail',
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_ms: int = DEFAULT_BASE_DELAY_MS,
        wait_cap_ms: int = DEFAULT_WAIT_CAP_MS,
        timeout: float = DEFAULT_TIMEOUT,
        classifier: Optional[ErrorClassifier] = None,
        sleep: Callable[[float], None] = time.sleep,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize Gmail API client.

        Args:
            transport: Transport for HTTP exchanges, None if disconnected
            cursor_store: Where to write pagination cursors
            api_base: Base URL of the REST API
            batch_endpoint: URL of the batch endpoint
            service: Service name used in batch sub-request paths
            max_attempts: Failed attempts allowed per operation
            base_delay_ms: Backoff base delay
            wait_cap_ms: Backoff upper bound
            timeout: Per-request timeout in seconds
            classifier: Error classifier (default table if None)
            sleep: Sleep function used by backoff
            rng: Random source used for jitter
        """
        self.transport = transport
        self.cursor_store = cursor_store
        self.api_base = api_base
        self.batch_endpoint = batch_endpoint
        self.service = service
        self.max_attempts = max_attempts
        self.base_delay_ms = base_delay_ms
        self.wait_cap_ms = wait_cap_ms
        self.timeout = timeout
        self.classifier = classifier or ErrorClassifier()
        self.boundary = batch.BATCH_BOUNDARY
        self._sleep = sleep
        self._rng = rng

    @classmethod
    def from_config(
        cls,
        config,
        transport: Optional[Transport],
        cursor_store: Optional[CursorStore] = None
    ) -> 'GmailClient':
        """Build a client from a Config instance."""
        return cls(
            transport,
            cursor_store=cursor_store,
            api_base=config.GMAIL_API_BASE,
            batch_endpoint=config.GMAIL_BATCH_ENDPOINT,
            service=config.GMAIL_SERVICE,
            max_attempts=config.RETRY_MAX_ATTEMPTS,
            base_delay_ms=config.RETRY_BASE_DELAY_MS,
            wait_cap_ms=config.RETRY_WAIT_CAP_MS,
            timeout=config.REQUEST_TIMEOUT
        )

    @property
    def connected(self) -> bool:
        return self.transport is not None

    def build_request_url(self, path: str, params: Optional[dict[str, Any]] = None) -> str:
        """
        Build the URL for a request.

        Args:
            path: Path relative to /v1/users/me, or BATCH_PATH
            params: Query parameters

        Returns:
            Absolute URL

        Example:
            >>> client.build_request_url('/messages', {'maxResults': 10})
            'https://gmail.googleapis.com/gmail/v1/users/me/messages?maxResults=10'
        """
        if path == BATCH_PATH:
            return self.batch_endpoint

        url = self.api_base.rstrip('/') + '/v1/users/me' + path
        if params:
            url += '?' + urlencode(params, doseq=True)
        return url

    def new_retry_state(self) -> RetryState:
        return RetryState(
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
            wait_cap_ms=self.wait_cap_ms,
            sleep=self._sleep,
            rng=self._rng
        )

    def list_messages(self, query: Union[MessageQuery, str, None] = None) -> Result:
        """
        List message IDs matching a query.

        Writes nextPageToken through the cursor store when the page has one.

        Args:
            query: MessageQuery or raw Gmail search string

        Returns:
            Ok(MessageIdPage) or Err(ClassifiedError)

        Example:
            >>> result = client.list_messages("label:INBOX !label:imported")
            >>> if result.is_ok:
            ...     print(f"Found {len(result.value.ids)} messages")
        """
        if isinstance(query, str) or query is None:
            query = MessageQuery(q=query or '')

        url = self.build_request_url('/messages', query.to_params())
        logger.debug(f"Listing messages: query='{query.q}', max={query.max_results}")

        result = self.send_with_retry(lambda: PreparedRequest('GET', url, self._options()))
        if not result.is_ok:
            logger.error(f"Failed to list messages: {result.error}")
            return result

        parsed = self._parse_json(result, MessageIdPage.from_json)
        if not parsed.is_ok:
            return parsed

        page = parsed.value
        if page.next_page_token and self.cursor_store is not None:
            self.cursor_store.set_cursor(page.next_page_token)

        logger.info(
            f"Listed {len(page.messages)} messages "
            f"(has_more={page.next_page_token is not None})"
        )
        return parsed

    def list_labels(self) -> Result:
        """
        Fetch all mailbox labels.

        Returns:
            Ok(LabelList) or Err(ClassifiedError)
        """
        url = self.build_request_url('/labels/')
        result = self.send_with_retry(lambda: PreparedRequest('GET', url, self._options()))
        if not result.is_ok:
            logger.error(f"Failed to fetch labels: {result.error}")
            return result

        parsed = self._parse_json(result, LabelList.from_json)
        if parsed.is_ok:
            logger.info(f"Fetched {len(parsed.value.labels)} labels")
        return parsed

    def batch_fetch(self, ids: Sequence[str]) -> Result:
        """
        Fetch full messages in batches of 100.

        Each chunk is one multipart request to the batch endpoint. A failure
        on any chunk aborts the whole fetch; results from earlier chunks are
        discarded.

        Args:
            ids: Message IDs in the desired output order

        Returns:
            Ok(list of Message in input order) or Err(ClassifiedError)

        Example:
            >>> result = client.batch_fetch(['1818f71c2f5cbf0c', '1818f6e43b70a3ac'])
            >>> [m.id for m in result.value]
            ['1818f71c2f5cbf0c', '1818f6e43b70a3ac']
        """
        if not self.connected:
            return Err(self._not_connected())

        ids = list(ids)
        if not ids:
            return Ok([])

        chunks = batch.chunked(ids, batch.CHUNK_SIZE)
        messages: list[Message] = []
        attempts = 0

        for batch_num, chunk in enumerate(chunks, start=1):
            logger.info(f"Processing batch {batch_num}/{len(chunks)}: {len(chunk)} messages")

            result = self._fetch_chunk(chunk)
            if not result.is_ok:
                logger.error(
                    f"Batch {batch_num}/{len(chunks)} failed, "
                    f"discarding {len(messages)} fetched messages: {result.error}"
                )
                return result

            messages.extend(result.value)
            attempts += result.attempts

        logger.info(f"Fetch complete: {len(messages)}/{len(ids)} messages")
        return Ok(messages, attempts=attempts)

    def _fetch_chunk(self, chunk: list[str]) -> Result:
        """
        Fetch one chunk, retrying when a part reports a transient error.

        A rate-limited or 5xx part costs one attempt of the same retry
        state as HTTP-level failures, so the chunk never makes more than
        max_attempts requests.
        """
        specs = [batch.message_get_spec(message_id, self.service) for message_id in chunk]
        body = batch.encode(specs, self.boundary, self.service)
        url = self.build_request_url(BATCH_PATH)
        headers = {'Content-Type': f"multipart/mixed; boundary={self.boundary}"}

        retry = self.new_retry_state()

        while True:
            result = self.send_with_retry(
                lambda: PreparedRequest('POST', url, self._options(headers, body)),
                retry=retry
            )
            if not result.is_ok:
                return result

            parsed = self._read_chunk(result.value, chunk)
            if parsed.is_ok:
                return Ok(parsed.value, attempts=result.attempts)

            error = parsed.error
            if error.kind is not ErrorKind.TRANSIENT:
                return Err(error.with_attempts(result.attempts))

            retry.advance()
            if not retry.retryable:
                logger.error(f"Giving up on batch after {retry.attempt} attempts: {error}")
                return Err(error.with_attempts(retry.attempt))

            logger.warning(
                f"Transient error in batch part {error.code}, retrying "
                f"(attempt {retry.attempt}/{retry.max_attempts})"
            )

    def _read_chunk(self, response: Response, chunk: list[str]) -> Result:
        decoded = batch.decode(response.body)
        if not decoded.is_ok:
            return decoded

        values = decoded.value
        if len(values) != len(chunk):
            return Err(self._part_mismatch(
                f"Batch returned {len(values)} parts for {len(chunk)} requests"
            ))

        messages = []
        transient = None
        for value in values:
            if isinstance(value, dict) and 'error' in value:
                error = self._error_from_part(value['error'], 0)
                if error.kind is not ErrorKind.TRANSIENT:
                    return Err(error)
                transient = transient or error
                continue
            try:
                messages.append(Message.from_json(value))
            except ShapeError as e:
                return Err(self._shape_error(e, 0))

        if transient is not None:
            return Err(transient)

        return self._in_request_order(messages, chunk)

    def _in_request_order(self, messages: list[Message], chunk: list[str]) -> Result:
        if [message.id for message in messages] == chunk:
            return Ok(messages)

        by_id = {message.id: message for message in messages}
        missing = [message_id for message_id in chunk if message_id not in by_id]
        if missing:
            return Err(self._part_mismatch(
                f"Batch response has no message for {len(missing)} requested ids "
                f"(first: {missing[0]})"
            ))

        logger.debug("Batch parts arrived out of order, reordering by id")
        return Ok([by_id[message_id] for message_id in chunk])

    @staticmethod
    def _part_mismatch(message: str) -> ClassifiedError:
        logger.error(message)
        return ClassifiedError(ErrorKind.FATAL, 'batch_part_mismatch', message)

    def batch_modify(
        self,
        ids: Sequence[str],
        add_label_ids: Iterable[Optional[str]]
    ) -> Result:
        """
        Add labels to many messages in one request.

        Args:
            ids: Message IDs to modify
            add_label_ids: Label IDs to add

        Returns:
            Ok(OperationResult) or Err(ClassifiedError). Empty ids or no
            label id give a CONFIGURATION error without any request.

        Example:
            >>> result = client.batch_modify(['msg1', 'msg2'], ['Label_123'])
        """
        ids = list(ids or [])
        label_ids = [label_id for label_id in (add_label_ids or []) if label_id]

        if not ids:
            return Err(configuration_error('batch_modify', "Postbody is empty: no message ids given"))

        if not label_ids:
            return Err(configuration_error('missing_label', "No label id was resolved to add"))

        url = self.build_request_url('/messages/batchModify')
        body = json.dumps({'ids': ids, 'addLabelIds': label_ids}).encode('utf-8')
        headers = {'Content-type': 'application/json'}

        logger.debug(f"Batch modifying {len(ids)} messages: add={label_ids}")

        result = self.send_with_retry(
            lambda: PreparedRequest('POST', url, self._options(headers, body))
        )
        if not result.is_ok:
            logger.error(f"Failed to batch modify messages: {result.error}")
            return result

        logger.info(f"Successfully modified {len(ids)} messages")
        return Ok(
            OperationResult(
                success=True,
                message_ids=ids,
                message=f"Successfully modified {len(ids)} messages",
                details={'added_labels': label_ids}
            ),
            attempts=result.attempts
        )

    def send_with_retry(
        self,
        build_request: Callable[[], PreparedRequest],
        retry: Optional[RetryState] = None
    ) -> Result:
        """
        Perform a request, retrying transient failures.

        Each failure advances the retry state. A transient failure gets one
        immediate repeat; after that the next try waits for the jittered
        backoff. Fatal and configuration failures return at once.

        Args:
            build_request: Builds the request for each try
            retry: State to continue from, so failures found after a
                successful exchange count against the same budget

        Returns:
            Ok(Response) with the number of failed attempts, or Err carrying
            the last failure annotated with attempts made
        """
        if not self.connected:
            return Err(self._not_connected())

        if retry is None:
            retry = self.new_retry_state()

        while True:
            retry.backoff()

            outcome = self._perform(build_request)
            if self._succeeded(outcome):
                return Ok(outcome, attempts=retry.attempt)

            error = self._record_failure(retry, outcome)
            if error.kind is not ErrorKind.TRANSIENT:
                return Err(error)
            if not retry.retryable:
                break

            outcome = self._perform(build_request)
            if self._succeeded(outcome):
                return Ok(outcome, attempts=retry.attempt)

            error = self._record_failure(retry, outcome)
            if error.kind is not ErrorKind.TRANSIENT:
                return Err(error)
            if not retry.retryable:
                break

        logger.error(f"Giving up after {retry.attempt} attempts: {error}")
        return Err(error)

    def _perform(self, build_request: Callable[[], PreparedRequest]) -> Outcome:
        request = build_request()
        try:
            return self.transport.send(request.method, request.url, request.options)
        except Exception as e:
            logger.exception(f"Transport raised for {request.method} {request.url}")
            return TransportFailure(UNKNOWN_FAILURE, f"{type(e).__name__}: {e}")

    @staticmethod
    def _succeeded(outcome: Outcome) -> bool:
        return isinstance(outcome, Response) and outcome.ok

    def _record_failure(self, retry: RetryState, outcome: Outcome) -> ClassifiedError:
        retry.advance()
        error = self._error_from_outcome(outcome, retry.attempt)

        if error.kind is ErrorKind.TRANSIENT and retry.retryable:
            logger.warning(
                f"Transient Gmail error {error.code}, retrying "
                f"(attempt {retry.attempt}/{retry.max_attempts})"
            )
        return error

    def _error_from_outcome(self, outcome: Outcome, attempts: int) -> ClassifiedError:
        if isinstance(outcome, TransportFailure):
            if outcome.code == AUTH_REFRESH_FAILED:
                return ClassifiedError(
                    ErrorKind.CONFIGURATION,
                    outcome.code,
                    f"Gmail authorization could not be refreshed, reconnect the account: {outcome.message}",
                    attempts=attempts
                )
            return ClassifiedError(
                self.classifier.classify_failure(outcome),
                outcome.code,
                f"Failed to reach Gmail: {outcome.message}",
                attempts=attempts
            )

        codes = failure_codes(outcome)
        return ClassifiedError(
            self.classifier.classify_failure(outcome),
            codes[0],
            self._describe_status(outcome),
            http_status=outcome.status,
            attempts=attempts
        )

    @staticmethod
    def _describe_status(response: Response) -> str:
        body = response.text[:500]

        if response.status == 400:
            return f"Failed to get JSON: - {body}"
        if response.status in (502, 503):
            return (
                "Gmail is currently experiencing problems. "
                f"Please wait for a while then try again: - {body}"
            )
        return f"We got an unknown error back from Gmail. This is what they said: - {body}"

    def _error_from_part(self, error: Any, attempts: int) -> ClassifiedError:
        """Classify an {"error": {...}} object found inside a batch response."""
        if not isinstance(error, dict):
            return ClassifiedError(ErrorKind.FATAL, 'batch_part_error', str(error), attempts=attempts)

        status = error.get('code') if isinstance(error.get('code'), int) else None
        reasons = [
            item['reason'] for item in error.get('errors') or []
            if isinstance(item, dict) and item.get('reason')
        ]
        code = reasons[0] if reasons else (status or 'batch_part_error')
        candidates = reasons + ([status] if status else [])
        kind = ErrorKind.FATAL
        if any(self.classifier.classify(c) is ErrorKind.TRANSIENT for c in candidates):
            kind = ErrorKind.TRANSIENT

        return ClassifiedError(
            kind,
            code,
            f"Batch part failed: {error.get('message', '')}",
            http_status=status,
            attempts=attempts
        )

    def _parse_json(self, result: Ok, shape: Callable[[Any], Any]) -> Result:
        response: Response = result.value
        try:
            data = json.loads(response.body) if response.body else {}
        except (ValueError, UnicodeDecodeError) as e:
            return Err(decode_error(
                DecodeFailure.MALFORMED_JSON,
                f"Failed to parse JSON: - {e}"
            ).with_attempts(result.attempts))

        try:
            return Ok(shape(data), attempts=result.attempts)
        except ShapeError as e:
            return Err(self._shape_error(e, result.attempts))

    @staticmethod
    def _shape_error(exc: ShapeError, attempts: int) -> ClassifiedError:
        logger.error(f"Unexpected Gmail payload: {exc}")
        return ClassifiedError(ErrorKind.FATAL, 'invalid_shape', str(exc), attempts=attempts)

    @staticmethod
    def _not_connected() -> ClassifiedError:
        return configuration_error(
            'not_connected',
            "Gmail account is not connected. Connect an account before syncing."
        )

    def _options(self, headers: Optional[dict[str, str]] = None, body: Optional[bytes] = None) -> RequestOptions:
        return RequestOptions(headers=dict(headers or {}), body=body, timeout=self.timeout)
