"""Multipart encoding and decoding for the Gmail batch endpoint.

See https://developers.google.com/gmail/api/guides/batch
"""

import json
from dataclasses import dataclass, field
from typing import Sequence

from ..utils import get_logger
from .errors import DecodeFailure, Err, Ok, Result, decode_error


logger = get_logger(__name__)


BATCH_BOUNDARY = 'batch_mailbatch'
BATCH_HOST = 'www.googleapis.com'
CHUNK_SIZE = 100

# Every closing boundary the batch endpoint emits starts with this.
CLOSING_MARKER_PREFIX = '--batch_'


@dataclass(frozen=True)
class RequestSpec:
    """One sub-request of a batch, e.g. GET /gmail/v1/users/me/messages/<id>."""
    method: str
    path: str


@dataclass
class RawPart:
    headers: list[tuple[str, str]]
    body: bytes


@dataclass
class BatchEnvelope:
    """
    Boundary plus ordered parts of a multipart/mixed batch body.

    Part order is the only correlation between a sub-request and its
    response fragment.
    """
    boundary: str
    parts: list[RawPart] = field(default_factory=list)
    service: str = 'gmail'
    host: str = BATCH_HOST

    @classmethod
    def from_requests(
        cls,
        request_specs: Sequence[RequestSpec],
        boundary: str,
        service: str = 'gmail',
        host: str = BATCH_HOST
    ) -> 'BatchEnvelope':
        parts = [
            RawPart(
                headers=[('Content-Type', 'application/http;')],
                body=f"{spec.method} {spec.path}".encode('utf-8')
            )
            for spec in request_specs
        ]
        return cls(boundary=boundary, parts=parts, service=service, host=host)

    @property
    def content_type(self) -> str:
        return f"multipart/mixed; boundary={self.boundary}"

    def to_bytes(self) -> bytes:
        lines = [
            f"POST /batch/{self.service}/v1 HTTP/1.1\n",
            f"Host: {self.host}\n",
            f"Content-Type: {self.content_type}\n",
        ]
        body = ''.join(lines).encode('utf-8')

        for part in self.parts:
            body += f"\n--{self.boundary}\n".encode('utf-8')
            for name, value in part.headers:
                body += f"{name}: {value}\n".encode('utf-8')
            body += b"\n" + part.body + b"\n\n"

        body += f"--{self.boundary}--\n".encode('utf-8')
        return body


def message_get_spec(message_id: str, service: str = 'gmail') -> RequestSpec:
    return RequestSpec('GET', f"/{service}/v1/users/me/messages/{message_id}")


def encode(
    request_specs: Sequence[RequestSpec],
    boundary: str = BATCH_BOUNDARY,
    service: str = 'gmail',
    host: str = BATCH_HOST
) -> bytes:
    """
    Build a multipart batch request body.

    Args:
        request_specs: Ordered sub-requests
        boundary: Multipart boundary string
        service: API service name used in the batch path
        host: Host line written into the body

    Returns:
        Request body bytes

    Example:
        >>> body = encode([message_get_spec("a1")], boundary="batch_x")
        >>> b"GET /gmail/v1/users/me/messages/a1" in body
        True
    """
    envelope = BatchEnvelope.from_requests(request_specs, boundary, service, host)
    return envelope.to_bytes()


def decode(raw_body: bytes) -> Result:
    """
    Turn a multipart batch response into an ordered list of JSON values.

    The batch endpoint answers with each JSON document wrapped in its own
    boundary line and HTTP response headers. The text preceding the first
    `{` is taken as the separator between documents, the closing boundary
    is cut off, and the remaining fragments are parsed as one JSON array.

    Args:
        raw_body: Response body as received

    Returns:
        Ok(list of decoded JSON values) or Err with a DecodeFailure code
    """
    if not raw_body:
        return Err(decode_error(DecodeFailure.EMPTY, "No response returned"))

    try:
        text = raw_body.decode('utf-8') if isinstance(raw_body, bytes) else raw_body
    except UnicodeDecodeError as e:
        return Err(decode_error(
            DecodeFailure.MALFORMED_JSON,
            f"Batch response is not valid UTF-8: {e}"
        ))

    start = text.find('{')
    delimiter = text[:start] if start > 0 else ''

    if not delimiter:
        return Err(decode_error(
            DecodeFailure.NO_DELIMITER,
            f"Failed to convert to JSON: - {text[:200]}"
        ))

    end = text.rfind(CLOSING_MARKER_PREFIX)
    if end >= 0:
        text = text[:end]

    fragments = [chunk for chunk in text.split(delimiter) if chunk.strip()]
    joined = '[' + ','.join(fragments) + ']'

    try:
        values = json.loads(joined)
    except ValueError as e:
        logger.debug(f"Unparseable batch payload: {joined[:500]}")
        return Err(decode_error(
            DecodeFailure.MALFORMED_JSON,
            f"Failed to parse JSON: - {e}"
        ))

    return Ok(values)


def chunked(items: Sequence[str], size: int = CHUNK_SIZE) -> list[list[str]]:
    """Split items into consecutive chunks of at most `size`."""
    return [list(items[i:i + size]) for i in range(0, len(items), size)]
