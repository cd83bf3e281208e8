"""Classification of Gmail API failures into transient and fatal."""

import json
from typing import Iterable, Union

from .errors import ErrorKind
from .transport import Response, TransportFailure


# HTTP statuses worth retrying
TRANSIENT_HTTP_STATUSES = frozenset({500, 503})

# Gmail error reasons for quota exhaustion
TRANSIENT_REASONS = frozenset({
    'rateLimitExceeded',
    'userRateLimitExceeded',
})

# Low-level connection failure codes (curl numbering)
COULDNT_RESOLVE_HOST = 6
COULDNT_CONNECT = 7
OPERATION_TIMEDOUT = 28
SSL_CONNECT_ERROR = 35
GOT_NOTHING = 52

TRANSIENT_TRANSPORT_CODES = frozenset({
    COULDNT_RESOLVE_HOST,
    COULDNT_CONNECT,
    OPERATION_TIMEDOUT,
    SSL_CONNECT_ERROR,
    GOT_NOTHING,
})

Code = Union[str, int]


def _normalize(code: Code) -> Code:
    if isinstance(code, str) and code.strip().isdigit():
        return int(code.strip())
    return code


class ErrorClassifier:
    """
    Explicit lookup table mapping failure codes to TRANSIENT or FATAL.

    There is no guessing on status ranges: a code is transient only if it
    appears in the table. Extra transient codes can be supplied to extend
    the defaults.

    Example:
        >>> classifier = ErrorClassifier()
        >>> classifier.classify(503)
        <ErrorKind.TRANSIENT: 'transient'>
        >>> classifier.classify(404)
        <ErrorKind.FATAL: 'fatal'>
    """

    def __init__(self, extra_transient: Iterable[Code] = ()):
        self.transient_codes: frozenset = frozenset(
            set(TRANSIENT_HTTP_STATUSES)
            | set(TRANSIENT_REASONS)
            | set(TRANSIENT_TRANSPORT_CODES)
            | {_normalize(code) for code in extra_transient}
        )

    def classify(self, code: Code) -> ErrorKind:
        """
        Classify a status code, API reason or transport code.

        Args:
            code: HTTP status, Gmail error reason, or transport failure code

        Returns:
            ErrorKind.TRANSIENT or ErrorKind.FATAL
        """
        if _normalize(code) in self.transient_codes:
            return ErrorKind.TRANSIENT
        return ErrorKind.FATAL

    def classify_failure(self, failure: Union[Response, TransportFailure]) -> ErrorKind:
        """
        Classify a failed exchange.

        A response is transient if its status or any reason in its JSON
        error body is in the table.
        """
        if isinstance(failure, TransportFailure):
            return self.classify(failure.code)

        for code in failure_codes(failure):
            if self.classify(code) is ErrorKind.TRANSIENT:
                return ErrorKind.TRANSIENT
        return ErrorKind.FATAL


def failure_codes(response: Response) -> list[Code]:
    """
    Candidate codes of a failed response: error reasons first, then status.

    Gmail error bodies look like:
        {"error": {"code": 403, "status": "PERMISSION_DENIED",
                   "errors": [{"reason": "rateLimitExceeded", ...}]}}
    """
    codes: list[Code] = []
    try:
        data = json.loads(response.body) if response.body else None
    except (ValueError, UnicodeDecodeError):
        data = None

    error = data.get('error') if isinstance(data, dict) else None
    if isinstance(error, dict):
        for item in error.get('errors') or []:
            if isinstance(item, dict) and item.get('reason'):
                codes.append(item['reason'])
        if error.get('status'):
            codes.append(error['status'])

    codes.append(response.status)
    return codes
