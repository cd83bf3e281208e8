"""HTTP transport used by the Gmail client."""

import hashlib
from dataclasses import dataclass, field
from typing import Optional, Protocol, Union

import requests
from google.auth.credentials import Credentials
from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import AuthorizedSession

from ..utils import get_logger


logger = get_logger(__name__)


DEFAULT_TIMEOUT = 10

# Transport failure codes that are not network faults
UNKNOWN_FAILURE = -1
AUTH_REFRESH_FAILED = 'auth_refresh_failed'


@dataclass
class RequestOptions:
    """Headers, body and timeout for a single HTTP exchange."""
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes | None = None
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class Response:
    """Completed HTTP exchange."""
    status: int
    body: bytes = b''
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')


@dataclass
class TransportFailure:
    """
    Network-level fault with no HTTP response.

    Codes follow curl numbering (6 DNS, 7 connect, 28 timeout, 35 TLS,
    52 empty reply) so they can be classified from a single table.
    """
    code: Union[int, str]
    message: str


@dataclass
class PreparedRequest:
    """A request ready to be handed to a Transport."""
    method: str
    url: str
    options: RequestOptions = field(default_factory=RequestOptions)


class Transport(Protocol):
    """Anything that can perform one HTTP exchange."""

    def send(
        self,
        method: str,
        url: str,
        options: RequestOptions
    ) -> Union[Response, TransportFailure]:
        ...


def failure_from_exception(exc: Exception) -> TransportFailure:
    """
    Map a requests/google-auth exception onto a transport failure code.

    Order matters: SSLError and ConnectTimeout are ConnectionError
    subclasses.
    """
    message = str(exc)

    if isinstance(exc, RefreshError):
        return TransportFailure(AUTH_REFRESH_FAILED, message)
    if isinstance(exc, requests.exceptions.SSLError):
        return TransportFailure(35, message)
    if isinstance(exc, requests.exceptions.Timeout):
        return TransportFailure(28, message)
    if isinstance(exc, requests.exceptions.ChunkedEncodingError):
        return TransportFailure(52, message)
    if isinstance(exc, requests.exceptions.ConnectionError):
        if 'RemoteDisconnected' in message or 'without response' in message:
            return TransportFailure(52, message)
        if (
            'NameResolutionError' in message
            or 'Name or service not known' in message
            or 'getaddrinfo failed' in message
            or 'nodename nor servname' in message
        ):
            return TransportFailure(6, message)
        return TransportFailure(7, message)
    if isinstance(exc, TransportError):
        return TransportFailure(7, message)

    return TransportFailure(UNKNOWN_FAILURE, message)


def credentials_token_id(credentials: Credentials) -> str:
    """
    Stable ID for the token behind a set of credentials.

    Derived from the OAuth client and refresh token, so it survives access
    token refreshes and changes when the account is reconnected. The
    refresh token itself never leaves this function.
    """
    client_id = getattr(credentials, 'client_id', None) or ''
    refresh_token = getattr(credentials, 'refresh_token', None) or ''
    digest = hashlib.sha256(f"{client_id}:{refresh_token}".encode('utf-8'))
    return digest.hexdigest()[:16]


class HttpTransport:
    """
    Transport backed by an authorized requests session.

    Attributes:
        session: google-auth AuthorizedSession that signs each request

    Example:
        >>> from google.oauth2.credentials import Credentials
        >>> creds = Credentials.from_authorized_user_file("credentials/token.json")
        >>> transport = HttpTransport(creds)
        >>> res = transport.send("GET", "https://gmail.googleapis.com/gmail/v1/users/me/labels",
        ...                      RequestOptions())
    """

    def __init__(
        self,
        credentials: Credentials,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the transport.

        Args:
            credentials: OAuth2 credentials for the mailbox account
            session: Pre-built session (mainly for tests)
        """
        self.session = session or AuthorizedSession(credentials)

    def send(
        self,
        method: str,
        url: str,
        options: RequestOptions
    ) -> Union[Response, TransportFailure]:
        logger.debug(f"{method}: {url}")

        try:
            res = self.session.request(
                method,
                url,
                headers=options.headers,
                data=options.body,
                timeout=options.timeout
            )
        except (requests.exceptions.RequestException, RefreshError, TransportError) as e:
            failure = failure_from_exception(e)
            logger.warning(f"{method} {url} failed at transport level: {failure.code}")
            return failure

        return Response(
            status=res.status_code,
            body=res.content or b'',
            headers=dict(res.headers)
        )
