"""Typed error and result values returned by the Gmail transport layer."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar('T')


class ErrorKind(str, Enum):
    """
    Broad category of a failure.

    TRANSIENT failures are expected to succeed on retry (rate limits,
    timeouts, 5xx). FATAL failures will not change on retry. CONFIGURATION
    failures need someone to fix the setup (missing label, disconnected
    account, empty input) and are never retried.
    """
    TRANSIENT = 'transient'
    FATAL = 'fatal'
    CONFIGURATION = 'configuration'


class DecodeFailure(str, Enum):
    """Reasons a batch response body could not be decoded."""
    EMPTY = 'empty'
    NO_DELIMITER = 'no_delimiter'
    MALFORMED_JSON = 'malformed_json'


@dataclass(frozen=True)
class ClassifiedError:
    """
    Terminal error surfaced to callers.

    Attributes:
        kind: Transient, fatal or configuration
        code: Machine-readable code (HTTP status, API reason or local code)
        message: Human-readable description
        http_status: Originating HTTP status, when there was a response
        attempts: Number of failed attempts recorded before giving up

    Example:
        >>> error = ClassifiedError(ErrorKind.FATAL, 404, "Not found", http_status=404)
        >>> error.is_retryable
        False
    """
    kind: ErrorKind
    code: Union[str, int]
    message: str
    http_status: int | None = None
    attempts: int | None = None

    @property
    def is_retryable(self) -> bool:
        return self.kind is ErrorKind.TRANSIENT

    def with_attempts(self, attempts: int) -> 'ClassifiedError':
        """Return a copy annotated with the number of attempts made."""
        return replace(self, attempts=attempts)

    def __str__(self) -> str:
        status = f" (HTTP {self.http_status})" if self.http_status else ""
        return f"{self.kind.value}:{self.code}{status} - {self.message}"


def configuration_error(code: str, message: str) -> ClassifiedError:
    return ClassifiedError(ErrorKind.CONFIGURATION, code, message)


def decode_error(reason: DecodeFailure, message: str) -> ClassifiedError:
    # Decode failures are always fatal.
    return ClassifiedError(ErrorKind.FATAL, reason, message, http_status=400)


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value and the failed attempts before it."""
    value: T
    attempts: int = 0

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying a ClassifiedError."""
    error: ClassifiedError

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def kind(self) -> ErrorKind:
        return self.error.kind


Result = Union[Ok[Any], Err]
