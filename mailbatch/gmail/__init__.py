"""Gmail transport, batching and retry layer."""

from .batch import BatchEnvelope, RequestSpec, decode, encode
from .classifier import ErrorClassifier
from .client import GmailClient
from .errors import ClassifiedError, DecodeFailure, Err, ErrorKind, Ok
from .labels import LabelResolver
from .models import Label, LabelList, Message, MessageIdPage, MessageQuery, OperationResult
from .retry import RetryState
from .stores import MemoryCursorStore, MemoryLabelCache
from .transport import (
    HttpTransport,
    RequestOptions,
    Response,
    TransportFailure,
    credentials_token_id,
)

__all__ = [
    "BatchEnvelope",
    "ClassifiedError",
    "DecodeFailure",
    "Err",
    "ErrorClassifier",
    "ErrorKind",
    "GmailClient",
    "HttpTransport",
    "Label",
    "LabelList",
    "LabelResolver",
    "MemoryCursorStore",
    "MemoryLabelCache",
    "Message",
    "MessageIdPage",
    "MessageQuery",
    "Ok",
    "OperationResult",
    "RequestOptions",
    "RequestSpec",
    "Response",
    "RetryState",
    "TransportFailure",
    "credentials_token_id",
    "decode",
    "encode",
]
