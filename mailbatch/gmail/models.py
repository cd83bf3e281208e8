"""Typed shapes for the Gmail API payloads the client touches."""

from dataclasses import dataclass, field
from typing import List, Optional, Dict, Any


class ShapeError(ValueError):
    """Raised when a JSON payload does not have the expected structure."""


def _require_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ShapeError(f"Expected {what} object, got {type(data).__name__}")
    return data


def _require_str(data: Dict[str, Any], key: str, what: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise ShapeError(f"{what} is missing string field '{key}'")
    return value


def _optional_str(data: Dict[str, Any], key: str, what: str) -> str:
    value = data.get(key, '')
    if value is None:
        return ''
    if not isinstance(value, str):
        raise ShapeError(f"{what} field '{key}' must be a string")
    return value


def _optional_list(data: Dict[str, Any], key: str, what: str) -> List[Any]:
    value = data.get(key, [])
    if not isinstance(value, list):
        raise ShapeError(f"{what} field '{key}' must be a list")
    return value


@dataclass
class MessageQuery:
    """
    Query parameters for messages.list.

    Example:
        >>> MessageQuery(q="label:INBOX", max_results=50).to_params()
        {'includeSpamTrash': 'false', 'maxResults': 50, 'q': 'label:INBOX'}
    """
    q: str = ''
    max_results: int = 300
    include_spam_trash: bool = False
    page_token: Optional[str] = None
    label_ids: Optional[List[str]] = None

    def to_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            'includeSpamTrash': 'true' if self.include_spam_trash else 'false',
            'maxResults': min(self.max_results, 500),  # API limit is 500
        }

        if self.q:
            params['q'] = self.q

        if self.label_ids:
            params['labelIds'] = self.label_ids

        if self.page_token:
            params['pageToken'] = self.page_token

        return params


@dataclass
class MessageRef:
    """Message id/thread pair as returned by messages.list."""
    id: str
    thread_id: str

    @classmethod
    def from_json(cls, data: Any) -> 'MessageRef':
        data = _require_dict(data, 'message reference')
        return cls(
            id=_require_str(data, 'id', 'message reference'),
            thread_id=_optional_str(data, 'threadId', 'message reference')
        )


@dataclass
class MessageIdPage:
    """
    One page of messages.list.

    Attributes:
        messages: Message references on this page (empty when none match)
        next_page_token: Cursor for the next page, None on the last page
        result_size_estimate: Gmail's estimate of the total result count

    Example:
        >>> page = MessageIdPage.from_json({'messages': [{'id': 'a', 'threadId': 'a'}]})
        >>> page.ids
        ['a']
    """
    messages: List[MessageRef] = field(default_factory=list)
    next_page_token: Optional[str] = None
    result_size_estimate: int = 0

    @classmethod
    def from_json(cls, data: Any) -> 'MessageIdPage':
        data = _require_dict(data, 'message list')
        messages = [
            MessageRef.from_json(item)
            for item in _optional_list(data, 'messages', 'message list')
        ]
        token = data.get('nextPageToken') or None
        if token is not None and not isinstance(token, str):
            raise ShapeError("message list field 'nextPageToken' must be a string")

        estimate = data.get('resultSizeEstimate', len(messages))
        if isinstance(estimate, bool) or not isinstance(estimate, int):
            raise ShapeError("message list field 'resultSizeEstimate' must be an integer")

        return cls(
            messages=messages,
            next_page_token=token,
            result_size_estimate=estimate
        )

    @property
    def ids(self) -> List[str]:
        return [ref.id for ref in self.messages]


@dataclass
class Message:
    """
    Message resource from messages.get.

    Only the fields the transport layer needs are lifted out; the full
    resource is kept in `raw` for whoever shapes it further.
    """
    id: str
    thread_id: str
    label_ids: List[str]
    snippet: str
    payload: Dict[str, Any]
    raw: Dict[str, Any]

    @classmethod
    def from_json(cls, data: Any) -> 'Message':
        data = _require_dict(data, 'message')
        payload = data.get('payload', {})
        if not isinstance(payload, dict):
            raise ShapeError("message field 'payload' must be an object")

        return cls(
            id=_require_str(data, 'id', 'message'),
            thread_id=_optional_str(data, 'threadId', 'message'),
            label_ids=_optional_list(data, 'labelIds', 'message'),
            snippet=_optional_str(data, 'snippet', 'message'),
            payload=payload,
            raw=data
        )

    @property
    def headers(self) -> Dict[str, str]:
        """Top-level payload headers keyed by lowercase name."""
        return {
            header['name'].lower(): header.get('value', '')
            for header in self.payload.get('headers') or []
            if isinstance(header, dict) and isinstance(header.get('name'), str)
        }

    @property
    def is_in_inbox(self) -> bool:
        return 'INBOX' in self.label_ids


@dataclass
class Label:
    id: str
    name: str
    type: str = 'user'

    @classmethod
    def from_json(cls, data: Any) -> 'Label':
        data = _require_dict(data, 'label')
        return cls(
            id=_require_str(data, 'id', 'label'),
            name=_require_str(data, 'name', 'label'),
            type=data.get('type', 'user')
        )


@dataclass
class LabelList:
    """Result of labels.list."""
    labels: List[Label] = field(default_factory=list)

    @classmethod
    def from_json(cls, data: Any) -> 'LabelList':
        data = _require_dict(data, 'label list')
        return cls(labels=[
            Label.from_json(item)
            for item in _optional_list(data, 'labels', 'label list')
        ])

    def find(self, name: str) -> Optional[Label]:
        """Return the label whose name matches exactly, if any."""
        for label in self.labels:
            if label.name == name:
                return label
        return None


@dataclass
class OperationResult:
    """
    Result of a Gmail modify operation.

    Attributes:
        success: Whether operation succeeded
        message_ids: List of affected message IDs
        message: Human-readable result message
        details: Additional operation details

    Example:
        >>> result = client.batch_modify(['msg1', 'msg2'], ['Label_1']).value
        >>> if result.success:
        ...     print(f"Labelled {len(result.message_ids)} messages")
    """
    success: bool
    message_ids: List[str]
    message: str
    details: Optional[Dict[str, Any]] = None
