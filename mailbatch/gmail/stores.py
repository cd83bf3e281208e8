"""Storage capabilities injected into the Gmail client and label resolver."""

from typing import Optional, Protocol


class CursorStore(Protocol):
    """Receives the pagination cursor after a successful list call."""

    def set_cursor(self, token: str) -> None:
        ...

    def get_cursor(self) -> Optional[str]:
        ...


class LabelCache(Protocol):
    """Label name to label id mapping owned by LabelResolver."""

    def get_label_id(self, label_name: str) -> Optional[str]:
        ...

    def set_label_id(self, label_name: str, label_id: str) -> None:
        ...

    def clear_labels(self) -> None:
        ...


class MemoryCursorStore:
    """In-process cursor store."""

    def __init__(self):
        self.cursor: Optional[str] = None
        self.history: list[str] = []

    def set_cursor(self, token: str) -> None:
        self.cursor = token
        self.history.append(token)

    def get_cursor(self) -> Optional[str]:
        return self.cursor


class MemoryLabelCache:
    """In-process label cache."""

    def __init__(self):
        self._labels: dict[str, str] = {}

    def get_label_id(self, label_name: str) -> Optional[str]:
        return self._labels.get(label_name)

    def set_label_id(self, label_name: str, label_id: str) -> None:
        self._labels[label_name] = label_id

    def clear_labels(self) -> None:
        self._labels.clear()

    def __len__(self) -> int:
        return len(self._labels)
