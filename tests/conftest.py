"""Shared test fixtures for all test modules."""

import random
import tempfile
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pytest

# Route log files away from the working tree before any module logger exists.
from mailbatch.utils import configure_logging

configure_logging('DEBUG', tempfile.mkdtemp(prefix='mailbatch-test-logs-'))

from fakes import FakeTransport  # noqa: E402
from mailbatch.database import Database, OptionsStore  # noqa: E402
from mailbatch.gmail import GmailClient, MemoryCursorStore  # noqa: E402


# ============================================================================
# Gmail Fixtures
# ============================================================================

@pytest.fixture
def transport() -> FakeTransport:
    """
    Create an empty scripted transport.

    Usage:
        def test_something(transport, client):
            transport.queue(json_response({...}))
    """
    return FakeTransport()


@pytest.fixture
def sleeps() -> list[float]:
    """Collects the seconds passed to sleep instead of blocking."""
    return []


@pytest.fixture
def cursor_store() -> MemoryCursorStore:
    return MemoryCursorStore()


@pytest.fixture
def client(transport: FakeTransport, cursor_store: MemoryCursorStore, sleeps: list[float]) -> GmailClient:
    """
    Create a Gmail client that never actually sleeps.

    Usage:
        def test_something(client, sleeps):
            client.list_labels()
            assert sleeps == []
    """
    return GmailClient(
        transport,
        cursor_store=cursor_store,
        sleep=sleeps.append,
        rng=random.Random(1234)
    )


@pytest.fixture
def sample_list_response() -> dict[str, Any]:
    """messages.list response with three messages and a page token."""
    return {
        'messages': [
            {'id': '1818f71c2f5cbf0c', 'threadId': '1818f71c2f5cbf0c'},
            {'id': '1818f6e43b70a3ac', 'threadId': '1818f6e43b70a3ac'},
            {'id': '1818f69b324c90a5', 'threadId': '1818f69b324c90a5'},
        ],
        'nextPageToken': '06568563630357605399',
        'resultSizeEstimate': 3,
    }


@pytest.fixture
def sample_gmail_message() -> dict[str, Any]:
    """
    Create a sample Gmail API message structure.

    Usage:
        def test_something(sample_gmail_message):
            message = Message.from_json(sample_gmail_message)
    """
    return {
        'id': '1818f71c2f5cbf0c',
        'threadId': '1818f71c2f5cbf0c',
        'labelIds': ['INBOX'],
        'snippet': 'Sample Snippet',
        'payload': {
            'partId': '',
            'mimeType': 'multipart/alternative',
            'filename': '',
            'headers': [
                {'name': 'Delivered-To', 'value': 'tester@test.com'},
                {'name': 'Date', 'value': 'Thu, 23 Jun 2022 07:23:25 GMT'},
                {'name': 'Subject', 'value': 'Tests'},
                {'name': 'From', 'value': 'Test test@accounts.tests.com'},
                {'name': 'To', 'value': 'tester@test.com'},
            ],
            'parts': [
                {'mimeType': 'text/plain', 'body': {'data': 'text plain data'}},
                {'mimeType': 'text/html', 'body': {'data': 'text html data'}},
            ],
        },
    }


@pytest.fixture
def sample_labels_response() -> dict[str, Any]:
    return {
        'labels': [
            {'id': 'INBOX', 'name': 'INBOX', 'type': 'system'},
            {'id': 'UNREAD', 'name': 'UNREAD', 'type': 'system'},
            {'id': 'Label_4821', 'name': 'imported', 'type': 'user'},
        ]
    }


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def temp_db(tmp_path: Path) -> Generator[Database, None, None]:
    """
    Create a temporary SQLite database.

    Usage:
        def test_something(temp_db):
            with temp_db.get_session() as session:
                ...
    """
    db = Database(str(tmp_path / "test.db"))

    yield db

    db.engine.dispose()


@pytest.fixture
def options_store(temp_db: Database) -> OptionsStore:
    """
    Create an OptionsStore backed by a temporary database.

    Usage:
        def test_something(options_store):
            options_store.set_option('token_id', 42)
    """
    return OptionsStore(temp_db)
