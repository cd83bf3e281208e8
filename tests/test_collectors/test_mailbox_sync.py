"""Tests for MailboxSync."""

import json

import pytest

from fakes import batch_response, error_response, json_response, make_message
from mailbatch.collectors import MailboxSync
from mailbatch.collectors.mailbox_sync import MESSAGES_OPTION, QUERY_LOCK_OPTION, TOKEN_ID_OPTION
from mailbatch.gmail import GmailClient, LabelResolver
from mailbatch.gmail.errors import ErrorKind


class TestMailboxSync:
    """Test inbox fetch and import labelling."""

    @pytest.fixture
    def client(self, transport, options_store, sleeps):
        """Client writing its cursor to the options store."""
        return GmailClient(transport, cursor_store=options_store, sleep=sleeps.append)

    @pytest.fixture
    def sync(self, client, options_store):
        return MailboxSync(client, LabelResolver(client, options_store), options_store)

    def test_inbox_query(self, sync):
        query = sync.inbox_query()

        assert query.q == 'label:INBOX !label:imported'
        assert query.max_results == 300
        assert query.include_spam_trash is False

    def test_fetch_inbox(self, sync, transport, options_store, sample_list_response):
        ids = [ref['id'] for ref in sample_list_response['messages']]
        transport.queue(
            json_response(sample_list_response),
            batch_response([make_message(i) for i in ids])
        )

        result = sync.fetch_inbox()

        assert result.is_ok
        assert [message.id for message in result.value] == ids
        assert [m['id'] for m in options_store.get_option(MESSAGES_OPTION)] == ids
        assert options_store.get_cursor() == '06568563630357605399'
        assert options_store.get_option(QUERY_LOCK_OPTION) is None

    def test_second_fetch_is_served_from_store(self, sync, transport, sample_list_response):
        ids = [ref['id'] for ref in sample_list_response['messages']]
        transport.queue(
            json_response(sample_list_response),
            batch_response([make_message(i) for i in ids])
        )
        sync.fetch_inbox()

        result = sync.fetch_inbox()

        assert [message.id for message in result.value] == ids
        assert transport.call_count == 2

    def test_fetch_with_nothing_new(self, sync, transport, options_store):
        transport.queue(json_response({'resultSizeEstimate': 0}))

        result = sync.fetch_inbox()

        assert result.value == []
        assert options_store.get_option(MESSAGES_OPTION) is None
        assert transport.call_count == 1

    def test_busy_while_lock_held(self, sync, transport, options_store):
        options_store.set_option(QUERY_LOCK_OPTION, 1, ttl=7)

        result = sync.fetch_inbox()

        assert result.error.kind is ErrorKind.TRANSIENT
        assert result.error.code == 'server_busy'
        assert result.error.http_status == 529
        assert transport.call_count == 0

    def test_failed_fetch_releases_lock(self, sync, transport, options_store):
        transport.queue(error_response(401, reason='authError'))

        result = sync.fetch_inbox()

        assert result.error.kind is ErrorKind.FATAL
        assert options_store.get_option(QUERY_LOCK_OPTION) is None
        assert options_store.get_option(MESSAGES_OPTION) is None

    def test_unreadable_snapshot_is_refetched(self, sync, transport, options_store):
        options_store.set_option(MESSAGES_OPTION, [{'no': 'id'}])
        transport.queue(
            json_response({'messages': [{'id': 'a', 'threadId': 'a'}]}),
            batch_response([make_message('a')])
        )

        result = sync.fetch_inbox()

        assert [message.id for message in result.value] == ['a']
        assert transport.call_count == 2

    def test_label_imported(self, sync, transport, options_store, sample_labels_response):
        options_store.set_option(MESSAGES_OPTION, [make_message('m1')])
        transport.queue(json_response(sample_labels_response), json_response({}, status=204))

        result = sync.label_imported(['m1', 'm2'])

        assert result.is_ok
        assert result.value.message_ids == ['m1', 'm2']
        assert json.loads(transport.calls[1].options.body)['addLabelIds'] == ['Label_4821']
        assert options_store.get_option(MESSAGES_OPTION) is None
        assert options_store.get_label_id('imported') == 'Label_4821'

    def test_label_imported_uses_cached_label(self, sync, transport, options_store):
        options_store.set_label_id('imported', 'Label_4821')
        transport.queue(json_response({}, status=200))

        assert sync.label_imported(['m1']).is_ok
        assert transport.call_count == 1

    def test_label_imported_without_label(self, sync, transport):
        transport.queue(json_response({'labels': []}))

        result = sync.label_imported(['m1'])

        assert result.error.kind is ErrorKind.CONFIGURATION
        assert result.error.code == 'invalid_param_value'
        assert transport.call_count == 1

    def test_label_imported_failure_keeps_snapshot(self, sync, transport, options_store):
        options_store.set_label_id('imported', 'Label_4821')
        options_store.set_option(MESSAGES_OPTION, [make_message('m1')])
        transport.queue(error_response(400, reason='invalidArgument'))

        result = sync.label_imported(['m1'])

        assert not result.is_ok
        assert options_store.get_option(MESSAGES_OPTION) is not None

    def test_connection_deleted_resets_state(self, sync, options_store):
        options_store.set_option(TOKEN_ID_OPTION, 42)
        options_store.set_cursor('06568563630357605399')
        options_store.set_label_id('imported', 'Label_4821')

        assert sync.on_connection_deleted('42') is True

        assert options_store.get_option(TOKEN_ID_OPTION) is None
        assert options_store.get_cursor() is None
        assert options_store.get_label_id('imported') is None

    def test_other_connection_deleted_is_ignored(self, sync, options_store):
        options_store.set_option(TOKEN_ID_OPTION, 42)

        assert sync.on_connection_deleted(7) is False
        assert options_store.get_option(TOKEN_ID_OPTION) == 42

    def test_connect_records_token(self, sync, options_store):
        assert sync.token_id is None

        assert sync.connect('a1b2c3d4e5f60718') is False

        assert sync.token_id == 'a1b2c3d4e5f60718'
        assert options_store.get_option(TOKEN_ID_OPTION) == 'a1b2c3d4e5f60718'

    def test_reconnecting_same_token_keeps_state(self, sync, options_store):
        sync.connect('a1b2c3d4e5f60718')
        options_store.set_cursor('06568563630357605399')
        options_store.set_label_id('imported', 'Label_4821')

        assert sync.connect('a1b2c3d4e5f60718') is False

        assert options_store.get_cursor() == '06568563630357605399'
        assert options_store.get_label_id('imported') == 'Label_4821'

    def test_connection_lifecycle(self, sync, transport, options_store, sample_labels_response):
        sync.connect('token-a')
        options_store.set_cursor('06568563630357605399')
        options_store.set_label_id('imported', 'Label_1')
        options_store.set_option(MESSAGES_OPTION, [make_message('m1')])

        # Another account's token: nothing from the first mailbox survives
        assert sync.connect('token-b') is True
        assert sync.token_id == 'token-b'
        assert options_store.get_cursor() is None
        assert options_store.get_label_id('imported') is None
        assert options_store.get_option(MESSAGES_OPTION) is None

        transport.queue(json_response(sample_labels_response), json_response({}))
        assert sync.label_imported(['m9']).is_ok
        assert transport.calls[0].url.endswith('/labels/')
        assert options_store.get_label_id('imported') == 'Label_4821'

        assert sync.on_connection_deleted('token-a') is False
        assert sync.on_connection_deleted('token-b') is True
        assert sync.token_id is None
        assert options_store.get_label_id('imported') is None
