"""Tests for Gmail payload models."""

import pytest

from mailbatch.gmail.models import (
    Label,
    LabelList,
    Message,
    MessageIdPage,
    MessageQuery,
    ShapeError,
)


class TestMessageQuery:
    """Test messages.list query parameters."""

    def test_defaults(self):
        assert MessageQuery().to_params() == {
            'includeSpamTrash': 'false',
            'maxResults': 300,
        }

    def test_all_params(self):
        query = MessageQuery(
            q='label:INBOX',
            max_results=50,
            include_spam_trash=True,
            page_token='06568563630357605399',
            label_ids=['INBOX']
        )

        assert query.to_params() == {
            'includeSpamTrash': 'true',
            'maxResults': 50,
            'q': 'label:INBOX',
            'labelIds': ['INBOX'],
            'pageToken': '06568563630357605399',
        }

    def test_max_results_capped_at_api_limit(self):
        assert MessageQuery(max_results=2000).to_params()['maxResults'] == 500


class TestMessageIdPage:
    """Test parsing messages.list responses."""

    def test_from_json(self, sample_list_response):
        page = MessageIdPage.from_json(sample_list_response)

        assert page.ids == ['1818f71c2f5cbf0c', '1818f6e43b70a3ac', '1818f69b324c90a5']
        assert page.messages[0].thread_id == '1818f71c2f5cbf0c'
        assert page.next_page_token == '06568563630357605399'
        assert page.result_size_estimate == 3

    def test_no_matches(self):
        page = MessageIdPage.from_json({'resultSizeEstimate': 0})

        assert page.ids == []
        assert page.next_page_token is None

    def test_empty_token_means_last_page(self):
        assert MessageIdPage.from_json({'messages': [], 'nextPageToken': ''}).next_page_token is None

    @pytest.mark.parametrize("data", [
        [],
        'messages',
        {'messages': {'id': 'a'}},
        {'messages': [{'threadId': 'a'}]},
        {'messages': [], 'nextPageToken': 123},
        {'messages': [], 'resultSizeEstimate': 'lots'},
        {'messages': [], 'resultSizeEstimate': [1]},
        {'messages': [{'id': 'a', 'threadId': 7}]},
    ])
    def test_bad_shapes(self, data):
        with pytest.raises(ShapeError):
            MessageIdPage.from_json(data)


class TestMessage:
    """Test parsing messages.get resources."""

    def test_from_json(self, sample_gmail_message):
        message = Message.from_json(sample_gmail_message)

        assert message.id == '1818f71c2f5cbf0c'
        assert message.thread_id == '1818f71c2f5cbf0c'
        assert message.label_ids == ['INBOX']
        assert message.snippet == 'Sample Snippet'
        assert message.raw is sample_gmail_message
        assert message.is_in_inbox

    def test_headers_are_keyed_lowercase(self, sample_gmail_message):
        headers = Message.from_json(sample_gmail_message).headers

        assert headers['subject'] == 'Tests'
        assert headers['from'] == 'Test test@accounts.tests.com'
        assert headers['delivered-to'] == 'tester@test.com'

    def test_headers_skip_entries_without_string_name(self):
        message = Message.from_json({
            'id': 'x',
            'payload': {'headers': [
                {'name': 42, 'value': 'numeric'},
                {'name': None, 'value': 'empty'},
                'Subject: raw',
                {'name': 'Subject', 'value': 'Kept'},
            ]},
        })

        assert message.headers == {'subject': 'Kept'}

    def test_minimal_message(self):
        message = Message.from_json({'id': 'x'})

        assert message.label_ids == []
        assert message.headers == {}
        assert not message.is_in_inbox

    @pytest.mark.parametrize("data", [
        None,
        {'threadId': 'no-id'},
        {'id': ''},
        {'id': 'x', 'payload': []},
        {'id': 'x', 'labelIds': 'INBOX'},
        {'id': 'x', 'threadId': ['t']},
        {'id': 'x', 'snippet': {'text': 'hi'}},
    ])
    def test_bad_shapes(self, data):
        with pytest.raises(ShapeError):
            Message.from_json(data)


class TestLabels:
    """Test label models."""

    def test_label_list_find(self, sample_labels_response):
        labels = LabelList.from_json(sample_labels_response)

        assert labels.find('imported') == Label(id='Label_4821', name='imported', type='user')
        assert labels.find('INBOX').type == 'system'

    def test_find_is_exact_match(self, sample_labels_response):
        labels = LabelList.from_json(sample_labels_response)

        assert labels.find('Imported') is None
        assert labels.find('import') is None

    def test_empty_mailbox(self):
        assert LabelList.from_json({}).labels == []

    def test_label_without_name(self):
        with pytest.raises(ShapeError):
            LabelList.from_json({'labels': [{'id': 'Label_1'}]})
