#!/usr/bin/env python3
"""
Fetch inbox messages that have not been imported yet.

Lists inbox messages without the imported label, fetches them through the
Gmail batch endpoint and prints a one-line summary per message (or the raw
JSON with --json).

Usage:
    python scripts/fetch_inbox.py
    python scripts/fetch_inbox.py --json > inbox.json
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from google.oauth2.credentials import Credentials

from mailbatch.collectors import MailboxSync
from mailbatch.database import Database, OptionsStore
from mailbatch.gmail import GmailClient, HttpTransport, LabelResolver, credentials_token_id
from mailbatch.utils import Config, configure_logging, setup_logger


SCOPES = [
    'https://www.googleapis.com/auth/gmail.modify',
    'https://www.googleapis.com/auth/gmail.labels',
]


def build_sync(config: Config) -> MailboxSync:
    """
    Wire client, resolver and store from configuration.

    When a token file exists its id is recorded, so a token for another
    account resets the stored cursor and labels.
    """
    store = OptionsStore(Database(config.DATABASE_PATH))
    store.database.purge_expired()

    creds = None
    transport = None
    if Path(config.GMAIL_TOKEN_PATH).exists():
        creds = Credentials.from_authorized_user_file(config.GMAIL_TOKEN_PATH, SCOPES)
        transport = HttpTransport(creds)

    client = GmailClient.from_config(config, transport, cursor_store=store)
    resolver = LabelResolver(client, cache=store)
    sync = MailboxSync(client, resolver, store, imported_label=config.IMPORTED_LABEL)

    if creds is not None:
        sync.connect(credentials_token_id(creds))
    return sync


def main():
    parser = argparse.ArgumentParser(description="Fetch not-yet-imported inbox messages")
    parser.add_argument('--json', action='store_true', help="Print raw message JSON")
    parser.add_argument('--env-file', help="Path to .env file")
    args = parser.parse_args()

    config = Config.load(args.env_file)
    config.validate()
    configure_logging(config.LOG_LEVEL, config.LOG_DIR)
    logger = setup_logger('fetch_inbox')

    sync = build_sync(config)
    result = sync.fetch_inbox()

    if not result.is_ok:
        logger.error(f"Fetch failed: {result.error}")
        sys.exit(2 if result.kind.value == 'configuration' else 1)

    messages = result.value
    if args.json:
        print(json.dumps([message.raw for message in messages], indent=2))
        return

    logger.info(f"Fetched {len(messages)} messages")
    for message in messages:
        headers = message.headers
        print(f"{message.id}  {headers.get('from', '')[:40]:40}  {headers.get('subject', '')[:60]}")


if __name__ == '__main__':
    main()
