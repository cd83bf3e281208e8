#!/usr/bin/env python3
"""
Disconnect the mailbox.

Forgets the stored cursor, label cache and inbox snapshot of the connected
token, and optionally deletes the token file so the next run starts
unconnected.

Usage:
    python scripts/disconnect.py
    python scripts/disconnect.py --remove-token
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fetch_inbox import build_sync

from mailbatch.utils import Config, configure_logging, setup_logger


def main():
    parser = argparse.ArgumentParser(description="Disconnect the mailbox and reset stored state")
    parser.add_argument('--remove-token', action='store_true', help="Also delete the token file")
    parser.add_argument('--env-file', help="Path to .env file")
    args = parser.parse_args()

    config = Config.load(args.env_file)
    config.validate()
    configure_logging(config.LOG_LEVEL, config.LOG_DIR)
    logger = setup_logger('disconnect')

    sync = build_sync(config)
    token_id = sync.token_id
    if token_id is None:
        logger.info("No mailbox is connected")
        return

    sync.on_connection_deleted(token_id)

    if args.remove_token:
        Path(config.GMAIL_TOKEN_PATH).unlink(missing_ok=True)
        logger.info(f"Removed {config.GMAIL_TOKEN_PATH}")

    logger.info(f"Disconnected token {token_id}")


if __name__ == '__main__':
    main()
