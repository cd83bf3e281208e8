#!/usr/bin/env python3
"""
Mark messages as imported.

Adds the imported label to the given message IDs and clears the stored
inbox snapshot so the next fetch goes to Gmail.

Usage:
    python scripts/label_imported.py 1815907c27f19d62 18128d84ec35cc0c
    python scripts/label_imported.py --from-file ids.txt
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from fetch_inbox import build_sync

from mailbatch.utils import Config, configure_logging, setup_logger


def main():
    parser = argparse.ArgumentParser(description="Add the imported label to messages")
    parser.add_argument('message_ids', nargs='*', help="Gmail message IDs")
    parser.add_argument('--from-file', help="File with one message ID per line")
    parser.add_argument('--env-file', help="Path to .env file")
    args = parser.parse_args()

    config = Config.load(args.env_file)
    config.validate()
    configure_logging(config.LOG_LEVEL, config.LOG_DIR)
    logger = setup_logger('label_imported')

    message_ids = list(args.message_ids)
    if args.from_file:
        message_ids.extend(
            line.strip() for line in Path(args.from_file).read_text().splitlines() if line.strip()
        )

    sync = build_sync(config)
    result = sync.label_imported(message_ids)

    if not result.is_ok:
        logger.error(f"Labelling failed: {result.error}")
        sys.exit(2 if result.kind.value == 'configuration' else 1)

    logger.info(result.value.message)


if __name__ == '__main__':
    main()
