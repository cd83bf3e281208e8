"""Mailbox sync services built on the Gmail client."""

from .mailbox_sync import MailboxSync

__all__ = ["MailboxSync"]
