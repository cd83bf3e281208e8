"""Fetch and bulk-modify Gmail messages over the batch API."""

__version__ = "0.1.0"
