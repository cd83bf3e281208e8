"""Configuration management using environment variables."""

import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv


LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == '':
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


class Config:
    """
    Application configuration loaded from environment variables.

    Environment variables can be set in a .env file in the project root.

    Attributes:
        GMAIL_TOKEN_PATH: Path to the stored OAuth token for the mailbox
        GMAIL_API_BASE: Base URL of the Gmail REST API
        GMAIL_BATCH_ENDPOINT: URL of the Gmail batch endpoint
        GMAIL_SERVICE: Service name used in batch sub-request paths
        IMPORTED_LABEL: Label that marks messages as already imported
        RETRY_MAX_ATTEMPTS: Failed attempts allowed per operation
        RETRY_BASE_DELAY_MS: Backoff base delay in milliseconds
        RETRY_WAIT_CAP_MS: Upper bound of a single backoff wait
        REQUEST_TIMEOUT: Per-request timeout in seconds
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        LOG_DIR: Directory for log files
        DATA_DIR: Directory for data storage
        DATABASE_PATH: SQLite file for persisted options

    Example:
        >>> config = Config.load()
        >>> print(config.RETRY_MAX_ATTEMPTS)
        5
    """

    def __init__(self):
        """Initialize configuration from environment variables."""
        self.GMAIL_TOKEN_PATH = os.getenv('GMAIL_TOKEN_PATH', 'credentials/token.json')
        self.GMAIL_API_BASE = os.getenv('GMAIL_API_BASE', 'https://gmail.googleapis.com/gmail')
        self.GMAIL_BATCH_ENDPOINT = os.getenv(
            'GMAIL_BATCH_ENDPOINT',
            'https://www.googleapis.com/batch/gmail/v1'
        )
        self.GMAIL_SERVICE = os.getenv('GMAIL_SERVICE', 'gmail')
        self.IMPORTED_LABEL = os.getenv('IMPORTED_LABEL', 'imported')

        self.RETRY_MAX_ATTEMPTS = _int_env('RETRY_MAX_ATTEMPTS', 5)
        self.RETRY_BASE_DELAY_MS = _int_env('RETRY_BASE_DELAY_MS', 100)
        self.RETRY_WAIT_CAP_MS = _int_env('RETRY_WAIT_CAP_MS', 10000)
        self.REQUEST_TIMEOUT = _int_env('REQUEST_TIMEOUT', 10)

        self.LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.LOG_DIR = os.getenv('LOG_DIR', 'logs')
        self.DATA_DIR = os.getenv('DATA_DIR', 'data')
        self.DATABASE_PATH = os.getenv(
            'DATABASE_PATH',
            str(Path(self.DATA_DIR) / 'mailbatch.db')
        )

    @classmethod
    def load(cls, env_file: Optional[str] = None) -> 'Config':
        """
        Read a .env file into the environment, then build a Config.

        Variables already set in the environment win over the file.

        Args:
            env_file: Path to .env file (None searches from the working
                directory upwards)
        """
        load_dotenv(env_file or None)
        return cls()

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: If required configuration is missing or invalid
        """
        if self.LOG_LEVEL not in LOG_LEVELS:
            raise ValueError(f"Invalid LOG_LEVEL: {self.LOG_LEVEL}. Must be one of {list(LOG_LEVELS)}")

        if self.RETRY_MAX_ATTEMPTS < 0:
            raise ValueError("RETRY_MAX_ATTEMPTS must not be negative")

        if self.RETRY_BASE_DELAY_MS < 0 or self.RETRY_WAIT_CAP_MS < 0:
            raise ValueError("Retry delays must not be negative")

        if self.REQUEST_TIMEOUT <= 0:
            raise ValueError("REQUEST_TIMEOUT must be positive")

        if not self.IMPORTED_LABEL:
            raise ValueError("IMPORTED_LABEL must not be empty")

        for directory in (self.LOG_DIR, self.DATA_DIR, Path(self.DATABASE_PATH).parent):
            Path(directory).mkdir(parents=True, exist_ok=True)

    def __repr__(self) -> str:
        """Return string representation of config."""
        return (
            f"Config("
            f"GMAIL_API_BASE={self.GMAIL_API_BASE}, "
            f"RETRY_MAX_ATTEMPTS={self.RETRY_MAX_ATTEMPTS}, "
            f"LOG_LEVEL={self.LOG_LEVEL}, "
            f"DATABASE_PATH={self.DATABASE_PATH}"
            ")"
        )
