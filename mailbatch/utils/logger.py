"""Logger factory: console output plus a daily rotating file per logger."""

import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path


CONSOLE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Rotated files kept per logger
BACKUP_DAYS = 30

_loggers: dict[str, logging.Logger] = {}

# Used by get_logger(); changed through configure_logging()
_defaults = {
    'level': 'INFO',
    'log_dir': 'logs',
}


def _level(name: str) -> int:
    return getattr(logging, name.upper())


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(path: Path, level: str) -> logging.Handler:
    # Opened on first record so importing a module never creates files
    handler = TimedRotatingFileHandler(
        path,
        when='midnight',
        backupCount=BACKUP_DAYS,
        encoding='utf-8',
        delay=True
    )
    handler.setLevel(_level(level))
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def setup_logger(
    name: str,
    level: str | None = None,
    log_dir: str | None = None
) -> logging.Logger:
    """
    Set up a logger with both console and file handlers.

    Loggers are cached by name; a second call returns the first logger
    unchanged.

    Args:
        name: Logger name (typically module name)
        level: Logging level name, defaults to the configured level
        log_dir: Directory for log files, defaults to the configured one

    Returns:
        Configured logger instance

    Example:
        >>> logger = setup_logger("fetch_inbox", level="INFO")
        >>> logger.info("Fetching inbox...")
    """
    if name in _loggers:
        return _loggers[name]

    level = level or _defaults['level']
    log_path = Path(log_dir or _defaults['log_dir'])
    log_path.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(name)
    logger.setLevel(_level(level))
    logger.propagate = False
    logger.addHandler(_console_handler())
    logger.addHandler(_file_handler(log_path / f"{name}.log", level))

    _loggers[name] = logger
    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get an existing logger or create a new one with the current defaults.

    Example:
        >>> logger = get_logger("mailbatch.gmail.client")
        >>> logger.debug("Listing messages...")
    """
    if name in _loggers:
        return _loggers[name]
    return setup_logger(name)


def configure_logging(level: str, log_dir: str) -> None:
    """
    Set the defaults for loggers created from now on and apply the level to
    the ones that already exist.
    """
    _defaults['level'] = level.upper()
    _defaults['log_dir'] = log_dir

    for logger in _loggers.values():
        logger.setLevel(_level(level))
