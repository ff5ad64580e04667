"""
Logging helpers for simpledb.

Library modules only ask for named loggers. Handlers are attached by
``configure_logging()``, which entry points (the health check CLI) call.
"""

import logging
import logging.handlers
import os
import sys
from typing import Optional
import functools


LOG_FORMAT = '[%(asctime)s] %(levelname)-8s %(name)-20s: %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

RESET = '\033[0m'
DIM = '\033[90m'
CYAN = '\033[96m'
LEVEL_COLORS = {
    'DEBUG': '\033[90m',
    'INFO': '\033[94m',
    'WARNING': '\033[93m',
    'ERROR': '\033[91m',
    'CRITICAL': '\033[1;31m',
}


class ColoredFormatter(logging.Formatter):
    """Console formatter that colours the level and logger name on a terminal."""

    def format(self, record):
        record = logging.makeLogRecord(record.__dict__)
        color = LEVEL_COLORS.get(record.levelname, '')
        record.levelname = f"{color}{record.levelname:<8s}{RESET}"
        record.name = f"{CYAN}{record.name:<20s}{RESET}"
        return super().format(record)

    def formatTime(self, record, datefmt=None):
        return f"{DIM}{super().formatTime(record, datefmt)}{RESET}"


class SimpleDbLogger:
    """Configures the root logger once for a process that runs simpledb directly."""

    _instance = None

    def __new__(cls, *args, **kwargs):
        if cls._instance is None:
            cls._instance = super(SimpleDbLogger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, log_level: Optional[str] = None, logs_dir: Optional[str] = None):
        if self._initialized:
            return

        self._initialized = True
        self.log_level = (log_level or os.getenv('LOG_LEVEL', 'INFO')).upper()
        self.logs_dir = logs_dir or os.getenv('LOG_DIR', 'logs')
        self.handlers = []

        if not os.path.exists(self.logs_dir):
            os.makedirs(self.logs_dir)

        self._configure_root_logger()

    def _add(self, logger: logging.Logger, handler: logging.Handler) -> None:
        logger.addHandler(handler)
        self.handlers.append((logger, handler))

    def _file_handler(self, filename: str, max_bytes: int, backup_count: int) -> logging.Handler:
        handler = logging.handlers.RotatingFileHandler(
            filename=os.path.join(self.logs_dir, filename),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        return handler

    def _configure_root_logger(self):
        """Console output, a main log file, and a separate SQL log."""
        root_logger = logging.getLogger()
        root_logger.setLevel(logging.DEBUG)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(getattr(logging, self.log_level, logging.INFO))
        if sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        self._add(root_logger, console_handler)

        self._add(root_logger, self._file_handler('simpledb.log', 50*1024*1024, 5))  # 50MB
        self._add(logging.getLogger('simpledb.database'), self._file_handler('database.log', 10*1024*1024, 3))

    def close(self) -> None:
        """Detach and close everything this instance attached."""
        for logger, handler in self.handlers:
            logger.removeHandler(handler)
            handler.close()
        self.handlers = []
        type(self)._instance = None


def configure_logging(log_level: Optional[str] = None, logs_dir: Optional[str] = None) -> SimpleDbLogger:
    """Set up process-wide handlers; only entry points should call this."""
    return SimpleDbLogger(log_level, logs_dir)


def get_logger(name: str) -> logging.Logger:
    """Named logger; emits nothing until the host application adds handlers."""
    return logging.getLogger(name)


def log_function_call(logger: logging.Logger, log_args: bool = False):
    """
    Decorator to log function calls.

    Args:
        logger: Logger instance to use
        log_args: Whether to log function arguments

    Returns:
        Decorator function
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            func_name = func.__name__

            if log_args:
                logger.debug(f"Calling {func_name} with args: {args}, kwargs: {kwargs}")
            else:
                logger.debug(f"Calling {func_name}")

            try:
                result = func(*args, **kwargs)
                logger.debug(f"{func_name} completed successfully")
                return result
            except Exception as e:
                logger.error(f"{func_name} failed: {e}", exc_info=True)
                raise

        return wrapper
    return decorator


class DatabaseLogger:
    """Special logger for database operations."""

    def __init__(self):
        self.logger = get_logger('simpledb.database')

    def log_query(self, query: str, params: tuple = None):
        """Log database queries."""
        if params:
            self.logger.debug(f"SQL Query: {query} | Params: {params}")
        else:
            self.logger.debug(f"SQL Query: {query}")

    def log_connection(self, operation: str):
        """Log database connection operations."""
        self.logger.debug(f"Database connection: {operation}")

    def log_error(self, operation: str, error: Exception):
        """Log database errors."""
        self.logger.error(f"Database error in {operation}: {error}", exc_info=True)
