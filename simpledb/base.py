"""
simpledb - Base Components
~~~~~~~~~~~~~~~~~~~~~~~~~~

Errors, the duplicate-key policy and the single-connection wrapper.

:copyright: (c) 2024-present simpledb authors
"""

import threading
from enum import IntEnum
from typing import Any, Dict, Mapping, Sequence, Union

import mariadb

from .logging_config import DatabaseLogger


CONNECTION_LOST_SIGNATURES = (
    'server has gone away',
    'lost connection to server',
)


class DatabaseError(Exception):
    """Base exception for database operations."""
    pass


class ConfigurationError(DatabaseError):
    """The configuration source is missing, malformed or incomplete."""
    pass


class DatabaseConnectionError(DatabaseError):
    """Connecting (or reconnecting) to the server failed."""
    pass


class QueryError(DatabaseError):
    """A statement failed for a reason other than a dropped connection."""
    pass


class DuplicatePolicy(IntEnum):
    """What a batch insert does when a row collides with an existing key."""

    ERROR = 0
    IGNORE = 1
    UPDATE = 2

    @classmethod
    def coerce(cls, value: Union[int, 'DuplicatePolicy']) -> 'DuplicatePolicy':
        try:
            return cls(value)
        except ValueError:
            raise ValueError(f"Unknown duplicate policy: {value!r} (expected 0, 1 or 2)") from None


def is_connection_lost(error: Exception) -> bool:
    """True when the driver error looks like the server dropped the connection."""
    message = str(error).lower()
    return any(signature in message for signature in CONNECTION_LOST_SIGNATURES)


class DatabaseConnection:
    """Owns one live driver connection and runs statements on it."""

    DEFAULTS = {
        'hostport': 3306,
        'password': '',
        'charset': 'utf8mb4',
        'prefix': '',
    }

    def __init__(self, settings: Mapping[str, Any], reconnect_attempts: int = 1):
        self.settings = self._validate_config(settings)
        self.reconnect_attempts = reconnect_attempts
        self.db_logger = DatabaseLogger()
        self.logger = self.db_logger.logger
        self.conn = None
        self.in_transaction = False
        self._lock = threading.RLock()

    @property
    def prefix(self) -> str:
        return self.settings['prefix']

    def _validate_config(self, settings: Mapping[str, Any]) -> Dict[str, Any]:
        """Check the required keys and fill in defaults."""
        if not isinstance(settings, Mapping):
            raise ConfigurationError(f"Database settings must be a mapping, got {type(settings).__name__}")

        required_keys = ['hostname', 'database', 'username']
        for key in required_keys:
            if not settings.get(key):
                raise ConfigurationError(f'No {key} provided for DB connection')

        resolved = {**self.DEFAULTS, **{k: v for k, v in settings.items() if v is not None}}
        try:
            resolved['hostport'] = int(resolved['hostport'])
        except (TypeError, ValueError):
            raise ConfigurationError(f"Invalid hostport: {resolved['hostport']!r}") from None
        resolved['prefix'] = str(resolved['prefix'] or '')
        return resolved

    def connect(self) -> None:
        """Open a fresh connection, dropping the previous handle if any."""
        with self._lock:
            self.close()
            self.in_transaction = False
            s = self.settings
            self.db_logger.log_connection(
                f"connecting to {s['hostname']}:{s['hostport']}/{s['database']} as {s['username']}"
            )
            try:
                self.conn = mariadb.connect(
                    host=s['hostname'],
                    port=s['hostport'],
                    database=s['database'],
                    user=s['username'],
                    password=str(s['password']),
                    autocommit=True,
                    init_command=f"SET NAMES {s['charset']}",
                )
            except mariadb.Error as e:
                self.db_logger.log_error('connect', e)
                raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e
            self.logger.info(f"Connected to {s['hostname']}:{s['hostport']}/{s['database']}")

    def close(self) -> None:
        """Close the current handle."""
        with self._lock:
            if self.conn is None:
                return
            conn, self.conn = self.conn, None
            try:
                conn.close()
            except mariadb.Error as e:
                # the server may already have closed its end
                self.logger.debug(f"Ignoring error while closing connection: {e}")
            self.db_logger.log_connection('closed')

    def query(self, sql: str, params: Sequence[Any] = ()):
        """
        Execute a statement and return its cursor.

        A dropped connection is reconnected and the same statement retried,
        at most ``reconnect_attempts`` times. Inside a transaction the server
        has already rolled back the earlier statements, so the connection is
        re-established but the statement is not retried.

        Raises:
            QueryError: The statement failed, the connection kept dropping,
                or it dropped inside a transaction.
            DatabaseConnectionError: Reconnecting failed.
        """
        params = tuple(params)
        attempt = 0
        with self._lock:
            while True:
                if self.conn is None:
                    self.connect()
                self.db_logger.log_query(sql, params)
                cursor = self.conn.cursor(dictionary=True, buffered=True)
                try:
                    if params:
                        cursor.execute(sql, params)
                    else:
                        cursor.execute(sql)
                    return cursor
                except mariadb.Error as e:
                    cursor.close()
                    if is_connection_lost(e) and self.in_transaction:
                        self.db_logger.log_error('query', e)
                        self.connect()
                        raise QueryError(f"Connection lost inside a transaction, it was rolled back: {e}") from e
                    if is_connection_lost(e) and attempt < self.reconnect_attempts:
                        attempt += 1
                        self.logger.warning(
                            f"Connection lost ({e}), reconnecting and retrying "
                            f"(attempt {attempt}/{self.reconnect_attempts})"
                        )
                        self.connect()
                        continue
                    self.db_logger.log_error('query', e)
                    raise QueryError(f"SQL execution failed: {e}") from e

    def begin(self) -> None:
        with self._lock:
            if self.conn is None:
                self.connect()
            self._call('begin')
            self.in_transaction = True

    def commit(self) -> None:
        with self._lock:
            try:
                self._call('commit')
            finally:
                self.in_transaction = False

    def rollback(self) -> None:
        with self._lock:
            try:
                self._call('rollback')
            finally:
                self.in_transaction = False

    def _call(self, operation: str) -> None:
        if self.conn is None:
            raise DatabaseConnectionError(f"Cannot {operation}: not connected")
        try:
            getattr(self.conn, operation)()
        except mariadb.Error as e:
            self.db_logger.log_error(operation, e)
            raise QueryError(f"{operation} failed: {e}") from e

    def health_check(self) -> bool:
        """Check database connection health."""
        try:
            cursor = self.query("SELECT 1")
            cursor.close()
            return True
        except DatabaseError:
            return False
