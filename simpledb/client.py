"""
simpledb - Client
~~~~~~~~~~~~~~~~~

The process-wide database client and its CRUD helpers.

:copyright: (c) 2024-present simpledb authors
"""

import threading
from contextlib import closing, contextmanager
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from .base import (
    ConfigurationError, DatabaseConnection, DatabaseConnectionError,
    DuplicatePolicy
)
from .config import Config, get_config
from .logging_config import get_logger, log_function_call


logger = get_logger(__name__)


class DbClient:
    """
    Process-wide database client.

    Only one instance lives per process: constructing the class again hands
    back the live instance. Table names passed to the helpers get the
    configured prefix.

    Example:
        db = DbClient.get_instance()

        user_id = db.insert('user', {'name': 'alice', 'age': 30})
        rows = db.select('user', 'age > 18', fields='id,name', limit=10, order='id desc')
        db.update('user', {'age': 31}, f'id = {int(user_id)}')

    ``where`` arguments are inserted into the SQL verbatim. Never build them
    from untrusted input.
    """

    _instance = None
    _lock = threading.RLock()

    def __new__(cls, config: Optional[Config] = None, section: str = '', reconnect_attempts: int = 1):
        """
        Return the process-wide instance, connecting and registering it first
        if there is none yet.

        Args:
            config: Configuration to read settings from. Defaults to the
                process-wide configuration file.
            section: Config section holding the settings; empty for top level.
            reconnect_attempts: How often a statement is retried after the
                server drops the connection.

        Raises:
            ConfigurationError: Settings are missing or malformed.
            DatabaseConnectionError: The server could not be reached.
        """
        with cls._lock:
            if cls._instance is None:
                instance = super().__new__(cls)
                instance._connect(config, section, reconnect_attempts)
                cls._instance = instance
            return cls._instance

    def _connect(self, config: Optional[Config], section: str, reconnect_attempts: int) -> None:
        config = config if config is not None else get_config()
        self.connection = DatabaseConnection(config.section(section), reconnect_attempts)
        self.connection.connect()

    @classmethod
    def get_instance(cls, config: Optional[Config] = None, section: str = '') -> 'DbClient':
        """
        Return the process-wide client, connecting on first call.

        A configuration or connection failure here is fatal: it is logged and
        the process exits with status 1.
        """
        with cls._lock:
            if cls._instance is None:
                try:
                    cls(config, section)
                except (ConfigurationError, DatabaseConnectionError) as e:
                    logger.critical(f"Database client could not be initialised: {e}")
                    raise SystemExit(1) from e
            return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Close and forget the process-wide client."""
        with cls._lock:
            if cls._instance is not None:
                cls._instance.close()
                cls._instance = None

    def __copy__(self):
        raise TypeError(f"{type(self).__name__} is a singleton and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError(f"{type(self).__name__} is a singleton and cannot be copied")

    def __reduce__(self):
        raise TypeError(f"{type(self).__name__} is a singleton and cannot be pickled")

    def table(self, name: str) -> str:
        """Prefixed table name."""
        return f"{self.connection.prefix}{name}"

    def insert(self, table: str, data: Mapping[str, Any]) -> str:
        """
        Insert one row.

        Args:
            table: Table name without prefix
            data: Column name to value

        Returns:
            The last auto-increment id, as a string
        """
        if not data:
            raise ValueError("insert() needs at least one column")

        columns = list(data.keys())
        placeholders = ','.join('?' * len(columns))
        sql = f"INSERT INTO {self.table(table)} ({','.join(columns)}) VALUES ({placeholders})"
        with closing(self.connection.query(sql, [data[c] for c in columns])) as cursor:
            return str(cursor.lastrowid or 0)

    def insert_batch(self, table: str, rows: Sequence[Mapping[str, Any]],
                     duplicate_policy: Union[int, DuplicatePolicy] = DuplicatePolicy.ERROR) -> int:
        """
        Insert many rows in one statement.

        Columns are taken from the first row; every row must have the same keys.

        Args:
            table: Table name without prefix
            rows: Rows to insert
            duplicate_policy: 0 raise on duplicate keys, 1 skip them
                (INSERT IGNORE), 2 update them (ON DUPLICATE KEY UPDATE)

        Returns:
            Affected rows as reported by the server. Under policy 2 MySQL
            counts a row that was updated as 2.
        """
        policy = DuplicatePolicy.coerce(duplicate_policy)
        if not rows or not rows[0]:
            raise ValueError("insert_batch() needs at least one non-empty row")

        columns = list(rows[0].keys())
        group = '(' + ','.join('?' * len(columns)) + ')'
        params = [row[c] for row in rows for c in columns]

        verb = 'INSERT IGNORE INTO' if policy is DuplicatePolicy.IGNORE else 'INSERT INTO'
        sql = f"{verb} {self.table(table)} ({','.join(columns)}) VALUES {','.join([group] * len(rows))}"
        if policy is DuplicatePolicy.UPDATE:
            sql += " ON DUPLICATE KEY UPDATE " + ', '.join(f"{c} = VALUES({c})" for c in columns)

        with closing(self.connection.query(sql, params)) as cursor:
            affected = cursor.rowcount
        logger.debug(f"Batch insert into {self.table(table)}: {len(rows)} rows sent, {affected} affected")
        return affected

    def delete(self, table: str, where: str) -> int:
        """Delete rows matching a raw where clause; returns affected rows."""
        sql = f"DELETE FROM {self.table(table)} WHERE {where}"
        with closing(self.connection.query(sql)) as cursor:
            return cursor.rowcount

    def _select_sql(self, table: str, where: str, fields: str, limit: int, order: str) -> str:
        sql = f"SELECT {fields} FROM {self.table(table)} WHERE {where}"
        if order:
            sql += f" ORDER BY {order}"
        if limit > 0:
            sql += f" LIMIT {int(limit)}"
        return sql

    def select(self, table: str, where: str, fields: str = '*', limit: int = 0, order: str = '') -> List[Dict[str, Any]]:
        """
        Fetch all rows matching a raw where clause.

        Args:
            table: Table name without prefix
            where: SQL condition, inserted verbatim
            fields: Column list or expressions, inserted verbatim
            limit: Maximum rows; 0 for no limit
            order: ORDER BY expression; empty for none

        Returns:
            List of row dicts, empty when nothing matches
        """
        sql = self._select_sql(table, where, fields, limit, order)
        with closing(self.connection.query(sql)) as cursor:
            return list(cursor.fetchall())

    def find(self, table: str, where: str, fields: str = '*') -> Optional[Dict[str, Any]]:
        """Fetch the first row matching a raw where clause, or None."""
        sql = self._select_sql(table, where, fields, 1, '')
        with closing(self.connection.query(sql)) as cursor:
            return cursor.fetchone()

    def update(self, table: str, data: Mapping[str, Any], where: str) -> int:
        """Update rows matching a raw where clause; values are bound, returns affected rows."""
        if not data:
            raise ValueError("update() needs at least one column")

        columns = list(data.keys())
        set_clause = ','.join(f"{c}=?" for c in columns)
        sql = f"UPDATE {self.table(table)} SET {set_clause} WHERE {where}"
        with closing(self.connection.query(sql, [data[c] for c in columns])) as cursor:
            return cursor.rowcount

    def exec(self, sql: str) -> int:
        """Run caller-built SQL as is (no prefix, no params); returns affected rows."""
        with closing(self.connection.query(sql)) as cursor:
            return cursor.rowcount

    @log_function_call(logger)
    def begin_transaction(self) -> None:
        self.connection.begin()

    @log_function_call(logger)
    def commit(self) -> None:
        self.connection.commit()

    @log_function_call(logger)
    def rollback(self) -> None:
        self.connection.rollback()

    @contextmanager
    def transaction(self):
        """Run a block in a transaction, rolling back if it raises."""
        self.begin_transaction()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        self.commit()

    def health_check(self) -> bool:
        """Check database connection health."""
        return self.connection.health_check()

    def close(self) -> None:
        self.connection.close()
