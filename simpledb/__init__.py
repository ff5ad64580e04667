"""
simpledb
~~~~~~~~

A thin CRUD helper around a single MySQL/MariaDB connection.

:copyright: (c) 2024-present simpledb authors
"""

__title__ = 'simpledb'
__author__ = 'simpledb authors'
__license__ = 'None'
__version__ = '0.2.0'
__copyright__ = 'Copyright 2024-present simpledb authors'

from .base import (
    DatabaseError, ConfigurationError, DatabaseConnectionError, QueryError,
    DuplicatePolicy, DatabaseConnection
)
from .config import Config, get_config, reset_config
from .client import DbClient

__all__ = [
    'DbClient',
    'Config',
    'get_config',
    'reset_config',
    'DatabaseConnection',
    'DuplicatePolicy',
    'DatabaseError',
    'ConfigurationError',
    'DatabaseConnectionError',
    'QueryError',
]
