#!/usr/bin/env python3
"""
Database health check script.
Connects with the configured settings and runs a trivial query.
"""

import argparse
import sys

from dotenv import load_dotenv

from .base import ConfigurationError, DatabaseConnection, DatabaseConnectionError
from .config import Config
from .logging_config import configure_logging


def check_database(config_path=None, section=''):
    """Return (ok, message) for the configured database."""
    try:
        config = Config.load(config_path)
        connection = DatabaseConnection(config.section(section))
        connection.connect()
    except ConfigurationError as e:
        return False, f"configuration error: {e}"
    except DatabaseConnectionError as e:
        return False, f"connection failed: {e}"

    try:
        if connection.health_check():
            return True, "database is healthy"
        return False, "health query failed"
    finally:
        connection.close()


def main(argv=None):
    """Main health check function."""
    parser = argparse.ArgumentParser(description='Check that the configured database answers queries.')
    parser.add_argument('--config', help='configuration file (default: $SIMPLEDB_CONFIG or config/simple-db.json)')
    parser.add_argument('--section', default='', help='config section holding the database settings')
    args = parser.parse_args(argv)

    load_dotenv()
    configure_logging()

    ok, message = check_database(args.config, args.section)
    if ok:
        print(f"Health check passed: {message}")
        sys.exit(0)
    else:
        print(f"Health check failed: {message}")
        sys.exit(1)


if __name__ == '__main__':
    main()
