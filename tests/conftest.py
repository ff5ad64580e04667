import mariadb
import pytest

from simpledb import Config, DbClient, reset_config
from simpledb import base


SETTINGS = {
    "hostname": "db.local",
    "hostport": "3307",
    "database": "shop",
    "username": "app",
    "password": "secret",
    "charset": "utf8mb4",
    "prefix": "t_",
}


class FakeCursor:
    def __init__(self, server):
        self.server = server
        self.rowcount = -1
        self.lastrowid = None
        self.closed = False
        self._rows = []

    def execute(self, sql, params=None):
        self.server.statements.append((sql, params))
        if self.server.errors:
            raise self.server.errors.pop(0)
        self._rows = list(self.server.rows)
        self.rowcount = self.server.rowcount
        self.lastrowid = self.server.lastrowid

    def fetchall(self):
        return self._rows

    def fetchone(self):
        return self._rows[0] if self._rows else None

    def close(self):
        self.closed = True


class FakeConnection:
    def __init__(self, server, kwargs):
        self.server = server
        self.kwargs = kwargs
        self.closed = False
        self.calls = []

    def cursor(self, dictionary=False, buffered=False):
        return FakeCursor(self.server)

    def begin(self):
        self.calls.append("begin")

    def commit(self):
        self.calls.append("commit")

    def rollback(self):
        self.calls.append("rollback")

    def close(self):
        self.closed = True


class FakeServer:
    """Stands in for mariadb.connect and records what the client sends."""

    def __init__(self):
        self.connections = []
        self.statements = []
        self.errors = []
        self.connect_errors = []
        self.rows = []
        self.rowcount = 0
        self.lastrowid = 0

    def connect(self, **kwargs):
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        conn = FakeConnection(self, kwargs)
        self.connections.append(conn)
        return conn

    @property
    def last_statement(self):
        return self.statements[-1]


def gone_away():
    return mariadb.OperationalError("Server has gone away")


@pytest.fixture
def server(monkeypatch):
    fake = FakeServer()
    monkeypatch.setattr(base.mariadb, "connect", fake.connect)
    return fake


@pytest.fixture
def config():
    return Config(dict(SETTINGS))


@pytest.fixture
def db(server, config):
    return DbClient.get_instance(config)


@pytest.fixture(autouse=True)
def reset_singletons():
    yield
    DbClient.reset_instance()
    reset_config()
