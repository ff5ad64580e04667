import logging

import pytest

from simpledb.logging_config import (
    ColoredFormatter, DatabaseLogger, configure_logging, get_logger, log_function_call
)


def test_get_logger_is_cached():
    assert get_logger("simpledb.test") is get_logger("simpledb.test")


def test_database_logger_logs_queries_with_params(caplog):
    db_logger = DatabaseLogger()

    with caplog.at_level(logging.DEBUG, logger="simpledb.database"):
        db_logger.log_query("SELECT * FROM t_user WHERE id = ?", (1,))
        db_logger.log_query("SELECT 1")

    assert "SQL Query: SELECT * FROM t_user WHERE id = ? | Params: (1,)" in caplog.messages
    assert "SQL Query: SELECT 1" in caplog.messages


def test_log_function_call_reraises(caplog):
    logger = get_logger("simpledb.test")

    @log_function_call(logger)
    def explode():
        raise RuntimeError("boom")

    with caplog.at_level(logging.DEBUG), pytest.raises(RuntimeError):
        explode()

    assert "Calling explode" in caplog.messages
    assert "explode failed: boom" in caplog.messages


def test_library_loggers_leave_root_untouched(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    root = logging.getLogger()
    handlers_before = list(root.handlers)

    get_logger("simpledb.client")
    DatabaseLogger().log_connection("opened")

    assert root.handlers == handlers_before
    assert not (tmp_path / "logs").exists()


@pytest.fixture
def configured(tmp_path):
    configured = configure_logging("warning", str(tmp_path / "logs"))
    yield configured
    configured.close()


def test_configure_logging_attaches_handlers(configured, tmp_path):
    root = logging.getLogger()

    assert (tmp_path / "logs").is_dir()
    assert configure_logging() is configured
    attached = [handler for logger, handler in configured.handlers if logger is root]
    assert len(attached) == 2
    assert all(handler in root.handlers for handler in attached)

    get_logger("simpledb.database").error("disk full")
    for _, handler in configured.handlers:
        handler.flush()
    assert "disk full" in (tmp_path / "logs" / "database.log").read_text()


def test_configure_logging_close_detaches(tmp_path):
    configured = configure_logging(logs_dir=str(tmp_path / "logs"))
    handlers = [handler for _, handler in configured.handlers]
    configured.close()

    assert not any(handler in logging.getLogger().handlers for handler in handlers)
    assert configure_logging(logs_dir=str(tmp_path / "other")) is not configured
    configure_logging().close()


def test_colored_formatter_keeps_record_intact():
    formatter = ColoredFormatter("%(levelname)s %(name)s: %(message)s")
    record = logging.LogRecord("simpledb.client", logging.WARNING, __file__, 1, "slow query", None, None)

    line = formatter.format(record)

    assert "WARNING" in line
    assert "slow query" in line
    assert record.levelname == "WARNING"
    assert record.name == "simpledb.client"
