"""Tests for the logging helpers."""

import logging
from unittest.mock import MagicMock

from cambio_ledger.infrastructure.logging import logger as logger_module


def test_logger_builder_writes_under_logs_subdir(tmp_path, monkeypatch):
    """LoggerBuilder should place the file in logs/<subdir>/<stamp>_<prefix>.log."""
    monkeypatch.setattr(logger_module, "get_project_root", lambda: tmp_path)
    monkeypatch.setattr(
        logger_module.LoggerBuilder,
        "_today_stamp",
        staticmethod(lambda: "20250310"),
    )

    builder = logger_module.LoggerBuilder()
    built = (
        builder.name("cambio_ledger.test_builder")
        .subdir("maintenance")
        .prefix("recalc")
        .console(False)
        .level(logging.WARNING)
        .build()
    )

    assert built.level == logging.WARNING
    assert built.propagate is False
    file_handlers = [h for h in built.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    expected = tmp_path / "logs" / "maintenance" / "20250310_recalc.log"
    assert file_handlers[0].baseFilename == str(expected)
    assert not [
        h
        for h in built.handlers
        if type(h) is logging.StreamHandler
    ]
    assert builder.build() is built


def test_default_handlers_use_formatter(tmp_path):
    """Default handlers should apply the provided formatter at INFO."""
    fmt = logger_module.LoggerBuilder._default_formatter()
    file_handler = logger_module.LoggerBuilder._default_file_handler(
        tmp_path / "ledger.log",
        fmt,
    )
    console_handler = logger_module.LoggerBuilder._default_console_handler(fmt)

    assert file_handler.level == logging.INFO
    assert file_handler.formatter is fmt
    assert console_handler.level == logging.INFO
    assert console_handler.formatter is fmt
    file_handler.close()


def test_logger_singleton_delegates_to_underlying_logger(monkeypatch):
    """Logger methods should call the wrapped logger."""
    fake_logger = MagicMock()
    monkeypatch.setattr(logger_module.LoggerBuilder, "build", lambda self: fake_logger)
    monkeypatch.setattr(logger_module.Logger, "_instance", None)

    wrapped = logger_module.Logger("app")
    wrapped.info("hello")
    wrapped.warning("warn")
    wrapped.error("err")
    wrapped.debug("dbg")
    wrapped.critical("crit")

    fake_logger.info.assert_called_with("hello")
    fake_logger.warning.assert_called_with("warn")
    fake_logger.error.assert_called_with("err")
    fake_logger.debug.assert_called_with("dbg")
    fake_logger.critical.assert_called_with("crit")
    assert logger_module.Logger("app") is wrapped


def test_app_and_maintenance_loggers_are_separate_singletons(monkeypatch):
    """get_app_logger and get_maintenance_logger return their own singletons."""
    monkeypatch.setattr(
        logger_module.LoggerBuilder,
        "build",
        lambda self: MagicMock(),
    )
    monkeypatch.setattr(logger_module.AppLogger, "_instance", None)
    monkeypatch.setattr(logger_module.MaintenanceLogger, "_instance", None)

    app_logger = logger_module.get_app_logger()
    maintenance_logger = logger_module.get_maintenance_logger()

    assert logger_module.get_app_logger() is app_logger
    assert logger_module.get_maintenance_logger() is maintenance_logger
    assert app_logger is not maintenance_logger
