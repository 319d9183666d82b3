import logging
from logging.handlers import RotatingFileHandler

from guildstore.util.logger import (
    LOG_FILEPATH,
    LOGS_DIR,
    ColorFormatter,
    PromptToolkitHandler,
    get_logger,
    handle_exception,
    should_use_color,
)


class DummyStream:
    def __init__(self):
        self.written = []
    def write(self, msg):
        self.written.append(msg)
    def isatty(self):
        return True


def test_get_logger_has_console_and_file_handlers():
    logger = get_logger("test_guildstore_logger")
    assert isinstance(logger, logging.Logger)
    assert any(isinstance(h, PromptToolkitHandler) for h in logger.handlers)
    assert any(isinstance(h, RotatingFileHandler) for h in logger.handlers)
    assert logger.propagate is False


def test_get_logger_idempotent():
    logger1 = get_logger("test_logger_idem")
    logger2 = get_logger("test_logger_idem")
    assert logger1 is logger2
    assert len(logger1.handlers) == 2


def test_color_formatter_applies_color():
    formatter = ColorFormatter("%(levelname)s %(message)s")
    record = logging.LogRecord("test", logging.ERROR, "", 0, "error occurred", None, None)
    formatted = formatter.format(record)
    assert "\033[31m" in formatted and "error occurred" in formatted


def test_should_use_color_true(monkeypatch):
    monkeypatch.setattr("sys.stderr", DummyStream())
    assert should_use_color() is True


def test_file_handler_writes_to_session_log():
    logger = get_logger("test_logger_file")
    file_handler = next(h for h in logger.handlers if isinstance(h, RotatingFileHandler))
    assert LOG_FILEPATH.parent == LOGS_DIR
    assert file_handler.baseFilename == str(LOG_FILEPATH)


def test_noisy_library_loggers_are_quiet():
    assert logging.getLogger("aiosqlite").level == logging.ERROR
    assert logging.getLogger("discord").level == logging.ERROR


def test_handle_exception_logs_error(caplog):
    class DummyException(Exception):
        pass
    with caplog.at_level(logging.ERROR):
        try:
            raise DummyException("fail")
        except DummyException as exc:
            handle_exception(DummyException, exc, exc.__traceback__)
    assert any("Uncaught exception" in r.message for r in caplog.records)
