import logging
import os
from unittest.mock import MagicMock, patch

import pytest

from routebalance.utils.logging import (
    Colors,
    LogLevel,
    ProgressTracker,
    RouteBalanceLogger,
    SimpleFormatter,
    log_detail,
    log_error,
    setup_logging,
)


class DummyRecord(logging.LogRecord):
    def __init__(self, levelname, msg):
        super().__init__(name="test", level=getattr(logging, levelname), pathname=__file__, lineno=0, msg=msg, args=(), exc_info=None)
        self.levelname = levelname


class DummyBar:
    def __init__(self):
        self.updates = []
        self.writes = []
        self.closed = False

    def update(self, n):
        self.updates.append(n)

    def write(self, msg):
        self.writes.append(msg)

    def close(self):
        self.closed = True


@pytest.mark.parametrize("level, color", [
    ("DEBUG", Colors.GRAY),
    ("INFO", Colors.CYAN),
    ("WARNING", Colors.YELLOW),
    ("ERROR", Colors.RED),
    ("CRITICAL", Colors.RED + Colors.BOLD),
])
def test_simple_formatter_colors(level, color):
    fmt = SimpleFormatter()
    out = fmt.format(DummyRecord(level, "hello"))
    assert out.startswith(color)
    assert out.endswith(Colors.RESET)
    assert "hello" in out


def test_progress_tracker_advance_and_close(monkeypatch):
    import routebalance.utils.logging as logging_utils
    dummy = DummyBar()
    monkeypatch.setattr(logging_utils, "tqdm", lambda total, desc, bar_format: dummy)

    pt = ProgressTracker(["load", "refine", "report"])
    pt.advance("inputs loaded", status="success")
    pt.advance()
    pt.close()

    assert dummy.updates == [1, 1]
    assert any("inputs loaded" in w for w in dummy.writes)
    assert any("completed" in w.lower() for w in dummy.writes)
    assert dummy.closed
    assert pt.current == 2


def test_progress_tracker_hidden_when_quiet(monkeypatch):
    import routebalance.utils.logging as logging_utils
    monkeypatch.setattr(logging_utils, "tqdm", MagicMock(side_effect=AssertionError("no bar")))
    RouteBalanceLogger.set_level(LogLevel.QUIET)

    pt = ProgressTracker(["a"])
    pt.advance("ignored")
    pt.close()

    assert pt.pbar is None
    assert pt.current == 1


class TestRouteBalanceLogger:
    def test_configure_logger_level_invalid_env_var(self):
        with patch.dict(os.environ, {"ROUTEBALANCE_EFFECTIVE_LOG_LEVEL": "INVALID_LEVEL"}):
            logger = MagicMock()
            RouteBalanceLogger._configure_logger_level(logger, LogLevel.VERBOSE)
            logger.setLevel.assert_called_with(logging.INFO)

    def test_configure_logger_level_env_overrides(self):
        with patch.dict(os.environ, {"ROUTEBALANCE_EFFECTIVE_LOG_LEVEL": "debug"}):
            logger = MagicMock()
            RouteBalanceLogger._configure_logger_level(logger, LogLevel.NORMAL)
            logger.setLevel.assert_called_with(logging.DEBUG)

    def test_detail_only_at_verbose(self):
        with patch.object(RouteBalanceLogger, "get_logger") as get_logger:
            RouteBalanceLogger.set_level(LogLevel.NORMAL)
            log_detail("hidden")
            get_logger.assert_not_called()

            RouteBalanceLogger.set_level(LogLevel.VERBOSE)
            log_detail("shown")
            get_logger.return_value.info.assert_called_once()

    def test_error_shown_when_quiet(self):
        RouteBalanceLogger.set_level(LogLevel.QUIET)
        with patch.object(RouteBalanceLogger, "get_logger") as get_logger:
            log_error("boom")
            message = get_logger.return_value.error.call_args[0][0]
            assert "boom" in message


@pytest.mark.parametrize("env_value, expected", [
    ("quiet", LogLevel.QUIET),
    ("verbose", LogLevel.VERBOSE),
    ("debug", LogLevel.DEBUG),
    ("nonsense", LogLevel.NORMAL),
])
def test_setup_logging_reads_env(env_value, expected):
    with patch.dict(os.environ, {"ROUTEBALANCE_LOG_LEVEL": env_value}):
        setup_logging()
        assert RouteBalanceLogger.get_level() == expected
        assert os.environ["ROUTEBALANCE_EFFECTIVE_LOG_LEVEL"] == expected.name
    os.environ.pop("ROUTEBALANCE_EFFECTIVE_LOG_LEVEL", None)


def test_setup_logging_quiet_handler_level():
    setup_logging(LogLevel.QUIET)
    try:
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert handlers[0].level == logging.ERROR
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        os.environ.pop("ROUTEBALANCE_EFFECTIVE_LOG_LEVEL", None)
