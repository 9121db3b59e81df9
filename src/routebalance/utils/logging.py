"""
Logging helpers for routebalance.

All modules obtain their logger through ``RouteBalanceLogger.get_logger(__name__)``
so that a single verbosity switch (``LogLevel``) governs the whole package.  The
level can be set programmatically, through CLI flags, or through the
``ROUTEBALANCE_LOG_LEVEL`` environment variable (``quiet``, ``normal``,
``verbose``, ``debug``).
"""

import logging
import os
import sys
from enum import Enum

from tqdm import tqdm


class LogLevel(Enum):
    """Verbosity levels understood by the package."""

    QUIET = 0
    NORMAL = 1
    VERBOSE = 2
    DEBUG = 3


class Colors:
    """ANSI color codes used by the console formatter."""

    GRAY = "\033[90m"
    CYAN = "\033[36m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    RED = "\033[31m"
    BLUE = "\033[34m"
    MAGENTA = "\033[35m"
    BOLD = "\033[1m"
    RESET = "\033[0m"


class Symbols:
    """Unicode symbols prefixed to status messages."""

    CHECK = "✓"
    CHECKMARK = "✓"
    CROSS = "✗"
    WARNING = "⚠"
    GEAR = "⚙"
    ROCKET = "🚀"
    TRUCK = "🚚"
    CHART = "📊"


_PY_LEVELS = {
    LogLevel.QUIET: logging.ERROR,
    LogLevel.NORMAL: logging.INFO,
    LogLevel.VERBOSE: logging.INFO,
    LogLevel.DEBUG: logging.DEBUG,
}


class SimpleFormatter(logging.Formatter):
    """Formatter that colors the whole message by record level."""

    COLORS = {
        "DEBUG": Colors.GRAY,
        "INFO": Colors.CYAN,
        "WARNING": Colors.YELLOW,
        "ERROR": Colors.RED,
        "CRITICAL": Colors.RED + Colors.BOLD,
    }

    def format(self, record: logging.LogRecord) -> str:
        color = self.COLORS.get(record.levelname, "")
        return f"{color}{record.getMessage()}{Colors.RESET}"


class RouteBalanceLogger:
    """Process-wide logger registry with a shared verbosity level."""

    _current_level: LogLevel = LogLevel.NORMAL
    _loggers: dict[str, logging.Logger] = {}

    @classmethod
    def set_level(cls, level: LogLevel) -> None:
        cls._current_level = level
        for logger in cls._loggers.values():
            cls._configure_logger_level(logger, level)

    @classmethod
    def get_level(cls) -> LogLevel:
        return cls._current_level

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        if name not in cls._loggers:
            logger = logging.getLogger(name)
            cls._configure_logger_level(logger, cls._current_level)
            cls._loggers[name] = logger
        return cls._loggers[name]

    @classmethod
    def _configure_logger_level(cls, logger: logging.Logger, level: LogLevel) -> None:
        # ROUTEBALANCE_EFFECTIVE_LOG_LEVEL is exported by setup_logging so that
        # loggers created later (or in subprocesses) agree with the CLI choice.
        env_level = os.environ.get("ROUTEBALANCE_EFFECTIVE_LOG_LEVEL")
        if env_level:
            try:
                level = LogLevel[env_level.upper()]
            except KeyError:
                pass
        logger.setLevel(_PY_LEVELS.get(level, logging.INFO))

    @classmethod
    def progress(cls, message: str, symbol: str = Symbols.GEAR) -> None:
        if cls._current_level.value >= LogLevel.NORMAL.value:
            cls.get_logger("routebalance.progress").info(
                f"{Colors.BLUE}{symbol} {message}{Colors.RESET}"
            )

    @classmethod
    def success(cls, message: str, symbol: str = Symbols.CHECK) -> None:
        if cls._current_level.value >= LogLevel.NORMAL.value:
            cls.get_logger("routebalance.success").info(
                f"{Colors.GREEN}{symbol} {message}{Colors.RESET}"
            )

    @classmethod
    def detail(cls, message: str, indent: str = "  ") -> None:
        if cls._current_level.value >= LogLevel.VERBOSE.value:
            cls.get_logger("routebalance.detail").info(f"{indent} {message}")

    @classmethod
    def debug(cls, message: str, logger_name: str = "routebalance.debug") -> None:
        if cls._current_level.value >= LogLevel.DEBUG.value:
            cls.get_logger(logger_name).debug(message)

    @classmethod
    def info(cls, message: str) -> None:
        if cls._current_level.value >= LogLevel.NORMAL.value:
            cls.get_logger("routebalance.info").info(message)

    @classmethod
    def warning(cls, message: str, symbol: str = Symbols.WARNING) -> None:
        if cls._current_level.value >= LogLevel.NORMAL.value:
            cls.get_logger("routebalance.warning").warning(
                f"{Colors.YELLOW}{symbol} {message}{Colors.RESET}"
            )

    @classmethod
    def error(cls, message: str, symbol: str = Symbols.CROSS) -> None:
        # Errors are shown at every level, QUIET included.
        cls.get_logger("routebalance.error").error(
            f"{Colors.RED}{symbol} {message}{Colors.RESET}"
        )


def suppress_third_party_logs() -> None:
    """Keep chatty dependencies at WARNING and above."""
    for name in ("urllib3", "requests", "charset_normalizer"):
        logging.getLogger(name).setLevel(logging.WARNING)


def setup_logging(level: LogLevel | None = None) -> None:
    """Configure the root handler and the package-wide verbosity.

    Without an explicit ``level`` the ``ROUTEBALANCE_LOG_LEVEL`` environment
    variable is consulted, falling back to ``LogLevel.NORMAL``.
    """
    if level is None:
        env_value = os.environ.get("ROUTEBALANCE_LOG_LEVEL", "normal").lower()
        level = {
            "quiet": LogLevel.QUIET,
            "normal": LogLevel.NORMAL,
            "verbose": LogLevel.VERBOSE,
            "debug": LogLevel.DEBUG,
        }.get(env_value, LogLevel.NORMAL)

    RouteBalanceLogger.set_level(level)
    os.environ["ROUTEBALANCE_EFFECTIVE_LOG_LEVEL"] = level.name

    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(SimpleFormatter())
    if level == LogLevel.QUIET:
        handler.setLevel(logging.ERROR)
    elif level == LogLevel.DEBUG:
        handler.setLevel(logging.DEBUG)
    else:
        handler.setLevel(logging.INFO)

    root_logger.addHandler(handler)
    root_logger.setLevel(logging.DEBUG if level == LogLevel.DEBUG else logging.INFO)
    suppress_third_party_logs()


class ProgressTracker:
    """Step-wise progress bar shown at NORMAL verbosity and above."""

    def __init__(self, steps: list[str]):
        self.steps = steps
        self.current = 0
        self.show_progress = RouteBalanceLogger.get_level().value >= LogLevel.NORMAL.value
        self.pbar = None
        if self.show_progress:
            self.pbar = tqdm(
                total=len(steps),
                desc=f"{Colors.BLUE}{Symbols.ROCKET} Refinement Progress{Colors.RESET}",
                bar_format="{desc}: {percentage:3.0f}%|{bar:30}| {n_fmt}/{total_fmt} [{elapsed}<{remaining}]",
            )

    def advance(self, message: str | None = None, status: str = "success") -> None:
        if self.pbar is not None:
            if message:
                color = {
                    "success": Colors.GREEN,
                    "warning": Colors.YELLOW,
                    "error": Colors.RED,
                }.get(status, Colors.RESET)
                self.pbar.write(f"{color}{Symbols.CHECK} {message}{Colors.RESET}")
            self.pbar.update(1)
        self.current += 1

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.write(
                f"\n{Colors.GREEN}{Symbols.CHECK} Refinement completed!{Colors.RESET}\n"
            )
            self.pbar.close()


def log_progress(message: str, symbol: str = Symbols.GEAR) -> None:
    RouteBalanceLogger.progress(message, symbol)


def log_success(message: str, symbol: str = Symbols.CHECK) -> None:
    RouteBalanceLogger.success(message, symbol)


def log_detail(message: str, indent: str = "  ") -> None:
    RouteBalanceLogger.detail(message, indent)


def log_debug(message: str, logger_name: str = "routebalance.debug") -> None:
    RouteBalanceLogger.debug(message, logger_name)


def log_info(message: str) -> None:
    RouteBalanceLogger.info(message)


def log_warning(message: str, symbol: str = Symbols.WARNING) -> None:
    RouteBalanceLogger.warning(message, symbol)


def log_error(message: str, symbol: str = Symbols.CROSS) -> None:
    RouteBalanceLogger.error(message, symbol)
