"""
Logging setup for gcontact_alpine.

Console output goes to stderr so it never mixes with prompts or the run
summary on stdout. The console is quiet by default (WARNING) because init
and sync are interactive; ``--verbose`` or the environment turns it up.
A daily log file under the configuration directory always records DEBUG.

Environment:
    GCONTACT_ALPINE_DEBUG: "1", "true" or "yes" for DEBUG on the console
    GCONTACT_ALPINE_LOG_LEVEL: Console level name (default WARNING)
    GCONTACT_ALPINE_LOG_FILE: Explicit log file, or "none" to disable
"""

import logging
import os
import sys
from datetime import date
from pathlib import Path
from typing import Optional, TextIO

# Parent logger of every module logger in the package
LOGGER_NAME = "gcontact_alpine"

CONSOLE_FORMAT = "%(levelname)s: %(message)s"

# Used for the log file and for --verbose
VERBOSE_FORMAT = (
    "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s"
)

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Daily files are named gcontact_alpine_YYYYMMDD.log
LOG_FILE_PREFIX = "gcontact_alpine_"

ENV_LOG_LEVEL = "GCONTACT_ALPINE_LOG_LEVEL"
ENV_DEBUG = "GCONTACT_ALPINE_DEBUG"
ENV_LOG_FILE = "GCONTACT_ALPINE_LOG_FILE"

_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class ColoredFormatter(logging.Formatter):
    """
    Formatter that colors the level name on a terminal.

    Colors are dropped when the stream is not a TTY, when NO_COLOR is set
    (https://no-color.org/) or when TERM is "dumb".
    """

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        fmt: Optional[str] = None,
        datefmt: Optional[str] = None,
        use_colors: bool = True,
        stream: Optional[TextIO] = None,
    ):
        super().__init__(fmt, datefmt)
        self.use_colors = use_colors and self._supports_color(stream or sys.stderr)

    @staticmethod
    def _supports_color(stream: TextIO) -> bool:
        isatty = getattr(stream, "isatty", None)
        if isatty is None or not isatty():
            return False
        if os.environ.get("NO_COLOR"):
            return False
        return os.environ.get("TERM", "") != "dumb"

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors or record.levelname not in self.COLORS:
            return super().format(record)

        # Work on a copy; other handlers see the same record
        colored = logging.makeLogRecord(record.__dict__)
        colored.levelname = f"{self.COLORS[record.levelname]}{record.levelname}{self.RESET}"
        return super().format(colored)


def get_log_level_from_env() -> int:
    """
    Console level requested through the environment.

    Returns:
        DEBUG if GCONTACT_ALPINE_DEBUG is set, else the level named by
        GCONTACT_ALPINE_LOG_LEVEL, else WARNING
    """
    if os.environ.get(ENV_DEBUG, "").lower() in ("1", "true", "yes"):
        return logging.DEBUG

    name = os.environ.get(ENV_LOG_LEVEL, "WARNING").upper()
    return _LEVELS.get(name, logging.WARNING)


def get_log_file_path(log_dir: Optional[Path] = None) -> Optional[Path]:
    """
    Where to write the log file.

    Args:
        log_dir: Directory for daily log files

    Returns:
        GCONTACT_ALPINE_LOG_FILE if set (None when it says "none",
        "disabled" or is empty), else today's file in log_dir, else None
    """
    override = os.environ.get(ENV_LOG_FILE)
    if override is not None:
        if override.lower() in ("none", "disabled", ""):
            return None
        return Path(override)

    if log_dir is None:
        return None

    return log_dir / f"{LOG_FILE_PREFIX}{date.today().strftime('%Y%m%d')}.log"


def _console_handler(level: int, verbose: bool, use_colors: bool) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt = VERBOSE_FORMAT if verbose else CONSOLE_FORMAT
    if use_colors:
        handler.setFormatter(ColoredFormatter(fmt, DATE_FORMAT, stream=sys.stderr))
    else:
        handler.setFormatter(logging.Formatter(fmt, DATE_FORMAT))
    return handler


def _file_handler(path: Path) -> logging.Handler:
    """
    Open the log file, creating its directory.

    Raises:
        OSError: If the file cannot be opened
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(VERBOSE_FORMAT, DATE_FORMAT))
    return handler


def setup_logging(
    level: Optional[int] = None,
    verbose: bool = False,
    log_dir: Optional[Path] = None,
    log_file: Optional[Path] = None,
    enable_file_logging: bool = True,
    use_colors: bool = True,
) -> logging.Logger:
    """
    Configure the package logger.

    Replaces any handlers from an earlier call, so running it once per CLI
    invocation is safe.

    Args:
        level: Console level; taken from the environment when None
        verbose: DEBUG on the console with source locations
        log_dir: Directory for daily log files
        log_file: Explicit log file, overriding log_dir
        enable_file_logging: Set to False for console output only
        use_colors: Color level names on a terminal

    Returns:
        The gcontact_alpine logger

    Example:
        setup_logging(verbose=True, log_dir=settings.log_dir)
    """
    if level is None:
        level = get_log_level_from_env()
    if verbose:
        level = logging.DEBUG

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.propagate = False

    logger.addHandler(_console_handler(level, verbose, use_colors))

    if not enable_file_logging:
        return logger

    file_path = log_file or get_log_file_path(log_dir)
    if file_path is None:
        return logger

    try:
        logger.addHandler(_file_handler(file_path))
    except OSError as e:
        # A read-only config directory must not stop the run
        logger.warning(f"Could not open log file {file_path}: {e}")
    else:
        logger.debug(f"Logging to {file_path}")

    return logger


def cleanup_old_logs(log_dir: Optional[Path], keep_count: int = 10) -> int:
    """
    Delete all but the newest daily log files.

    Args:
        log_dir: Directory holding the log files
        keep_count: Files to keep; 0 disables cleanup

    Returns:
        Number of files deleted
    """
    if keep_count <= 0 or log_dir is None or not log_dir.is_dir():
        return 0

    logs = sorted(
        log_dir.glob(f"{LOG_FILE_PREFIX}*.log"),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    deleted = 0
    for old_log in logs[keep_count:]:
        try:
            old_log.unlink()
        except OSError as e:
            logging.getLogger(__name__).debug(f"Could not delete {old_log}: {e}")
            continue
        deleted += 1

    return deleted


def get_logger(name: str) -> logging.Logger:
    """Logger under the gcontact_alpine hierarchy for the given name."""
    if not name.startswith(LOGGER_NAME):
        name = f"{LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def set_log_level(level: int) -> None:
    """Change the console level at runtime; the log file stays at DEBUG."""
    for handler in logging.getLogger(LOGGER_NAME).handlers:
        if not isinstance(handler, logging.FileHandler):
            handler.setLevel(level)


__all__ = [
    "setup_logging",
    "get_logger",
    "set_log_level",
    "cleanup_old_logs",
    "ColoredFormatter",
    "get_log_level_from_env",
    "get_log_file_path",
    "LOGGER_NAME",
    "CONSOLE_FORMAT",
    "VERBOSE_FORMAT",
    "DATE_FORMAT",
]
