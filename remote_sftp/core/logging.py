"""
Logging for remote_sftp

Console output goes through rich; an optional plain-text file copy can be
added. paramiko logs under PARAMIKO_LOG_CHANNEL and stays at WARNING
unless the chosen level is DEBUG or lower.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from rich.console import Console
from rich.logging import RichHandler
from rich.traceback import install as install_traceback

from .constants import PARAMIKO_LOG_CHANNEL


# Below DEBUG; connection lifecycle chatter goes here
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

FILE_LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

# Resolved against sys.stdout / sys.stderr on every write
_stdout_console = Console()
_stderr_console = Console(stderr=True)


def resolve_level(level: Union[str, int]) -> int:
    """Map a level name (TRACE included) or number to a number, INFO if unknown"""
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(level.strip().upper())
    return resolved if isinstance(resolved, int) else logging.INFO


def setup_logging(
    level: Union[str, int] = "INFO",
    log_file: Optional[Path] = None,
    rich_tracebacks: bool = True,
) -> None:
    """
    Route log records to stderr through rich, and optionally to a file.

    Args:
        level: TRACE, DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_file: Also append records to this file
        rich_tracebacks: Render uncaught exceptions with rich
    """
    log_level = resolve_level(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()

    if rich_tracebacks:
        # Never show locals: they may hold passwords
        install_traceback(show_locals=False, width=120, console=_stderr_console)

    root_logger.addHandler(_console_handler(log_level, rich_tracebacks))
    if log_file:
        root_logger.addHandler(_file_handler(Path(log_file), log_level))

    logging.getLogger(PARAMIKO_LOG_CHANNEL).setLevel(
        log_level if log_level <= logging.DEBUG else logging.WARNING
    )


def _console_handler(log_level: int, rich_tracebacks: bool) -> logging.Handler:
    handler = RichHandler(
        console=_stderr_console,
        show_time=True,
        show_level=True,
        show_path=log_level <= logging.DEBUG,
        rich_tracebacks=rich_tracebacks,
        markup=False,
    )
    handler.setLevel(log_level)
    return handler


def _file_handler(log_file: Path, log_level: int) -> logging.Handler:
    log_file.parent.mkdir(parents=True, exist_ok=True)
    handler = logging.FileHandler(log_file, encoding="utf-8")
    handler.setLevel(log_level)
    handler.setFormatter(logging.Formatter(FILE_LOG_FORMAT))
    return handler


def get_logger(name: str) -> logging.Logger:
    """Module logger; call with __name__"""
    return logging.getLogger(name)


def get_stdout_console() -> Console:
    """Console for command output"""
    return _stdout_console


def get_stderr_console() -> Console:
    """Console for prompts, errors and logs"""
    return _stderr_console
