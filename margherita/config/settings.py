import threading
from contextlib import contextmanager
from enum import Enum
from logging import DEBUG, ERROR, INFO, WARNING
from pathlib import Path
from typing import Optional

from pydantic.dataclasses import dataclass


APP_NAME = "margherita"

WORKSPACE_NAME = "margherita"

DOCUMENT_EXTENSION = ".md"

LOG_DIR_PATH = "~/.local/margherita/logs"

DEFAULT_MAX_WORKERS = 4


class LogLevel(Enum):
    debug = DEBUG
    info = INFO
    warning = WARNING
    message = WARNING  # Same as warning, just for important console messages.
    error = ERROR

    @classmethod
    def parse(cls, level_str: str):
        canon_name = level_str.strip().lower()
        if canon_name == "warn":
            canon_name = "warning"
        try:
            return cls[canon_name]
        except KeyError:
            raise ValueError(
                f"Invalid log level: `{level_str}`. Valid options are: {', '.join(f'`{name}`' for name in cls.__members__)}"
            )

    def __str__(self):
        return self.name


@dataclass
class Settings:
    workspace_name: str
    """Name of the workspace directory inside the documents location."""

    documents_dir: Optional[Path]
    """Override for the host documents location. None means detect it."""

    workspace_dir: Optional[Path]
    """Override for the full workspace path. None means documents dir plus workspace name."""

    document_extension: str
    """Suffix that marks a file as a managed document."""

    console_log_level: LogLevel
    """The log level for console-based logging."""

    file_log_level: LogLevel
    """The log level for file-based logging."""

    log_dir: Optional[Path]
    """Directory for the log file. None disables file logging."""

    max_workers: int
    """Worker threads for running commands off the caller's thread."""


# Initial default settings.
_settings = Settings(
    workspace_name=WORKSPACE_NAME,
    documents_dir=None,
    workspace_dir=None,
    document_extension=DOCUMENT_EXTENSION,
    console_log_level=LogLevel.warning,
    file_log_level=LogLevel.info,
    log_dir=Path(LOG_DIR_PATH),
    max_workers=DEFAULT_MAX_WORKERS,
)


def global_settings() -> Settings:
    """
    Read access to global settings.
    """
    return _settings


_settings_lock = threading.RLock()


@contextmanager
def update_global_settings():
    """
    Context manager for thread-safe updates to global settings.
    """
    with _settings_lock:
        yield _settings


## Tests


def test_log_level_parse():
    assert LogLevel.parse("WARN") == LogLevel.warning
    assert LogLevel.parse(" debug ") == LogLevel.debug
    try:
        LogLevel.parse("loud")
        assert False
    except ValueError as e:
        assert "loud" in str(e)


def test_update_global_settings():
    old_name = global_settings().workspace_name
    try:
        with update_global_settings() as settings:
            settings.workspace_name = "scratch"
        assert global_settings().workspace_name == "scratch"
    finally:
        with update_global_settings() as settings:
            settings.workspace_name = old_name
