import logging
import os
import threading
from logging import Formatter
from pathlib import Path
from typing import Optional

import rich
from rich.logging import RichHandler

from margherita.config.settings import APP_NAME, global_settings

LOG_FILE_NAME = f"{APP_NAME}.log"

EMOJI_WARN = "△"

EMOJI_ERROR = EMOJI_WARN + EMOJI_WARN

_log_lock = threading.RLock()

_file_handler: Optional[logging.FileHandler] = None
_console_handler: Optional[RichHandler] = None


def log_file_path() -> Optional[Path]:
    log_dir = global_settings().log_dir
    return log_dir.expanduser() / LOG_FILE_NAME if log_dir else None


def logging_setup():
    """
    Set up or reset logging. Call once at startup by the host application, and again
    if log settings change. Replaces previous handlers on the root logger.
    """
    global _file_handler, _console_handler

    with _log_lock:
        root = logging.getLogger()
        for handler in [_file_handler, _console_handler]:
            if handler:
                root.removeHandler(handler)
                handler.close()

        # Verbose logging to file, important logging to console.
        _file_handler = None
        file_path = log_file_path()
        if file_path:
            os.makedirs(file_path.parent, exist_ok=True)
            _file_handler = logging.FileHandler(file_path)
            _file_handler.setLevel(global_settings().file_log_level.value)
            _file_handler.setFormatter(
                Formatter("%(asctime)s %(levelname).1s %(name)s - %(message)s")
            )
            root.addHandler(_file_handler)

        _console_handler = RichHandler(
            console=rich.get_console(),
            level=global_settings().console_log_level.value,
            show_time=False,
            show_path=False,
            show_level=False,
            markup=False,
        )
        _console_handler.setFormatter(Formatter("%(message)s"))
        root.addHandler(_console_handler)

        root.setLevel(
            min(global_settings().console_log_level.value, global_settings().file_log_level.value)
        )


def prefix(line, warn_emoji: str = ""):
    return " ".join(filter(None, [warn_emoji, line]))


def prefix_args(args, warn_emoji: str = ""):
    if len(args) > 0:
        args = (prefix(args[0], warn_emoji),) + args[1:]
    return args


class CustomLogger:
    """
    Custom logger to be clearer about user messages versus warnings and errors.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)

    def debug(self, *args, **kwargs):
        self.logger.debug(*args, **kwargs)

    def info(self, *args, **kwargs):
        self.logger.info(*args, **kwargs)

    def message(self, *args, **kwargs):
        self.logger.warning(*args, **kwargs)

    def warning(self, *args, **kwargs):
        self.logger.warning(*prefix_args(args, warn_emoji=EMOJI_WARN), **kwargs)

    def error(self, *args, **kwargs):
        self.logger.error(*prefix_args(args, warn_emoji=EMOJI_ERROR), **kwargs)

    # Fallback for other attributes/methods.
    def __getattr__(self, attr):
        return getattr(self.logger, attr)


def get_logger(name: str):
    return CustomLogger(name)


## Tests


def test_warning_prefix(caplog):
    log = get_logger("margherita.test")
    with caplog.at_level(logging.WARNING, logger="margherita.test"):
        log.warning("Skipping entry: %s", "x.md")
        log.message("Saved: %s", "y.md")

    messages = [r.getMessage() for r in caplog.records]
    assert messages == [f"{EMOJI_WARN} Skipping entry: x.md", "Saved: y.md"]


def test_logging_setup_writes_file(tmp_path):
    from margherita.config.settings import update_global_settings

    root = logging.getLogger()
    old_handlers, old_level = root.handlers[:], root.level
    with update_global_settings() as settings:
        old_log_dir = settings.log_dir
        settings.log_dir = tmp_path / "logs"
    try:
        logging_setup()
        get_logger("margherita.test").warning("Workspace missing: %s", "notes")
        assert _file_handler
        _file_handler.flush()

        log_text = (tmp_path / "logs" / LOG_FILE_NAME).read_text()
        assert f"{EMOJI_WARN} Workspace missing: notes" in log_text
    finally:
        for handler in root.handlers[:]:
            if handler not in old_handlers:
                root.removeHandler(handler)
                handler.close()
        root.setLevel(old_level)
        with update_global_settings() as settings:
            settings.log_dir = old_log_dir
