"""
Resolution of the workspace location: the host's documents directory plus a fixed
subdirectory name, unless settings override it.
"""

import os
import re
import sys
from pathlib import Path
from typing import Optional

from margherita.config.logger import get_logger
from margherita.config.settings import global_settings
from margherita.errors import PathResolutionError

log = get_logger(__name__)


DOCUMENTS_DIR_NAME = "Documents"

XDG_USER_DIRS_FILE = "user-dirs.dirs"

_xdg_documents_pattern = re.compile(r'^\s*XDG_DOCUMENTS_DIR\s*=\s*"?([^"\n]*)"?\s*$', re.MULTILINE)


def home_dir() -> Path:
    try:
        return Path.home()
    except (RuntimeError, KeyError) as e:
        raise PathResolutionError(f"Could not determine the home directory: {e}") from e


def _expand_xdg_value(value: str, home: Path) -> Optional[Path]:
    value = value.strip()
    if not value:
        return None
    expanded = value.replace("$HOME", str(home)).replace("${HOME}", str(home))
    path = Path(expanded)
    # A value of just `$HOME/` means the directory is disabled.
    if not path.is_absolute() or path == home:
        return None
    return path


def xdg_documents_dir(home: Path) -> Optional[Path]:
    """
    Documents directory per the XDG user-dirs convention, from the environment or from
    `user-dirs.dirs`. None if neither names one.
    """
    env_value = os.environ.get("XDG_DOCUMENTS_DIR")
    if env_value:
        return _expand_xdg_value(env_value, home)

    config_home = os.environ.get("XDG_CONFIG_HOME") or str(home / ".config")
    dirs_file = Path(config_home) / XDG_USER_DIRS_FILE
    try:
        text = dirs_file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return None

    match = _xdg_documents_pattern.search(text)
    if not match:
        return None
    return _expand_xdg_value(match.group(1), home)


def documents_dir() -> Path:
    """
    The host's user-documents location.
    """
    override = global_settings().documents_dir
    if override:
        return Path(override).expanduser()

    home = home_dir()
    if sys.platform.startswith("linux"):
        xdg_dir = xdg_documents_dir(home)
        if xdg_dir:
            return xdg_dir

    return home / DOCUMENTS_DIR_NAME


def workspace_dir() -> Path:
    """
    The single directory holding all documents.
    """
    settings = global_settings()
    if settings.workspace_dir:
        return Path(settings.workspace_dir).expanduser()

    return documents_dir() / settings.workspace_name


## Tests


def test_expand_xdg_value():
    home = Path("/home/ana")
    assert _expand_xdg_value("$HOME/Dokumente", home) == Path("/home/ana/Dokumente")
    assert _expand_xdg_value("${HOME}/Docs", home) == Path("/home/ana/Docs")
    assert _expand_xdg_value("$HOME/", home) is None
    assert _expand_xdg_value("relative/docs", home) is None
    assert _expand_xdg_value("  ", home) is None


def test_xdg_documents_dir_from_file(tmp_path, monkeypatch):
    config_home = tmp_path / "config"
    config_home.mkdir()
    (config_home / XDG_USER_DIRS_FILE).write_text(
        '# written by xdg-user-dirs-update\nXDG_DESKTOP_DIR="$HOME/Desktop"\n'
        'XDG_DOCUMENTS_DIR="$HOME/Papers"\n',
        encoding="utf-8",
    )
    monkeypatch.delenv("XDG_DOCUMENTS_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(config_home))

    assert xdg_documents_dir(tmp_path) == tmp_path / "Papers"


def test_xdg_documents_dir_missing(tmp_path, monkeypatch):
    monkeypatch.delenv("XDG_DOCUMENTS_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "nowhere"))

    assert xdg_documents_dir(tmp_path) is None


def test_home_dir_failure(monkeypatch):
    def no_home():
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(Path, "home", staticmethod(no_home))
    try:
        home_dir()
        assert False
    except PathResolutionError as e:
        assert "home directory" in str(e)
