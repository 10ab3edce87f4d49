import os
from pathlib import Path
from typing import List, Optional, Tuple

from pydantic.dataclasses import dataclass
from strif import atomic_output_file

from margherita.config.logger import get_logger
from margherita.config.settings import global_settings
from margherita.errors import InvalidFilename, WorkspaceIOError
from margherita.util.format_utils import fmt_path
from margherita.workspace.workspace_paths import workspace_dir

log = get_logger(__name__)


@dataclass(frozen=True)
class WorkspaceEntry:
    name: str
    is_directory: bool


@dataclass(frozen=True)
class SaveRequest:
    name: str
    content: str


@dataclass(frozen=True)
class DocumentContent:
    path: str
    """The path exactly as the caller gave it."""

    content: str


def entry_sort_key(entry: WorkspaceEntry) -> Tuple[bool, str, str]:
    """
    Directories first, then case-insensitive by name. The exact name breaks ties so
    the order is stable across platforms.
    """
    return (not entry.is_directory, entry.name.lower(), entry.name)


class WorkspaceManager:
    """
    Owns the workspace directory: lists, reads, and saves the markdown documents in it.

    Every operation makes sure the directory exists first, so callers need no setup
    step. No locking is done between operations. Two saves to the same name race and
    the last one to finish wins.
    """

    def __init__(self, root: Optional[Path] = None, extension: Optional[str] = None) -> None:
        # With no root, the location is resolved from settings on each call.
        self.root = root
        self.extension = extension or global_settings().document_extension

    def __str__(self) -> str:
        return f"WorkspaceManager({fmt_path(self.root) if self.root else 'default'})"

    def _ensure_workspace(self) -> Tuple[Path, bool]:
        """
        Returns the workspace path and whether it was just created.
        """
        path = self.root or workspace_dir()
        if path.is_dir():
            return path, False

        try:
            os.makedirs(path, exist_ok=True)
        except OSError as e:
            raise WorkspaceIOError(
                f"Could not create workspace directory {fmt_path(path)}: {e}"
            ) from e

        log.message("Created workspace: %s", fmt_path(path))
        return path, True

    def ensure_workspace(self) -> Path:
        path, _created = self._ensure_workspace()
        return path

    def document_filename(self, name: str) -> str:
        """
        Filename for a document name, with the document extension appended if it's
        missing. Names must be a single path component.
        """
        separators = [sep for sep in (os.sep, os.altsep, "/") if sep]
        if not name or not name.strip() or name in (".", ".."):
            raise InvalidFilename(f"Invalid document name: {name!r}")
        if any(sep in name for sep in separators):
            raise InvalidFilename(f"Document name can't contain a path separator: {name!r}")
        if "\0" in name:
            raise InvalidFilename(f"Document name can't contain a null character: {name!r}")

        return name if name.endswith(self.extension) else f"{name}{self.extension}"

    def _resolve(self, root: Path, relative_path: str) -> Path:
        path = root / relative_path
        try:
            resolved = path.resolve()
        except (OSError, ValueError) as e:
            raise InvalidFilename(f"Invalid path {relative_path!r}: {e}") from e
        if not resolved.is_relative_to(root.resolve()):
            raise InvalidFilename(f"Path is outside the workspace: {relative_path!r}")
        return path

    def is_document(self, name: str) -> bool:
        return name.endswith(self.extension)

    def list(self) -> List[WorkspaceEntry]:
        """
        Directories and documents directly inside the workspace, directories first.
        Entries that can't be inspected are logged and skipped.
        """
        root, created = self._ensure_workspace()
        if created:
            return []

        entries: List[WorkspaceEntry] = []
        try:
            with os.scandir(root) as dir_entries:
                for dir_entry in dir_entries:
                    try:
                        is_directory = dir_entry.is_dir()
                        is_file = not is_directory and dir_entry.is_file()
                    except OSError as e:
                        log.warning("Skipping unreadable workspace entry %r: %s", dir_entry.name, e)
                        continue

                    if is_directory or (is_file and self.is_document(dir_entry.name)):
                        entries.append(WorkspaceEntry(name=dir_entry.name, is_directory=is_directory))
        except OSError as e:
            raise WorkspaceIOError(f"Could not list workspace {fmt_path(root)}: {e}") from e

        entries.sort(key=entry_sort_key)
        log.debug("Listed %s entries in %s", len(entries), fmt_path(root))
        return entries

    def read(self, relative_path: str) -> DocumentContent:
        """
        Read a whole document as text. The path is relative to the workspace, though an
        absolute path inside the workspace also works.
        """
        root, _created = self._ensure_workspace()
        path = self._resolve(root, relative_path)
        try:
            with open(path, "r", encoding="utf-8", newline="") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise WorkspaceIOError(f"Could not read {fmt_path(path)}: {e}") from e

        return DocumentContent(path=relative_path, content=content)

    def save(self, request: SaveRequest) -> str:
        """
        Write a document, replacing any previous content, and return the absolute path
        written.
        """
        root, _created = self._ensure_workspace()
        filename = self.document_filename(request.name)
        path = self._resolve(root, filename)
        try:
            data = request.content.encode("utf-8")
        except UnicodeEncodeError as e:
            raise WorkspaceIOError(f"Could not save {fmt_path(path)}: {e}") from e

        tmp_path: Optional[Path] = None
        try:
            with atomic_output_file(path) as tmp_filename:
                tmp_path = Path(tmp_filename)
                with open(tmp_filename, "wb") as f:
                    f.write(data)
        except OSError as e:
            # A failed write must not leave the partial file behind.
            if tmp_path:
                tmp_path.unlink(missing_ok=True)
            raise WorkspaceIOError(f"Could not save {fmt_path(path)}: {e}") from e

        log.info("Saved document: %s (%s chars)", fmt_path(path), len(request.content))
        return str(path.absolute())


## Tests


def test_entry_sort_key():
    entries = [
        WorkspaceEntry(name="beta.md", is_directory=False),
        WorkspaceEntry(name="Zeta", is_directory=True),
        WorkspaceEntry(name="Alpha.md", is_directory=False),
        WorkspaceEntry(name="archive", is_directory=True),
    ]
    ordered = [e.name for e in sorted(entries, key=entry_sort_key)]
    assert ordered == ["archive", "Zeta", "Alpha.md", "beta.md"]


def test_document_filename():
    ws = WorkspaceManager(root=Path("/unused"), extension=".md")
    assert ws.document_filename("todo") == "todo.md"
    assert ws.document_filename("todo.md") == "todo.md"
    assert ws.document_filename("notes.txt") == "notes.txt.md"
    assert ws.document_filename(ws.document_filename("x")) == "x.md"

    for bad_name in ["", "  ", ".", "..", "a/b", "../up", "nul\0l"]:
        try:
            ws.document_filename(bad_name)
            assert False, bad_name
        except InvalidFilename:
            pass
