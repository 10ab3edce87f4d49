import os
import random
from pathlib import Path

import pytest

from margherita.errors import InvalidFilename, PathResolutionError, WorkspaceIOError
from margherita.workspace import workspace_manager as wm
from margherita.workspace.workspace_manager import (
    DocumentContent,
    SaveRequest,
    WorkspaceEntry,
    WorkspaceManager,
)


def test_ensure_workspace_creates_dir(documents_dir: Path):
    ws = WorkspaceManager()
    path = ws.ensure_workspace()

    assert path == documents_dir / "margherita"
    assert path.is_dir()
    # Idempotent.
    assert ws.ensure_workspace() == path
    assert path.is_dir()


def test_ensure_workspace_fails_when_path_is_file(tmp_path: Path):
    blocker = tmp_path / "margherita"
    blocker.write_text("not a directory")

    with pytest.raises(WorkspaceIOError) as excinfo:
        WorkspaceManager(root=blocker).ensure_workspace()
    assert "margherita" in str(excinfo.value)


def test_ensure_workspace_without_home(monkeypatch, documents_dir: Path):
    from margherita.config.settings import update_global_settings

    def no_home():
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(Path, "home", staticmethod(no_home))
    with update_global_settings() as settings:
        settings.documents_dir = None

    with pytest.raises(PathResolutionError):
        WorkspaceManager().ensure_workspace()


def test_list_new_workspace_is_empty(documents_dir: Path):
    ws = WorkspaceManager()
    assert ws.list() == []
    assert (documents_dir / "margherita").is_dir()


def test_list_existing_empty_workspace(tmp_path: Path):
    assert WorkspaceManager(root=tmp_path).list() == []


def test_list_filters_and_orders(tmp_path: Path):
    for name in ["beta.md", "Alpha.md", "notes.txt", "image.png", "README", "draft.MD"]:
        (tmp_path / name).write_text("x")
    for name in ["zeta", "Archive", "beta"]:
        (tmp_path / name).mkdir()

    entries = WorkspaceManager(root=tmp_path).list()

    assert entries == [
        WorkspaceEntry(name="Archive", is_directory=True),
        WorkspaceEntry(name="beta", is_directory=True),
        WorkspaceEntry(name="zeta", is_directory=True),
        WorkspaceEntry(name="Alpha.md", is_directory=False),
        WorkspaceEntry(name="beta.md", is_directory=False),
    ]


def test_list_order_property(tmp_path: Path):
    rng = random.Random(7)
    letters = "aAbBcCxyZ"
    for i in range(40):
        name = "".join(rng.choice(letters) for _ in range(4)) + f"{i}"
        if rng.random() < 0.4:
            (tmp_path / name).mkdir()
        else:
            (tmp_path / f"{name}.md").write_text("")

    entries = WorkspaceManager(root=tmp_path).list()
    assert len(entries) == 40

    for a, b in zip(entries, entries[1:]):
        assert not (b.is_directory and not a.is_directory)
        if a.is_directory == b.is_directory:
            assert a.name.lower() <= b.name.lower()


def test_list_skips_unreadable_entries(tmp_path: Path, monkeypatch):
    class FakeEntry:
        def __init__(self, name: str, is_dir: bool, broken: bool = False):
            self.name = name
            self._is_dir = is_dir
            self._broken = broken

        def is_dir(self):
            if self._broken:
                raise PermissionError(13, "Permission denied", self.name)
            return self._is_dir

        def is_file(self):
            return not self._is_dir

    class FakeScandir:
        def __init__(self, entries):
            self.entries = entries

        def __enter__(self):
            return iter(self.entries)

        def __exit__(self, *exc_info):
            return False

    fake_entries = [
        FakeEntry("ok.md", is_dir=False),
        FakeEntry("locked.md", is_dir=False, broken=True),
        FakeEntry("folder", is_dir=True),
    ]
    monkeypatch.setattr(wm.os, "scandir", lambda path: FakeScandir(fake_entries))

    entries = WorkspaceManager(root=tmp_path).list()

    assert entries == [
        WorkspaceEntry(name="folder", is_directory=True),
        WorkspaceEntry(name="ok.md", is_directory=False),
    ]


def test_list_fails_when_directory_unreadable(tmp_path: Path, monkeypatch):
    def broken_scandir(path):
        raise PermissionError(13, "Permission denied", str(path))

    monkeypatch.setattr(wm.os, "scandir", broken_scandir)

    with pytest.raises(WorkspaceIOError) as excinfo:
        WorkspaceManager(root=tmp_path).list()
    assert "Could not list workspace" in str(excinfo.value)


def test_save_appends_extension(documents_dir: Path):
    ws = WorkspaceManager()
    saved_path = ws.save(SaveRequest(name="todo", content="# Hi"))

    target = documents_dir / "margherita" / "todo.md"
    assert saved_path.endswith("todo.md")
    assert Path(saved_path) == target.absolute()
    assert target.read_text(encoding="utf-8") == "# Hi"


def test_save_extension_idempotent(tmp_path: Path):
    ws = WorkspaceManager(root=tmp_path)
    first = ws.save(SaveRequest(name="x", content="one"))
    second = ws.save(SaveRequest(name="x.md", content="two"))

    assert first == second
    assert (tmp_path / "x.md").read_text(encoding="utf-8") == "two"
    assert [e.name for e in ws.list()] == ["x.md"]


def test_save_overwrites(tmp_path: Path):
    ws = WorkspaceManager(root=tmp_path)
    ws.save(SaveRequest(name="note", content="a much longer first version\n" * 10))
    ws.save(SaveRequest(name="note", content="short"))

    assert (tmp_path / "note.md").read_text(encoding="utf-8") == "short"


def test_save_creates_workspace(tmp_path: Path):
    root = tmp_path / "docs" / "margherita"
    WorkspaceManager(root=root).save(SaveRequest(name="first", content=""))

    assert (root / "first.md").is_file()


def test_save_rejects_bad_names(tmp_path: Path):
    ws = WorkspaceManager(root=tmp_path)
    for name in ["", "../escape", "sub/dir", ".."]:
        with pytest.raises(InvalidFilename):
            ws.save(SaveRequest(name=name, content="x"))

    assert list(tmp_path.iterdir()) == []


@pytest.mark.parametrize(
    "content",
    [
        "",
        "# Title\n\nSome *text*.\n",
        "windows\r\nline endings\r\n",
        "unicode: pizza 🍕, caffè, 日本語\n",
        "no trailing newline",
    ],
)
def test_save_read_round_trip(tmp_path: Path, content: str):
    ws = WorkspaceManager(root=tmp_path)
    saved_path = ws.save(SaveRequest(name="doc", content=content))

    assert ws.read(saved_path) == DocumentContent(path=saved_path, content=content)
    assert ws.read("doc.md").content == content


def test_read_echoes_path(tmp_path: Path):
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "inner.md").write_text("inside", encoding="utf-8")

    doc = WorkspaceManager(root=tmp_path).read("sub/../sub/inner.md")

    assert doc.path == "sub/../sub/inner.md"
    assert doc.content == "inside"


def test_read_missing_file(tmp_path: Path):
    with pytest.raises(WorkspaceIOError) as excinfo:
        WorkspaceManager(root=tmp_path).read("missing.md")
    assert "missing.md" in str(excinfo.value)


def test_read_invalid_text(tmp_path: Path):
    (tmp_path / "binary.md").write_bytes(b"\xff\xfe\x00\x80bad")

    with pytest.raises(WorkspaceIOError):
        WorkspaceManager(root=tmp_path).read("binary.md")


def test_read_outside_workspace(tmp_path: Path):
    root = tmp_path / "ws"
    root.mkdir()
    (tmp_path / "secret.md").write_text("private")

    ws = WorkspaceManager(root=root)
    with pytest.raises(WorkspaceIOError):
        ws.read("../secret.md")
    with pytest.raises(WorkspaceIOError):
        ws.read(str(tmp_path / "secret.md"))


@pytest.mark.skipif(os.name == "nt" or os.geteuid() == 0, reason="needs POSIX permissions")
def test_read_unreadable_file(tmp_path: Path):
    path = tmp_path / "locked.md"
    path.write_text("secret")
    path.chmod(0)
    try:
        with pytest.raises(WorkspaceIOError):
            WorkspaceManager(root=tmp_path).read("locked.md")
    finally:
        path.chmod(0o644)


def test_save_unencodable_content_leaves_no_files(tmp_path: Path):
    ws = WorkspaceManager(root=tmp_path)

    with pytest.raises(WorkspaceIOError):
        ws.save(SaveRequest(name="bad", content="x\ud800y"))

    assert list(tmp_path.iterdir()) == []


def test_save_write_failure_removes_partial_file(tmp_path: Path, monkeypatch):
    real_open = open

    def disk_full_open(file, mode="r", *args, **kwargs):
        f = real_open(file, mode, *args, **kwargs)
        f.close()
        raise OSError(28, "No space left on device")

    ws = WorkspaceManager(root=tmp_path)
    ws.save(SaveRequest(name="kept", content="old"))
    monkeypatch.setattr(wm, "open", disk_full_open, raising=False)

    with pytest.raises(WorkspaceIOError) as excinfo:
        ws.save(SaveRequest(name="kept", content="new"))
    assert "No space left" in str(excinfo.value)

    assert [p.name for p in tmp_path.iterdir()] == ["kept.md"]
    assert (tmp_path / "kept.md").read_text(encoding="utf-8") == "old"


def test_read_null_byte_path(tmp_path: Path):
    with pytest.raises(WorkspaceIOError) as excinfo:
        WorkspaceManager(root=tmp_path).read("a\0b.md")
    assert isinstance(excinfo.value, InvalidFilename)
