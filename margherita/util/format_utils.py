import shlex
from pathlib import Path


def fmt_path(path: str | Path, resolve: bool = True) -> str:
    """
    Format a path or filename for display. This quotes it if it contains whitespace.

    :param resolve: If true paths are made absolute first. Otherwise they are shown as given.
    """
    path = Path(path).absolute() if resolve else Path(path)

    return shlex.quote(str(path))


## Tests


def test_fmt_path():
    assert fmt_path("/tmp/notes/a.md") == "/tmp/notes/a.md"
    assert fmt_path("/tmp/my notes/a.md") == "'/tmp/my notes/a.md'"
    assert fmt_path("a b.md", resolve=False) == "'a b.md'"
