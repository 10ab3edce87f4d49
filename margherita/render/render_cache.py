import threading
from typing import Callable, Optional

from pydantic.dataclasses import dataclass

from margherita.config.logger import get_logger
from margherita.render.markdown_render import markdown_to_html
from margherita.util.rw_lock import ReadWriteLock

log = get_logger(__name__)


Renderer = Callable[[str], str]


@dataclass(frozen=True)
class RenderCacheEntry:
    source: str
    rendered: str


class RenderCache:
    """
    Remembers the most recent markdown render. A live preview sends the whole document
    on every keystroke, and the same text often comes back repeatedly, so one entry is
    enough: a hit skips parsing, a miss renders and replaces the entry.

    Hits only take the shared read lock. A miss takes the write lock, so readers see
    either the old entry or the new one, never a half-updated pair.
    """

    def __init__(self, renderer: Renderer = markdown_to_html) -> None:
        self.renderer = renderer
        self.parse_count = 0
        """Number of times the renderer has actually run."""

        self._entry: Optional[RenderCacheEntry] = None
        self._lock = ReadWriteLock()

    @property
    def entry(self) -> Optional[RenderCacheEntry]:
        with self._lock.read_locked():
            return self._entry

    def _lookup(self, source: str) -> Optional[str]:
        entry = self._entry
        if entry is not None and entry.source == source:
            return entry.rendered
        return None

    def render(self, source: str) -> str:
        with self._lock.read_locked():
            cached = self._lookup(source)
        if cached is not None:
            return cached

        # Read lock is released before taking the write lock.
        with self._lock.write_locked():
            # Another caller may have rendered this same source while we waited.
            cached = self._lookup(source)
            if cached is not None:
                return cached

            rendered = self.renderer(source)
            self.parse_count += 1
            self._entry = RenderCacheEntry(source=source, rendered=rendered)

        log.debug("Rendered markdown: %s chars in, %s chars out", len(source), len(rendered))
        return rendered

    def clear(self) -> None:
        with self._lock.write_locked():
            self._entry = None

    def __str__(self) -> str:
        return f"RenderCache(parse_count={self.parse_count}, cached={self._entry is not None})"


## Tests


def test_render_cache_hit():
    cache = RenderCache()
    first = cache.render("**bold**")
    second = cache.render("**bold**")

    assert first == second
    assert "<strong>bold</strong>" in first
    assert cache.parse_count == 1


def test_render_cache_holds_one_entry():
    cache = RenderCache()
    cache.render("# One")
    cache.render("# Two")
    cache.render("# One")

    assert cache.parse_count == 3
    entry = cache.entry
    assert entry and entry.source == "# One"
    assert "<h1>One</h1>" in entry.rendered


def test_render_cache_empty_source():
    calls = []

    def renderer(source: str) -> str:
        calls.append(source)
        return ""

    cache = RenderCache(renderer=renderer)
    assert cache.render("") == ""
    assert cache.render("") == ""
    assert calls == [""]


def test_render_cache_clear():
    cache = RenderCache()
    cache.render("text")
    cache.clear()
    assert cache.entry is None
    cache.render("text")
    assert cache.parse_count == 2


def test_render_cache_concurrent_same_source():
    started = threading.Barrier(6, timeout=5)

    def slow_renderer(source: str) -> str:
        threading.Event().wait(0.02)
        return f"<p>{source}</p>"

    cache = RenderCache(renderer=slow_renderer)
    results = []

    def worker():
        started.wait()
        results.append(cache.render("same"))

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert results == ["<p>same</p>"] * 6
    assert cache.parse_count == 1


def test_render_cache_entries_never_mixed():
    cache = RenderCache(renderer=lambda source: f"<p>{source}</p>")
    sources = [f"doc {i % 3}" for i in range(60)]
    mismatches = []

    def writer(source: str):
        cache.render(source)

    def checker():
        for _ in range(200):
            entry = cache.entry
            if entry is not None and entry.rendered != f"<p>{entry.source}</p>":
                mismatches.append(entry)

    threads = [threading.Thread(target=writer, args=(s,)) for s in sources]
    threads.append(threading.Thread(target=checker))
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert mismatches == []
