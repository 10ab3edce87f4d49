import threading
from contextlib import contextmanager


class ReadWriteLock:
    """
    A simple writer-preferring reader/writer lock. Any number of readers may hold the
    lock together. A writer holds it alone, and once a writer is waiting new readers
    wait too, so a steady stream of readers can't starve it.

    Not reentrant. A thread holding the read lock must release it before asking for
    the write lock, or it will deadlock on itself.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    def acquire_read(self) -> None:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1

    def release_read(self) -> None:
        with self._cond:
            if self._readers <= 0:
                raise RuntimeError("release_read() called without a matching acquire_read()")
            self._readers -= 1
            if self._readers == 0:
                self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("release_write() called without a matching acquire_write()")
            self._writer = False
            self._cond.notify_all()

    @contextmanager
    def read_locked(self):
        self.acquire_read()
        try:
            yield
        finally:
            self.release_read()

    @contextmanager
    def write_locked(self):
        self.acquire_write()
        try:
            yield
        finally:
            self.release_write()


## Tests


def test_readers_share_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)
    passed = []

    def reader():
        with lock.read_locked():
            # All three readers must be inside at once to pass the barrier.
            inside.wait()
            passed.append(True)

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)
    assert len(passed) == 3


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []
    writer_in = threading.Event()

    def writer():
        with lock.write_locked():
            writer_in.set()
            events.append("write start")
            threading.Event().wait(0.05)
            events.append("write end")

    def reader():
        writer_in.wait(timeout=5)
        with lock.read_locked():
            events.append("read")

    w = threading.Thread(target=writer)
    r = threading.Thread(target=reader)
    w.start()
    r.start()
    w.join(timeout=5)
    r.join(timeout=5)

    assert events == ["write start", "write end", "read"]


def test_unbalanced_release():
    lock = ReadWriteLock()
    for release in [lock.release_read, lock.release_write]:
        try:
            release()
            assert False
        except RuntimeError:
            pass
