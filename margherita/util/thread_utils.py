import functools
import threading


def synchronized(func):
    """
    Convenience decorator to ensure a function is executed by only one thread at a time.
    """
    func.__lock__ = threading.Lock()

    @functools.wraps(func)
    def synced_func(*args, **kws):
        with func.__lock__:
            return func(*args, **kws)

    return synced_func


## Tests


def test_synchronized():
    active = []
    overlaps = []

    @synchronized
    def work(i):
        active.append(i)
        if len(active) > 1:
            overlaps.append(list(active))
        threading.Event().wait(0.001)
        active.remove(i)
        return i

    threads = [threading.Thread(target=work, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert overlaps == []
    assert work.__name__ == "work"
