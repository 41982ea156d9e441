import threading
from contextlib import contextmanager
from typing import Dict, Hashable, Iterator, List, Optional

from fixtrack.core.errors import ConcurrentModification


class IssueLockPool:
    """
    One reentrant mutex per issue id, created on demand and dropped when no
    caller holds or waits on it. A thread already holding an issue may take
    it again. Commands on different issues never contend; the
    pool's own guard is only held while looking a lock up.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable, timeout: Optional[float] = None) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = [threading.RLock(), 0]
            entry[1] += 1

        lock = entry[0]
        acquired = lock.acquire(timeout=-1 if timeout is None else timeout)
        try:
            if not acquired:
                raise ConcurrentModification(key, f"timed out waiting for issue {key}")
            yield
        finally:
            if acquired:
                lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)


# Shared by every engine in the process so that per-request sessions still serialize.
issue_locks = IssueLockPool()
