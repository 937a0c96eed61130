"""Per-technician mutual exclusion for validate-then-write sequences."""
import threading
import weakref
from contextlib import contextmanager


class TechnicianLocks:
    """
    Hands out one lock per technician id.

    Overlap validation reads the full sibling set and then writes, so two
    concurrent writers for the same technician must not interleave. Writers for
    different technicians never block each other.

    Pattern: in-process registry. Good for a single worker process; with several
    workers the backing store has to enforce the constraint. Entries are weakly
    referenced and disappear once no holder or waiter keeps the lock alive.
    """

    def __init__(self):
        # {technician_id: _TechnicianLock}
        self._locks: "weakref.WeakValueDictionary[str, _TechnicianLock]" = weakref.WeakValueDictionary()
        self._registry_lock = threading.Lock()

    def _lock_for(self, technician_id: str):
        with self._registry_lock:
            lock = self._locks.get(technician_id)
            if lock is None:
                lock = _TechnicianLock()
                self._locks[technician_id] = lock
            return lock

    def __len__(self) -> int:
        return len(self._locks)

    @contextmanager
    def hold(self, technician_id: str):
        """Serializes the enclosed block against other holders for the same technician."""
        lock = self._lock_for(technician_id)
        with lock:
            yield


class _TechnicianLock:
    """`threading.Lock` cannot be weakly referenced, so it is wrapped."""

    __slots__ = ("_lock", "__weakref__")

    def __init__(self):
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        return self

    def __exit__(self, exc_type, exc, tb):
        self._lock.release()


# Shared by every store in the process
technician_locks = TechnicianLocks()
