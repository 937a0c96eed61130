import threading
import time

from glassops_scheduler.locks import TechnicianLocks


def test_same_technician_shares_one_lock():
    locks = TechnicianLocks()
    assert locks._lock_for("tech-1") is locks._lock_for("tech-1")
    assert locks._lock_for("tech-1") is not locks._lock_for("tech-2")


def test_hold_serializes_writers_for_one_technician():
    locks = TechnicianLocks()
    inside = []
    max_inside = []

    def writer():
        with locks.hold("tech-1"):
            inside.append(1)
            max_inside.append(len(inside))
            time.sleep(0.01)
            inside.pop()

    threads = [threading.Thread(target=writer) for _ in range(5)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert max(max_inside) == 1


def test_different_technicians_do_not_block_each_other():
    locks = TechnicianLocks()
    acquired = threading.Event()

    def other_writer():
        with locks.hold("tech-2"):
            acquired.set()

    with locks.hold("tech-1"):
        thread = threading.Thread(target=other_writer)
        thread.start()
        assert acquired.wait(timeout=1.0)
        thread.join()


def test_registry_drops_lock_after_release():
    locks = TechnicianLocks()

    with locks.hold("tech-1"):
        assert len(locks) == 1

    assert len(locks) == 0


def test_registry_does_not_grow_with_distinct_ids():
    locks = TechnicianLocks()

    for i in range(500):
        with locks.hold(f"tech-{i}"):
            pass

    assert len(locks) == 0
