import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from bucketloc.cache.location_cache import LocationCache
from bucketloc.cache.rwlock import ReadWriteLock


def test_get_set_delete():
    cache = LocationCache()
    assert cache.get("photos") == ("", False)
    cache.set("photos", "eu-west-1")
    assert cache.get("photos") == ("eu-west-1", True)
    cache.set("photos", "ap-southeast-1")
    assert cache.get("photos") == ("ap-southeast-1", True)
    cache.delete("photos")
    assert cache.get("photos") == ("", False)
    cache.delete("photos")
    assert len(cache) == 0


def test_snapshot_is_a_copy():
    cache = LocationCache()
    cache.set("logs", "us-west-2")
    snapshot = cache.snapshot()
    snapshot["logs"] = "tampered"
    assert cache.get("logs") == ("us-west-2", True)


def test_concurrent_writers_do_not_lose_updates():
    cache = LocationCache()
    buckets = [f"bucket-{i}" for i in range(200)]

    def write(bucket):
        cache.set(bucket, f"region-{bucket}")
        return cache.get(bucket)

    with ThreadPoolExecutor(max_workers=16) as pool:
        results = list(pool.map(write, buckets * 3))

    assert all(found for _, found in results)
    assert cache.snapshot() == {bucket: f"region-{bucket}" for bucket in buckets}


def test_readers_share_the_lock():
    lock = ReadWriteLock()
    inside = threading.Barrier(3, timeout=5)

    def reader():
        with lock.read_locked():
            inside.wait()

    threads = [threading.Thread(target=reader) for _ in range(3)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)
    assert not inside.broken


def test_writer_excludes_readers():
    lock = ReadWriteLock()
    events = []
    lock.acquire_write()

    def reader():
        with lock.read_locked():
            events.append("read")

    thread = threading.Thread(target=reader)
    thread.start()
    thread.join(timeout=0.2)
    assert events == []
    events.append("write-done")
    lock.release_write()
    thread.join(timeout=5)
    assert events == ["write-done", "read"]


def test_abandoned_writer_wakes_parked_readers(monkeypatch):
    lock = ReadWriteLock()
    lock.acquire_read()
    notified = []
    original_notify = lock._cond.notify_all

    def interrupted_wait(timeout=None):
        raise RuntimeError("interrupted")

    def recording_notify():
        notified.append(True)
        original_notify()

    monkeypatch.setattr(lock._cond, "wait", interrupted_wait)
    monkeypatch.setattr(lock._cond, "notify_all", recording_notify)
    with pytest.raises(RuntimeError):
        lock.acquire_write()

    assert notified == [True]
    assert lock._writers_waiting == 0
    assert not lock._writer
    monkeypatch.undo()

    acquired = []
    thread = threading.Thread(target=lambda: (lock.acquire_read(), acquired.append(True)))
    thread.start()
    thread.join(timeout=5)
    assert acquired == [True]
