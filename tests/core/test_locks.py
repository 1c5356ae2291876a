"""Tests for dosa.core.locks module."""

import threading
import time

from dosa.core.locks import ReadWriteLock


class TestReadWriteLock:
    def test_readers_share(self):
        lock = ReadWriteLock()
        inside = []
        barrier = threading.Barrier(3, timeout=2)

        def reader():
            with lock.read():
                inside.append(1)
                barrier.wait()

        threads = [threading.Thread(target=reader) for _ in range(3)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=2)
        assert len(inside) == 3

    def test_writer_excludes_readers(self):
        lock = ReadWriteLock()
        events = []

        def writer():
            with lock.write():
                events.append("write-start")
                time.sleep(0.05)
                events.append("write-end")

        lock.acquire_read()
        t = threading.Thread(target=writer)
        t.start()
        time.sleep(0.02)
        assert events == []
        lock.release_read()
        t.join(timeout=2)

        with lock.read():
            events.append("read")
        assert events == ["write-start", "write-end", "read"]
