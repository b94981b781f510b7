"""
Unit tests for the throttled ingest buffer
"""
import threading

from NLOGS.UI.views.logs.buffer import LogBuffer


class TestLogBuffer:
    """Test draining and retention"""

    def test_drain_moves_one_batch(self, make_entry):
        buffer = LogBuffer(max_logs=100, batch_size=10)
        buffer.push(make_entry() for _ in range(25))

        assert buffer.drain()
        assert len(buffer.entries) == 10
        assert buffer.pending_count == 15

        buffer.drain()
        buffer.drain()
        assert len(buffer.entries) == 25
        assert not buffer.drain()

    def test_arrival_order(self, make_entry):
        buffer = LogBuffer(batch_size=10)
        buffer.push([make_entry(id="a"), make_entry(id="b"), make_entry(id="c")])
        buffer.drain()
        assert [entry.id for entry in buffer.entries] == ["a", "b", "c"]

    def test_retains_most_recent(self, make_entry):
        buffer = LogBuffer(max_logs=5, batch_size=4)
        buffer.push(make_entry(id=str(i)) for i in range(12))
        while buffer.drain():
            pass
        assert [entry.id for entry in buffer.entries] == ["7", "8", "9", "10", "11"]

    def test_snapshots_do_not_change(self, make_entry):
        buffer = LogBuffer(batch_size=1)
        buffer.push([make_entry(id="a"), make_entry(id="b")])
        buffer.drain()
        snapshot = buffer.entries
        buffer.drain()
        assert [entry.id for entry in snapshot] == ["a"]

    def test_clear(self, make_entry):
        buffer = LogBuffer(batch_size=1)
        buffer.push([make_entry(), make_entry()])
        buffer.drain()
        buffer.clear()
        assert buffer.entries == []
        assert buffer.pending_count == 0

    def test_concurrent_push(self, make_entry):
        buffer = LogBuffer(max_logs=10000, batch_size=1000)
        batches = [[make_entry(id=f"{t}-{i}") for i in range(200)] for t in range(4)]
        threads = [threading.Thread(target=buffer.push, args=(batch,)) for batch in batches]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        assert buffer.pending_count == 800
