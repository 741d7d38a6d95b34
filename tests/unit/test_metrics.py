"""
Unit tests for MetricsCollector and timed_operation.

Tests metrics collection functionality including:
- Thread-safety under concurrent access
- Bounded storage with LRU eviction
- Timing of successful and failed operations
"""

import logging
import threading

import pytest

from mdb_odm.observability.metrics import (MetricsCollector,
                                           get_metrics_collector,
                                           record_operation, timed_operation)


@pytest.mark.unit
class TestMetricsCollector:
    """Test recording and reading metrics."""

    def test_concurrent_record_operation(self):
        collector = MetricsCollector()
        num_threads = 8
        operations_per_thread = 50
        barrier = threading.Barrier(num_threads)

        def record_operations(thread_id: int):
            barrier.wait()
            for i in range(operations_per_thread):
                collector.record_operation(
                    "query.one", duration_ms=1.0 + i, collection=f"c{thread_id}"
                )

        threads = [threading.Thread(target=record_operations, args=(i,)) for i in range(num_threads)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert collector.get_operation_count("query.one") == num_threads * operations_per_thread

    def test_tags_are_part_of_the_key(self):
        collector = MetricsCollector()
        collector.record_operation("query.all", 2.0, collection="users")
        collector.record_operation("query.all", 4.0, collection="users")
        collector.record_operation("query.all", 1.0, success=False, collection="orders")

        metrics = collector.get_metrics()["metrics"]
        users = metrics["query.all[collection=users]"]
        assert users["count"] == 2
        assert users["avg_duration_ms"] == 3.0
        assert users["max_duration_ms"] == 4.0
        assert metrics["query.all[collection=orders]"]["error_count"] == 1

    def test_filter_by_operation(self):
        collector = MetricsCollector()
        collector.record_operation("query.one", 1.0)
        collector.record_operation("collection.insert_one", 1.0)
        assert list(collector.get_metrics("query.one")["metrics"]) == ["query.one"]

    def test_oldest_key_is_evicted(self):
        collector = MetricsCollector(max_metrics=2)
        collector.record_operation("a", 1.0)
        collector.record_operation("b", 1.0)
        collector.record_operation("a", 1.0)
        collector.record_operation("c", 1.0)

        assert set(collector.get_metrics()["metrics"]) == {"a", "c"}

    def test_reset(self):
        collector = MetricsCollector()
        collector.record_operation("a", 1.0)
        collector.reset()
        assert collector.get_metrics()["metrics"] == {}

    def test_global_collector(self):
        record_operation("global.op", 1.0)
        assert get_metrics_collector() is get_metrics_collector()
        assert get_metrics_collector().get_operation_count("global.op") == 1


@pytest.mark.unit
class TestTimedOperation:
    """Test the timing context manager."""

    @pytest.mark.asyncio
    async def test_success_is_recorded(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="mdb_odm.observability.metrics"):
            async with timed_operation("query.count", collection="users"):
                pass

        metrics = get_metrics_collector().get_metrics()["metrics"]
        assert metrics["query.count[collection=users]"]["error_count"] == 0
        assert "Operation: query.count" in caplog.text

    @pytest.mark.asyncio
    async def test_failure_is_recorded_and_raised(self, caplog):
        with caplog.at_level(logging.WARNING, logger="mdb_odm.observability.metrics"):
            with pytest.raises(KeyError):
                async with timed_operation("query.one", collection="users"):
                    raise KeyError("boom")

        metrics = get_metrics_collector().get_metrics()["metrics"]
        assert metrics["query.one[collection=users]"]["error_count"] == 1
        assert "Operation failed: query.one" in caplog.text
