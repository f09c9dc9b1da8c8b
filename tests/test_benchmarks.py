import logging
import math
import subprocess
from unittest.mock import patch

import pytest

from conflux.benchmarks import (
    BenchmarkConfig,
    BenchmarkResults,
    MemoryStats,
    run_latency_test,
    run_memory_test,
    run_performance_test,
)
from conflux.errors import ValidationError


def _results(qps=150.0, error_rate=0.0, avg=10.0):
    return BenchmarkResults(
        total_operations=10,
        successful_operations=10,
        failed_operations=0,
        avg_latency_ms=avg,
        p50_latency_ms=avg,
        p95_latency_ms=avg,
        p99_latency_ms=avg,
        qps=qps,
        error_rate=error_rate,
    )


def _ps_output(stdout):
    return subprocess.CompletedProcess(args=["ps"], returncode=0, stdout=stdout, stderr="")


def test_calculate_uniform_latencies():
    results = BenchmarkResults.calculate(4, 4, [0.010] * 4, 1.0)
    assert results.total_operations == 4
    assert results.successful_operations == 4
    assert results.failed_operations == 0
    assert results.avg_latency_ms == 10.0
    assert results.p50_latency_ms == 10.0
    assert results.p99_latency_ms == 10.0
    assert results.qps == 4.0
    assert results.error_rate == 0.0


def test_calculate_counts_failures():
    results = BenchmarkResults.calculate(10, 6, [0.002] * 6, 2.0)
    assert results.failed_operations + results.successful_operations == results.total_operations
    assert results.error_rate > 0.0


def test_calculate_truncates_to_whole_milliseconds():
    results = BenchmarkResults.calculate(1, 1, [0.0109], 1.0)
    assert results.p50_latency_ms == 10.0


def test_calculate_percentiles_are_ordered_and_input_order_free():
    latencies = [0.050, 0.001, 0.020, 0.003, 0.040, 0.010, 0.002, 0.030]
    forward = BenchmarkResults.calculate(8, 8, latencies, 1.0)
    backward = BenchmarkResults.calculate(8, 8, list(reversed(latencies)), 1.0)
    assert forward == backward
    assert forward.p50_latency_ms <= forward.p95_latency_ms <= forward.p99_latency_ms
    assert min(latencies) * 1000 - 1 <= forward.avg_latency_ms <= max(latencies) * 1000


def test_calculate_does_not_modify_input():
    latencies = [0.030, 0.010, 0.020]
    BenchmarkResults.calculate(3, 3, latencies, 1.0)
    assert latencies == [0.030, 0.010, 0.020]


def test_calculate_without_latencies():
    results = BenchmarkResults.calculate(5, 0, [], 1.0)
    assert math.isnan(results.avg_latency_ms)
    assert results.p50_latency_ms == 0.0
    assert results.p95_latency_ms == 0.0
    assert results.error_rate == 100.0


def test_calculate_rejects_more_successes_than_operations():
    with pytest.raises(ValidationError):
        BenchmarkResults.calculate(1, 2, [0.001, 0.001], 1.0)


def test_performance_targets():
    assert _results(qps=100.0, error_rate=0.0, avg=99.0).meets_performance_targets()
    assert not _results(qps=99.9).meets_performance_targets()
    assert not _results(error_rate=1.0).meets_performance_targets()
    assert not _results(avg=100.0).meets_performance_targets()


def test_results_display_logs(caplog):
    with caplog.at_level(logging.INFO, logger="conflux.benchmarks"):
        _results().display("single node")
    assert "single node" in caplog.text
    assert "QPS" in caplog.text


def test_memory_stats_current_reads_ps():
    with patch("conflux.benchmarks.subprocess.run", return_value=_ps_output("20480\n")):
        stats = MemoryStats.current()
    assert stats.initial_memory_mb == stats.current_memory_mb == stats.peak_memory_mb
    assert stats.current_memory_mb == 20.0
    assert stats.memory_growth_mb == 0.0


def test_memory_stats_update_tracks_peak_and_growth():
    stats = MemoryStats(10.0, 10.0, 10.0, 0.0)
    with patch("conflux.benchmarks.subprocess.run", return_value=_ps_output("  40960 ")):
        stats.update()
    assert stats.peak_memory_mb == stats.current_memory_mb
    assert stats.memory_growth_mb == stats.current_memory_mb - stats.initial_memory_mb
    with patch("conflux.benchmarks.subprocess.run", return_value=_ps_output("0")):
        stats.update()
    assert stats.current_memory_mb == 0.0
    assert stats.peak_memory_mb > stats.current_memory_mb
    assert stats.memory_growth_mb == -10.0


def test_memory_stats_fallbacks():
    with patch("conflux.benchmarks.subprocess.run", return_value=_ps_output("garbage")):
        assert MemoryStats.current().current_memory_mb == 0.0
    with patch("conflux.benchmarks.subprocess.run", side_effect=FileNotFoundError("ps")):
        assert MemoryStats.current().current_memory_mb == 0.0


def test_memory_acceptable_threshold():
    assert MemoryStats(0.0, 0.0, 199.9, 0.0).is_memory_usage_acceptable()
    assert not MemoryStats(0.0, 0.0, 200.0, 0.0).is_memory_usage_acceptable()


def test_memory_display_logs(caplog):
    with caplog.at_level(logging.INFO, logger="conflux.benchmarks"):
        MemoryStats(1.0, 2.0, 2.0, 1.0).display("idle")
    assert "idle" in caplog.text
    assert "Peak memory" in caplog.text


_FAST = BenchmarkConfig(duration=0.2, concurrency=1, warmup_duration=0.05, test_interval=0.01)


@pytest.mark.asyncio
async def test_performance_test_with_async_operation():
    calls = []

    async def operation():
        calls.append(1)
        return "metrics"

    results = await run_performance_test(operation, _FAST)
    assert results.total_operations > 0
    assert results.successful_operations == results.total_operations
    assert results.failed_operations == 0
    assert results.qps > 0.0
    assert len(calls) >= results.total_operations


@pytest.mark.asyncio
async def test_performance_test_counts_failures():
    state = {"n": 0}

    def operation():
        state["n"] += 1
        if state["n"] % 2 == 0:
            raise RuntimeError("boom")

    results = await run_performance_test(operation, _FAST)
    assert results.total_operations > 1
    assert results.failed_operations > 0
    assert results.successful_operations + results.failed_operations == results.total_operations


@pytest.mark.asyncio
async def test_performance_test_all_failing():
    def operation():
        raise RuntimeError("down")

    config = BenchmarkConfig(duration=0.1, concurrency=1, warmup_duration=0.0, test_interval=0.01)
    results = await run_performance_test(operation, config)
    assert results.successful_operations == 0
    assert results.error_rate == 100.0
    assert not results.meets_performance_targets()


@pytest.mark.asyncio
async def test_latency_test_returns_one_sample_per_call():
    async def operation():
        return None

    latencies = await run_latency_test(operation, 5)
    assert len(latencies) == 5
    assert all(latency >= 0.0 for latency in latencies)
    assert sum(latencies) / len(latencies) < 1.0


@pytest.mark.asyncio
async def test_latency_test_ignores_failures():
    def operation():
        raise RuntimeError("boom")

    assert len(await run_latency_test(operation, 3)) == 3


@pytest.mark.asyncio
async def test_memory_test_without_duration_does_not_call():
    calls = []
    stats = await run_memory_test(lambda: calls.append(1), 0.0)
    assert calls == []
    assert stats.memory_growth_mb == 0.0
    assert stats.current_memory_mb >= 0.0


@pytest.mark.asyncio
async def test_memory_test_samples_once_per_second():
    calls = []
    stats = await run_memory_test(lambda: calls.append(1), 0.01)
    assert len(calls) == 1
    assert stats.peak_memory_mb >= stats.current_memory_mb