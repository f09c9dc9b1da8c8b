"""Performance, latency and memory measurements for core operations."""

from __future__ import annotations

import asyncio
import inspect
import logging
import math
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, List, Optional, Sequence, Union

from conflux.errors import ValidationError

log = logging.getLogger(__name__)

Operation = Callable[[], Union[Any, Awaitable[Any]]]

_WARMUP_INTERVAL = 0.05
_LATENCY_INTERVAL = 0.01
_MEMORY_INTERVAL = 1.0


@dataclass
class BenchmarkConfig:
    """How long and how often a benchmark runs; times are in seconds."""

    duration: float = 30.0
    concurrency: int = 10
    warmup_duration: float = 5.0
    test_interval: float = 0.1


def _ratio(numerator: float, denominator: float) -> float:
    """Divide the way IEEE floats do, instead of raising on zero."""
    if denominator:
        return numerator / denominator
    if numerator == 0:
        return math.nan
    return math.copysign(math.inf, numerator)


def _micros(seconds: float) -> int:
    return round(seconds * 1_000_000)


@dataclass
class BenchmarkResults:
    """Aggregated outcome of a benchmark run."""

    total_operations: int
    successful_operations: int
    failed_operations: int
    avg_latency_ms: float
    p50_latency_ms: float
    p95_latency_ms: float
    p99_latency_ms: float
    qps: float
    error_rate: float

    @classmethod
    def calculate(cls, operations: int, successful: int, latencies: Sequence[float],
                  total_duration: float) -> "BenchmarkResults":
        """Work out the metrics from counts, per-operation latencies and the run time.

        Latencies and the duration are in seconds; latency metrics are whole
        milliseconds, truncated.
        """
        if successful > operations:
            raise ValidationError(
                f"successful operations ({successful}) exceed total operations ({operations})"
            )
        ordered = sorted(_micros(latency) for latency in latencies)
        count = len(ordered)
        failed = operations - successful

        avg_latency = _ratio(float(sum(ordered) // 1000), float(count))

        def percentile(pct: int) -> float:
            if not ordered:
                return 0.0
            return float(ordered[count * pct // 100] // 1000)

        return cls(
            total_operations=operations,
            successful_operations=successful,
            failed_operations=failed,
            avg_latency_ms=avg_latency,
            p50_latency_ms=percentile(50),
            p95_latency_ms=percentile(95),
            p99_latency_ms=percentile(99),
            qps=_ratio(float(successful), float(total_duration)),
            error_rate=_ratio(float(failed), float(operations)) * 100.0,
        )

    def display(self, test_name: str) -> None:
        """Log the results under a heading."""
        log.info("=== %s performance results ===", test_name)
        log.info("Total operations: %d", self.total_operations)
        log.info("Successful operations: %d", self.successful_operations)
        log.info("Failed operations: %d", self.failed_operations)
        log.info("QPS: %.2f", self.qps)
        log.info("Error rate: %.2f%%", self.error_rate)
        log.info("Average latency: %.2fms", self.avg_latency_ms)
        log.info("P50 latency: %.2fms", self.p50_latency_ms)
        log.info("P95 latency: %.2fms", self.p95_latency_ms)
        log.info("P99 latency: %.2fms", self.p99_latency_ms)
        log.info("========================")

    def meets_performance_targets(self) -> bool:
        """QPS of at least 100, under 1% errors and under 100ms average latency."""
        return self.qps >= 100.0 and self.error_rate < 1.0 and self.avg_latency_ms < 100.0


@dataclass
class MemoryStats:
    """Resident memory of this process over a run, in megabytes."""

    initial_memory_mb: float
    peak_memory_mb: float
    current_memory_mb: float
    memory_growth_mb: float

    @classmethod
    def current(cls) -> "MemoryStats":
        """Start statistics from the memory in use right now."""
        current_mb = cls._memory_usage_mb()
        return cls(current_mb, current_mb, current_mb, 0.0)

    def update(self) -> None:
        """Sample memory again and refresh peak and growth."""
        current = self._memory_usage_mb()
        self.current_memory_mb = current
        if current > self.peak_memory_mb:
            self.peak_memory_mb = current
        self.memory_growth_mb = self.current_memory_mb - self.initial_memory_mb

    @staticmethod
    def _memory_usage_mb() -> float:
        """Resident set size as reported by ``ps``, or 0.0 when unavailable."""
        try:
            proc = subprocess.run(
                ["ps", "-o", "rss=", "-p", str(os.getpid())],
                capture_output=True,
                text=True,
                check=False,
            )
        except (OSError, subprocess.SubprocessError):
            return 0.0
        try:
            return float(str(proc.stdout).strip()) / 1024.0
        except ValueError:
            return 0.0

    def display(self, test_name: str) -> None:
        """Log the statistics under a heading."""
        log.info("=== %s memory usage ===", test_name)
        log.info("Initial memory: %.2f MB", self.initial_memory_mb)
        log.info("Peak memory: %.2f MB", self.peak_memory_mb)
        log.info("Current memory: %.2f MB", self.current_memory_mb)
        log.info("Memory growth: %.2f MB", self.memory_growth_mb)
        log.info("=======================")

    def is_memory_usage_acceptable(self) -> bool:
        """Current memory below 200 MB."""
        return self.current_memory_mb < 200.0


async def _call(operation: Operation) -> Any:
    result = operation()
    if inspect.isawaitable(result):
        result = await result
    return result


async def _call_quietly(operation: Operation) -> None:
    try:
        await _call(operation)
    except Exception as exc:  # noqa: BLE001 - failures only count against the run
        log.debug("Benchmark operation failed: %s", exc)


async def _warmup(operation: Operation, duration: float) -> None:
    start = time.perf_counter()
    while time.perf_counter() - start < duration:
        await _call_quietly(operation)
        await asyncio.sleep(_WARMUP_INTERVAL)


async def run_performance_test(operation: Operation,
                               config: Optional[BenchmarkConfig] = None) -> BenchmarkResults:
    """Call the operation repeatedly for the configured time and measure it.

    The operation may be a plain or a coroutine function; a call that raises
    counts as a failure.
    """
    config = config or BenchmarkConfig()
    log.info("Warming up for %.2fs", config.warmup_duration)
    await _warmup(operation, config.warmup_duration)

    log.info("Running performance test for %.2fs", config.duration)
    start = time.perf_counter()
    operations = 0
    successful = 0
    latencies: List[float] = []
    while time.perf_counter() - start < config.duration:
        op_start = time.perf_counter()
        try:
            await _call(operation)
        except Exception as exc:  # noqa: BLE001
            log.debug("Benchmark operation failed: %s", exc)
        else:
            successful += 1
            latencies.append(time.perf_counter() - op_start)
        operations += 1
        await asyncio.sleep(config.test_interval)

    total_duration = time.perf_counter() - start
    return BenchmarkResults.calculate(operations, successful, latencies, total_duration)


async def run_memory_test(operation: Operation, duration: float) -> MemoryStats:
    """Call the operation once a second for ``duration`` seconds, sampling memory."""
    log.info("Running memory test for %.2fs", duration)
    stats = MemoryStats.current()
    start = time.perf_counter()
    while time.perf_counter() - start < duration:
        await _call_quietly(operation)
        stats.update()
        await asyncio.sleep(_MEMORY_INTERVAL)
    return stats


async def run_latency_test(operation: Operation, samples: int) -> List[float]:
    """Time ``samples`` calls of the operation; latencies are in seconds."""
    log.info("Running latency test with %d samples", samples)
    latencies: List[float] = []
    for _ in range(samples):
        start = time.perf_counter()
        await _call_quietly(operation)
        latencies.append(time.perf_counter() - start)
        await asyncio.sleep(_LATENCY_INTERVAL)
    return latencies