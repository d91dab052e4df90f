#!/usr/bin/env python3

"""
Performance monitoring for the lncRNA categorization pipeline.

Each pipeline step (extraction, genePred conversion, annotation loading and
categorization) runs inside ``phase_context``, which records wall-clock time,
resident memory and the number of items the step handled.
"""

import time
import logging
import psutil
from dataclasses import dataclass
from typing import Optional, Dict, Any, List
from contextlib import contextmanager

from ..core.exceptions import MemoryError as PipelineMemoryError

MB = 1024 * 1024


@dataclass
class PhaseMetrics:
    """Timing and memory of one pipeline step."""
    name: str
    started: float
    finished: Optional[float] = None
    rss_start_mb: float = 0.0
    rss_peak_mb: float = 0.0
    items: int = 0

    @property
    def elapsed(self) -> float:
        end = self.finished if self.finished is not None else time.time()
        return end - self.started

    @property
    def throughput(self) -> float:
        """Items per second, 0 when nothing was counted."""
        if self.items and self.elapsed > 0:
            return self.items / self.elapsed
        return 0.0


class PerformanceMonitor:
    """Samples process RSS with psutil and times named pipeline steps."""

    def __init__(self, memory_limit_mb: int = 4096):
        self.memory_limit_mb = memory_limit_mb
        self.created = time.time()
        self.phases: List[PhaseMetrics] = []
        self._active: Optional[PhaseMetrics] = None

        try:
            self._process = psutil.Process()
        except psutil.Error as e:
            self._process = None
            logging.warning(f"Memory monitoring disabled: {e}")

    def rss_mb(self) -> float:
        """Resident memory of this process in MB; also updates the active phase peak."""
        if self._process is None:
            return 0.0
        try:
            rss = self._process.memory_info().rss / MB
        except psutil.Error as e:
            logging.warning(f"Could not read process memory: {e}")
            return 0.0

        if self._active is not None:
            self._active.rss_peak_mb = max(self._active.rss_peak_mb, rss)
        return rss

    def check_memory_limit(self) -> bool:
        """Raise MemoryError when resident memory is above the configured limit."""
        rss = self.rss_mb()
        if rss > self.memory_limit_mb:
            logging.warning(f"Memory usage {rss:.1f}MB is above the limit of {self.memory_limit_mb}MB")
            raise PipelineMemoryError("Memory usage exceeded limit", rss, self.memory_limit_mb)
        return True

    @contextmanager
    def phase_context(self, name: str):
        """Time the enclosed block as pipeline step ``name`` and yield its metrics."""
        if self._active is not None:
            raise RuntimeError(f"Phase {self._active.name} is still running")

        metrics = PhaseMetrics(name=name, started=time.time())
        self._active = metrics
        metrics.rss_start_mb = self.rss_mb()
        self.phases.append(metrics)
        logging.info(f"Started phase: {name}")

        try:
            yield metrics
        finally:
            self.rss_mb()
            metrics.finished = time.time()
            self._active = None
            logging.info(f"Completed phase {name} in {metrics.elapsed:.2f}s "
                         f"(peak memory: {metrics.rss_peak_mb:.1f}MB)")

    @property
    def peak_memory_mb(self) -> float:
        if not self.phases:
            return self.rss_mb()
        return max(phase.rss_peak_mb for phase in self.phases)

    def get_performance_summary(self) -> Dict[str, Any]:
        return {
            "total_elapsed_time": time.time() - self.created,
            "peak_memory_mb": self.peak_memory_mb,
            "memory_limit_mb": self.memory_limit_mb,
            "phases": {
                phase.name: {
                    "elapsed_time": phase.elapsed,
                    "items": phase.items,
                    "items_per_second": phase.throughput,
                    "peak_memory_mb": phase.rss_peak_mb,
                }
                for phase in self.phases
            },
        }

    def log_performance_report(self) -> None:
        """Log run time and memory, with one line per pipeline step."""
        summary = self.get_performance_summary()
        lines = [
            "Performance report",
            f"  Total time  : {summary['total_elapsed_time']:.2f}s",
            f"  Peak memory : {summary['peak_memory_mb']:.1f}MB (limit {summary['memory_limit_mb']}MB)",
        ]
        for name, phase in summary["phases"].items():
            lines.append(f"  {name:<20}: {phase['elapsed_time']:.2f}s, {phase['items']} items, "
                         f"{phase['peak_memory_mb']:.1f}MB")
        logging.info("\n".join(lines))
