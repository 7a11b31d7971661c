"""Launch pipeline metrics — per-stage latency, outcomes, fallback usage.

Counters accumulate during runtime and are read by the stats reporter
and the /metrics endpoint.
"""

import time
from dataclasses import dataclass
from threading import Lock


@dataclass
class StageMetrics:
    """Latency accumulator for a single pipeline stage."""

    total_runs: int = 0
    total_latency_ms: float = 0.0
    max_latency_ms: float = 0.0

    @property
    def avg_latency_ms(self) -> float:
        if self.total_runs == 0:
            return 0.0
        return self.total_latency_ms / self.total_runs


class LaunchMetrics:
    """Global metrics accumulator for the launch pipeline.

    Guarded by a simple lock: launches run on the event loop but the
    stats reporter and API read concurrently.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._stages: dict[str, StageMetrics] = {}
        self._launches: int = 0
        self._successes: int = 0
        self._total_elapsed_ms: float = 0.0
        # component -> source -> count, e.g. {"metadata": {"secondary": 2}}
        self._sources: dict[str, dict[str, int]] = {}
        self._start_time: float = time.monotonic()

    def _get_stage(self, stage_name: str) -> StageMetrics:
        if stage_name not in self._stages:
            self._stages[stage_name] = StageMetrics()
        return self._stages[stage_name]

    def record_stage(self, stage_name: str, latency_ms: float) -> None:
        with self._lock:
            sm = self._get_stage(stage_name)
            sm.total_runs += 1
            sm.total_latency_ms += latency_ms
            if latency_ms > sm.max_latency_ms:
                sm.max_latency_ms = latency_ms

    def record_launch(self, success: bool, elapsed_ms: float) -> None:
        with self._lock:
            self._launches += 1
            if success:
                self._successes += 1
            self._total_elapsed_ms += elapsed_ms

    def record_source(self, component: str, source: str) -> None:
        """Record which backend/path served a component (metadata, submission)."""
        with self._lock:
            by_source = self._sources.setdefault(component, {})
            by_source[source] = by_source.get(source, 0) + 1

    def reset(self) -> None:
        with self._lock:
            self._stages.clear()
            self._sources.clear()
            self._launches = 0
            self._successes = 0
            self._total_elapsed_ms = 0.0
            self._start_time = time.monotonic()

    def get_summary(self) -> dict:
        """Return a snapshot of all metrics."""
        with self._lock:
            uptime = time.monotonic() - self._start_time
            summary: dict = {
                "uptime_sec": round(uptime),
                "launches": self._launches,
                "successes": self._successes,
                "failures": self._launches - self._successes,
                "avg_elapsed_ms": round(self._total_elapsed_ms / self._launches)
                if self._launches
                else 0,
                "sources": {k: dict(v) for k, v in self._sources.items()},
                "stages": {},
            }
            for name, sm in self._stages.items():
                summary["stages"][name] = {
                    "runs": sm.total_runs,
                    "avg_latency_ms": round(sm.avg_latency_ms),
                    "max_latency_ms": round(sm.max_latency_ms),
                }
            return summary

    def format_stats_line(self) -> str:
        """One-line summary for the stats reporter."""
        with self._lock:
            total = self._launches
            avg = self._total_elapsed_ms / total if total else 0.0
            fallbacks = sum(
                count
                for by_source in self._sources.values()
                for source, count in by_source.items()
                if source in ("secondary", "rpc")
            )
            return (
                f"launches={total} ok={self._successes} "
                f"failed={total - self._successes} "
                f"avg={avg:.0f}ms fallbacks={fallbacks}"
            )


# Global singleton, shared by the pipeline and the stats reporter
metrics = LaunchMetrics()
