from __future__ import annotations

from collections import defaultdict, deque
from threading import Lock
from typing import Deque

_MAX_SAMPLES = 500


def _percentile(sorted_values: list[float], p: float) -> float:
    """Linear interpolation between closest ranks."""
    if not sorted_values:
        return 0.0
    rank = (len(sorted_values) - 1) * p
    low = int(rank)
    high = min(low + 1, len(sorted_values) - 1)
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * (rank - low))


class LatencyRecorder:
    def __init__(self, max_samples: int = _MAX_SAMPLES) -> None:
        self._samples: dict[str, Deque[float]] = defaultdict(lambda: deque(maxlen=max_samples))
        self._lock = Lock()

    def observe(self, endpoint: str, latency_ms: float) -> None:
        key = str(endpoint or 'unknown').strip() or 'unknown'
        with self._lock:
            self._samples[key].append(max(0.0, float(latency_ms)))

    def reset(self) -> None:
        with self._lock:
            self._samples.clear()

    def summary(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            snapshot = {k: sorted(v) for k, v in self._samples.items() if v}
        return {
            endpoint: {
                'count': len(arr),
                'p50_ms': round(_percentile(arr, 0.50), 2),
                'p95_ms': round(_percentile(arr, 0.95), 2),
                'p99_ms': round(_percentile(arr, 0.99), 2),
                'max_ms': round(arr[-1], 2),
            }
            for endpoint, arr in snapshot.items()
        }


latency_recorder = LatencyRecorder()


def observe(endpoint: str, latency_ms: float) -> None:
    latency_recorder.observe(endpoint, latency_ms)


def summary() -> dict[str, dict[str, float | int]]:
    return latency_recorder.summary()
