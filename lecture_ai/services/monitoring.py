"""
Request metrics as Prometheus collectors.

Each ``RequestMetrics`` owns its registry so an app built in a test does not
share counters with another. Only the latest error responses are kept in
memory; everything else lives in the collectors.
"""
from __future__ import annotations

import threading
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


@dataclass(frozen=True)
class RequestError:
    endpoint: str
    method: str
    status_code: int
    response_time_ms: float
    timestamp: str


def _sample_total(metric, suffix: str) -> float:
    return sum(s.value for fam in metric.collect() for s in fam.samples if s.name.endswith(suffix))


class RequestMetrics:
    def __init__(self, max_errors: int = 1000, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()
        self.requests_total = Counter(
            "http_server_requests_total",
            "Total HTTP requests",
            ["route", "method", "status"],
            registry=self.registry,
        )
        self.requests_seconds = Histogram(
            "http_server_requests_seconds",
            "Latency of HTTP requests",
            ["route", "method", "status"],
            registry=self.registry,
        )
        self.cache_hits_total = Counter(
            "artifact_cache_hits_total",
            "Requests answered from the in-memory cache",
            ["route"],
            registry=self.registry,
        )
        self._errors: deque[RequestError] = deque(maxlen=max_errors)
        self._lock = threading.Lock()

    def record(self, endpoint: str, method: str, status_code: int, response_time_ms: float, cached: bool) -> None:
        status = str(status_code)
        self.requests_total.labels(route=endpoint, method=method, status=status).inc()
        self.requests_seconds.labels(route=endpoint, method=method, status=status).observe(response_time_ms / 1000)
        if cached:
            self.cache_hits_total.labels(route=endpoint).inc()
        if status_code >= 400:
            err = RequestError(
                endpoint=endpoint,
                method=method,
                status_code=status_code,
                response_time_ms=round(response_time_ms, 2),
                timestamp=datetime.now(timezone.utc).isoformat(),
            )
            with self._lock:
                self._errors.append(err)

    def stats(self) -> dict[str, Any]:
        total = 0
        errors = 0
        for fam in self.requests_total.collect():
            for s in fam.samples:
                if not s.name.endswith("_total"):
                    continue
                total += int(s.value)
                if int(s.labels["status"]) >= 400:
                    errors += int(s.value)
        if not total:
            return {"total_requests": 0, "avg_response_time_ms": 0.0, "error_rate": 0.0, "cache_hit_rate": 0.0}

        seconds = _sample_total(self.requests_seconds, "_sum")
        hits = _sample_total(self.cache_hits_total, "_total")
        return {
            "total_requests": total,
            "avg_response_time_ms": round(seconds * 1000 / total, 2),
            "error_rate": round(errors / total * 100, 2),
            "cache_hit_rate": round(hits / total * 100, 2),
        }

    def recent_errors(self, limit: int = 10) -> list[dict[str, Any]]:
        with self._lock:
            errors = list(self._errors)
        return [asdict(e) for e in errors[-limit:]]

    def exposition(self) -> bytes:
        return generate_latest(self.registry)
