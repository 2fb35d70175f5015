"""In-memory access decision counters with Prometheus mirroring."""

from __future__ import annotations

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict, Tuple

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    generate_latest,
)

from config import get_settings


PROM_REGISTRY = CollectorRegistry()
DECISION_COUNTER = Counter(
    "world_registry_decisions_total",
    "Count of access control decisions",
    labelnames=("flow", "outcome"),
    registry=PROM_REGISTRY,
)
DENIAL_COUNTER = Counter(
    "world_registry_denials_total",
    "Count of access control denials by error kind",
    labelnames=("kind",),
    registry=PROM_REGISTRY,
)


@dataclass
class AccessMetrics:
    prometheus_enabled: bool = False
    decisions: Dict[str, Dict[str, int]] = field(default_factory=dict)
    denials: Dict[str, int] = field(default_factory=dict)
    commits: int = 0

    def __post_init__(self) -> None:
        self._lock = Lock()

    def record_decision(self, *, flow: str, allowed: bool, kind: str | None = None) -> None:
        outcome = "allow" if allowed else "deny"
        with self._lock:
            flow_stats = self.decisions.setdefault(flow, {"allow": 0, "deny": 0})
            flow_stats[outcome] += 1
            if kind:
                self.denials[kind] = self.denials.get(kind, 0) + 1
        if self.prometheus_enabled:
            DECISION_COUNTER.labels(flow=flow, outcome=outcome).inc()
            if kind:
                DENIAL_COUNTER.labels(kind=kind).inc()

    def record_commit(self) -> None:
        with self._lock:
            self.commits += 1

    def reset(self) -> None:
        with self._lock:
            self.decisions.clear()
            self.denials.clear()
            self.commits = 0

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            allowed = sum(stats["allow"] for stats in self.decisions.values())
            denied = sum(stats["deny"] for stats in self.decisions.values())
            return {
                "total_decisions": allowed + denied,
                "allowed": allowed,
                "denied": denied,
                "commits": self.commits,
                "decisions": {flow: dict(stats) for flow, stats in self.decisions.items()},
                "denials": dict(self.denials),
            }


metrics = AccessMetrics(prometheus_enabled=get_settings().prometheus_enabled)


def generate_prometheus_metrics() -> Tuple[bytes, str]:
    return generate_latest(PROM_REGISTRY), CONTENT_TYPE_LATEST


__all__ = ["AccessMetrics", "metrics", "generate_prometheus_metrics"]
