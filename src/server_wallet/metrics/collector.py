"""Prometheus metrics for the registry and the server wallet.

- ``server_wallet_stats_total{entity}`` gauge: registry_entries, outputs
- ``server_wallet_registry_operations_total{action,result}`` counter
- ``server_wallet_receive_histogram`` seconds per funding internalization
- ``server_wallet_wallet_init_histogram`` seconds per wallet initialization
"""

from __future__ import annotations

import time
from contextlib import contextmanager
from typing import TYPE_CHECKING

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

if TYPE_CHECKING:
    from collections.abc import Iterator
    from contextlib import AbstractContextManager

_PREFIX = "server_wallet"


@contextmanager
def _timed(histogram: Histogram) -> Iterator[None]:
    start = time.monotonic()
    try:
        yield
    finally:
        histogram.observe(time.monotonic() - start)


class EngineMetrics:
    """Engine-level metrics bound to their own :class:`CollectorRegistry`.

    Each instance registers into a private registry, so several apps (or
    tests) can live in one process without duplicate-series errors.
    """

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self._registry = registry if registry is not None else CollectorRegistry()
        self._stats = Gauge(
            f"{_PREFIX}_stats_total",
            "Entity counts in the server wallet",
            ("entity",),
            registry=self._registry,
        )
        self._registry_ops = Counter(
            f"{_PREFIX}_registry_operations",
            "Tag registry operations by action and result",
            ("action", "result"),
            registry=self._registry,
        )
        self._receive = Histogram(
            f"{_PREFIX}_receive_histogram",
            "Duration of funding internalization",
            registry=self._registry,
        )
        self._wallet_init = Histogram(
            f"{_PREFIX}_wallet_init_histogram",
            "Duration of server wallet initialization",
            registry=self._registry,
        )

    @property
    def registry(self) -> CollectorRegistry:
        return self._registry

    def set_registry_entry_count(self, count: int) -> None:
        self._stats.labels(entity="registry_entries").set(count)

    def set_output_count(self, count: int) -> None:
        self._stats.labels(entity="outputs").set(count)

    def record_registry_operation(self, action: str, result: str) -> None:
        self._registry_ops.labels(action=action, result=result).inc()

    def track_receive(self) -> AbstractContextManager[None]:
        """Time one funding internalization, including failed ones."""
        return _timed(self._receive)

    def track_wallet_init(self) -> AbstractContextManager[None]:
        """Time one wallet initialization, including failed ones."""
        return _timed(self._wallet_init)
