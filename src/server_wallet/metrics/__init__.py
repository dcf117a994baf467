"""Prometheus metrics collection and exposure."""

from __future__ import annotations

from server_wallet.metrics.collector import EngineMetrics

__all__ = ["EngineMetrics"]
