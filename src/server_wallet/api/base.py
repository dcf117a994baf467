"""Liveness and Prometheus scrape endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, generate_latest

router = APIRouter(tags=["base"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/metrics", include_in_schema=False)
async def metrics(request: Request) -> Response:
    """Expose the app's metrics, or the process-wide registry when disabled."""
    engine_metrics = getattr(request.app.state, "metrics", None)
    registry = engine_metrics.registry if engine_metrics is not None else REGISTRY
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
