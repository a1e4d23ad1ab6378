# msgboard/routes/health.py
"""
Health check and metrics endpoints for monitoring and load balancer probes.
"""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response

from ..core.config import Settings
from ..core.constants import API_VERSION, BRAND_NAME
from ..dependencies import get_app_settings, get_message_service
from ..monitoring.prometheus_metrics import render_latest
from ..schemas.messages import HealthResponse
from ..services.message_service import MessageService
from ..services.messaging.registry import SubscriberKind

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(
    service: MessageService = Depends(get_message_service),
    settings: Settings = Depends(get_app_settings),
) -> HealthResponse:
    """
    Health check endpoint.

    Reports service info plus the current board and subscriber counts.
    """
    return HealthResponse(
        status="healthy",
        service=f"{BRAND_NAME.lower()}-api",
        version=API_VERSION,
        environment=settings.environment,
        delivery_mode=service.delivery_mode,
        timestamp=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        messages=len(service.store),
        subscribers={kind.value: service.registry.count(kind) for kind in SubscriberKind},
    )


@router.get("/metrics", include_in_schema=False)
def metrics() -> Response:
    payload, content_type = render_latest()
    return Response(content=payload, media_type=content_type)
