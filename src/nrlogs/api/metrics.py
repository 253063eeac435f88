"""
Prometheus metrics endpoint.

Exposes the demo service's shipping metrics in Prometheus text format.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Shipping metrics",
    description="""
    Shipping counters for both demo sinks, in Prometheus exposition format.

    **Series:**
    - nrlogs_records_logged_total{level} - Records appended to the buffer
    - nrlogs_records_suppressed_total{level} - Calls dropped by the threshold
    - nrlogs_deliveries_total{outcome} - Log API deliveries by outcome
    - nrlogs_records_lost_total - Records dropped by failed deliveries
    - nrlogs_delivery_duration_seconds - Log API latency histogram
    """,
)
async def get_metrics(request: Request) -> Response:
    """Return the collector's registry in Prometheus text format."""
    metrics_collector = getattr(request.app.state, "metrics", None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    metrics_data = generate_latest(metrics_collector.registry)
    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
