"""
Prometheus metrics endpoint.

Public, unauthenticated, following standard Prometheus practice. Exposes the
metrics collected by ``BaseService.measure_operation`` and booking counters.
"""

from fastapi import APIRouter, Response

from ..monitoring.prometheus_metrics import prometheus_metrics

router = APIRouter()


@router.get("/metrics/prometheus", include_in_schema=False)
def get_prometheus_metrics() -> Response:
    return Response(content=prometheus_metrics.export(), media_type=prometheus_metrics.content_type)
