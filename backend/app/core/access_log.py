"""
Access logging middleware.
Logs every read of a patient health endpoint with the patient id and outcome.
"""
import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

logger = logging.getLogger(__name__)

# Endpoints that expose patient data - requests to these paths are logged
PHI_PATH_PREFIXES = (
    "/api/v1/patient-health-summary",
    "/api/v1/patient-advanced-search",
)


def resource_from_path(path: str):
    """Split /api/v1/<resource>/<id>/... into (resource, id)."""
    parts = [p for p in path.split("/") if p]
    resource_type = parts[2] if len(parts) >= 3 else "unknown"
    resource_id = parts[3] if len(parts) >= 4 else None
    return resource_type, resource_id


class AccessLogMiddleware(BaseHTTPMiddleware):
    """Middleware that logs access to patient data endpoints."""

    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        response = await call_next(request)

        path = request.url.path
        if not any(path.startswith(prefix) for prefix in PHI_PATH_PREFIXES):
            return response

        resource_type, resource_id = resource_from_path(path)
        client = request.client.host if request.client else None
        logger.info(
            "%s %s resource=%s id=%s status=%s client=%s %.1fms",
            request.method, path, resource_type, resource_id or "-", response.status_code,
            client, (time.perf_counter() - started) * 1000,
        )
        return response
