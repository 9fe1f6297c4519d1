from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.client_info import get_client_ip
from app.core.logger import get_logger

logger = get_logger("MaintenanceModeMiddleware")

EXEMPT_PATHS = ("/", "/health", "/docs", "/openapi.json")
# Admins must still reach the switch to turn it off
EXEMPT_PREFIXES = ("/admin/",)


class MaintenanceModeMiddleware(BaseHTTPMiddleware):
    """Answers 503 while maintenance is on, except for admin routes and allow-listed addresses."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if path in EXEMPT_PATHS or path.startswith(EXEMPT_PREFIXES):
            return await call_next(request)

        maintenance_service = getattr(request.app.state, "maintenance_service", None)
        if maintenance_service is None:
            return await call_next(request)

        client_ip = get_client_ip(request)
        try:
            message = await maintenance_service.blocking_message(client_ip)
        except Exception as e:
            logger.error(f"Maintenance lookup failed for {client_ip}: {e}")
            message = None

        if message is not None:
            return JSONResponse(
                status_code=503,
                content={
                    "status": False,
                    "message": message,
                    "maintenance_mode": True,
                },
            )

        return await call_next(request)
