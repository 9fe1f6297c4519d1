from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.core.client_info import get_client_ip
from app.core.logger import get_logger

logger = get_logger("BannedIpMiddleware")

EXEMPT_PATHS = ("/", "/health")


class BannedIpMiddleware(BaseHTTPMiddleware):
    """Rejects requests from banned client addresses with a 403."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in EXEMPT_PATHS:
            return await call_next(request)

        ip_ban_service = getattr(request.app.state, "ip_ban_service", None)
        if ip_ban_service is None:
            return await call_next(request)

        client_ip = get_client_ip(request)
        try:
            ban = await ip_ban_service.find_ban(client_ip)
        except Exception as e:
            logger.error(f"Ban lookup failed for {client_ip}: {e}")
            ban = None

        if ban is not None:
            logger.warning(f"Blocked request from banned IP {client_ip} to {request.url.path}")
            return JSONResponse(
                status_code=403,
                content={
                    "status": False,
                    "message": f"Your IP address has been banned. Reason: {ban.reason or 'No reason provided'}",
                },
            )

        return await call_next(request)
