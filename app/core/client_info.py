from typing import Optional, Tuple

from fastapi import Request

# (ip address, user agent)
ClientInfo = Tuple[Optional[str], Optional[str]]


def get_client_ip(request: Request) -> Optional[str]:
    return request.client.host if request.client else None


def get_client_info(request: Request) -> ClientInfo:
    """(ip address, user agent) of the caller."""
    return get_client_ip(request), request.headers.get("user-agent")
