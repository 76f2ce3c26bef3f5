from typing import Dict, Optional

from fastapi import Request

from hostel_api.core.config import settings

# Headers set by the frontend / gateway
HDR_REQUEST_ID = "X-Request-Id"
HDR_FORWARDED_FOR = "X-Forwarded-For"


def get_client_ip(request: Request) -> str:
    """
    Caller network address.

    The socket peer is used unless it is one of ``TRUSTED_PROXIES``; only then
    is X-Forwarded-For read, right to left, skipping the trusted hops.
    """
    peer = request.client.host if request.client else "unknown"
    trusted = set(settings.TRUSTED_PROXIES)
    if peer not in trusted:
        return peer

    forwarded = request.headers.get(HDR_FORWARDED_FOR)
    if not forwarded:
        return peer

    hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
    for hop in reversed(hops):
        if hop not in trusted:
            return hop
    return hops[0] if hops else peer


def get_request_context(request: Request) -> Dict[str, Optional[str]]:
    """
    Extracts endpoint, client IP, user-agent and request_id from the FastAPI Request.
    """
    return {
        "ip_address": get_client_ip(request),
        "user_agent": request.headers.get("user-agent"),
        "endpoint": f"{request.method} {request.url.path}",
        "request_id": request.headers.get(HDR_REQUEST_ID),
    }
