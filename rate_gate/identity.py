"""Client identity used to bucket requests for throttling.

The identity is the caller's address plus a truncated user agent. It is not a
durable user identifier and is never persisted outside process memory.
"""
import ipaddress

from fastapi import Request

UNKNOWN = "unknown"
USER_AGENT_MAX_LEN = 50


def _first_valid_ip(raw: str | None) -> str | None:
    if not raw:
        return None
    candidate = raw.split(",")[0].strip()
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return None
    return candidate


def client_ip(request: Request, trust_forwarded: bool = True) -> str:
    """Extract the client IP, preferring headers set by the reverse proxy.

    Only trust X-Forwarded-For / X-Real-IP when the app sits behind a proxy that
    overwrites them; otherwise clients can pick their own bucket.
    """
    if trust_forwarded:
        for header in ("X-Forwarded-For", "X-Real-IP"):
            ip = _first_valid_ip(request.headers.get(header))
            if ip:
                return ip
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN


def client_identity(request: Request, trust_forwarded: bool = True) -> str:
    user_agent = request.headers.get("User-Agent") or UNKNOWN
    return f"{client_ip(request, trust_forwarded)}-{user_agent[:USER_AGENT_MAX_LEN]}"
