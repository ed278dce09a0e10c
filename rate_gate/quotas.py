"""Per-route quota table and role multipliers."""
from collections.abc import Mapping

from rate_gate.models import RouteQuota

MINUTE_MS = 60 * 1000
HOUR_MS = 60 * MINUTE_MS

DEFAULT_KEY = "default"
DEFAULT_QUOTA = RouteQuota(window_ms=MINUTE_MS, max_requests=100)

ROUTE_QUOTAS: dict[str, RouteQuota] = {
    # Auth
    "/api/auth/login":          RouteQuota(window_ms=15 * MINUTE_MS, max_requests=5),
    "/api/auth/signup":         RouteQuota(window_ms=HOUR_MS, max_requests=3),
    "/api/auth/reset":          RouteQuota(window_ms=HOUR_MS, max_requests=3),
    # AI
    "/api/ai/analyze":          RouteQuota(window_ms=MINUTE_MS, max_requests=10),
    "/api/ai/assess":           RouteQuota(window_ms=MINUTE_MS, max_requests=10),
    "/api/ai/hint":             RouteQuota(window_ms=MINUTE_MS, max_requests=20),
    "/api/ai/generate-problem": RouteQuota(window_ms=5 * MINUTE_MS, max_requests=5),
    # Payments
    "/api/payments/initiate":   RouteQuota(window_ms=MINUTE_MS, max_requests=5),
    "/api/payments/verify":     RouteQuota(window_ms=MINUTE_MS, max_requests=10),
    DEFAULT_KEY:                DEFAULT_QUOTA,
}

ROLE_MULTIPLIERS: dict[str, int] = {
    "super_admin": 5,
    "admin": 3,
    "creator": 2,
}


def resolve_quota(route: str, quotas: Mapping[str, RouteQuota] = ROUTE_QUOTAS) -> RouteQuota:
    """Exact path match, else the table's `default` entry."""
    quota = quotas.get(route)
    if quota is None:
        quota = quotas.get(DEFAULT_KEY, DEFAULT_QUOTA)
    return quota


def role_multiplier(role: str | None) -> int:
    if not role:
        return 1
    return ROLE_MULTIPLIERS.get(role, 1)


def effective_quota(
    route: str,
    role: str | None = None,
    quotas: Mapping[str, RouteQuota] = ROUTE_QUOTAS,
) -> RouteQuota:
    return resolve_quota(route, quotas).scaled(role_multiplier(role))
