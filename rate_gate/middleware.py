"""HTTP integration: throttling middleware, dependency and 429 responses."""
import logging
from typing import Any

from fastapi import Request, Response
from fastapi.responses import JSONResponse

from rate_gate.config import Settings
from rate_gate.identity import client_identity
from rate_gate.models import RateLimitErrorBody
from rate_gate.quotas import role_multiplier
from rate_gate.rate_limiter import RateLimitDecision, RateLimiter

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Raised by `enforce_rate_limit` so route-level throttling renders a 429."""

    def __init__(self, decision: RateLimitDecision) -> None:
        super().__init__(rejection_message(decision))
        self.decision = decision


def caller_role(request: Request) -> str | None:
    """Role of the caller if an upstream auth layer put a user on request.state."""
    user: Any = getattr(request.state, "user", None)
    if isinstance(user, dict):
        role = user.get("role")
    else:
        role = getattr(user, "role", None)
    return role or getattr(request.state, "role", None)


def rejection_message(decision: RateLimitDecision) -> str:
    if decision.quota.message:
        return decision.quota.message
    if role_multiplier(decision.role) != 1:
        return f"Rate limit exceeded for your role. Try again in {decision.retry_after} seconds."
    return f"Too many requests. Try again in {decision.retry_after} seconds."


def apply_rate_limit_headers(response: Response, decision: RateLimitDecision) -> None:
    response.headers["X-RateLimit-Limit"] = str(decision.limit)
    response.headers["X-RateLimit-Remaining"] = str(decision.remaining)
    response.headers["X-RateLimit-Reset"] = str(decision.reset_time)
    if decision.retry_after is not None:
        response.headers["Retry-After"] = str(decision.retry_after)


def rejection_response(decision: RateLimitDecision) -> JSONResponse:
    body = RateLimitErrorBody(message=rejection_message(decision), retry_after=decision.retry_after or 0)
    response = JSONResponse(status_code=decision.quota.status_code, content=body.model_dump(by_alias=True))
    apply_rate_limit_headers(response, decision)
    return response


async def rate_limit_exception_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return rejection_response(exc.decision)


def rate_limit_middleware(limiter: RateLimiter, settings: Settings):
    """Build the `@app.middleware("http")` function that gates every request."""
    exempt = set(settings.exempt_paths)

    async def throttle(request: Request, call_next):
        route = request.url.path
        if not settings.rate_limit_enabled or route in exempt:
            return await call_next(request)

        identity = client_identity(request, settings.trust_forwarded_headers)
        decision = await limiter.check(route, identity, caller_role(request))
        if not decision.allowed:
            logger.warning(
                "Rate limit exceeded on %s for %s (limit %d, retry in %ds)",
                route, identity, decision.limit, decision.retry_after,
            )
            return rejection_response(decision)

        response = await call_next(request)
        apply_rate_limit_headers(response, decision)
        return response

    return throttle


async def enforce_rate_limit(request: Request, response: Response) -> RateLimitDecision:
    """FastAPI dependency for routes on exempt paths that still need a quota."""
    limiter: RateLimiter = request.app.state.rate_limiter
    cfg: Settings = request.app.state.settings
    decision = await limiter.check(
        request.url.path,
        client_identity(request, cfg.trust_forwarded_headers),
        caller_role(request),
    )
    if not decision.allowed:
        logger.warning("Rate limit exceeded on %s (limit %d)", request.url.path, decision.limit)
        raise RateLimitExceeded(decision)
    apply_rate_limit_headers(response, decision)
    return decision
