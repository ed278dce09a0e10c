"""Shared fixtures for the throttler test suite.

Every test gets its own RateLimiter and app instance, so no window state
leaks between tests.
"""
import pytest
import pytest_asyncio
from fastapi import Depends, Request

from rate_gate.config import Settings
from rate_gate.middleware import enforce_rate_limit
from rate_gate.rate_limiter import RateLimiter


@pytest.fixture
def limiter():
    return RateLimiter()


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, exempt_paths=["/health", "/health/deep"])


@pytest.fixture
def app(test_settings):
    """App built by the real factory, plus a few stand-in platform routes.

    The `X-Test-Role` header plays the part of the upstream auth layer: an
    outer middleware copies it onto request.state.user before throttling runs.
    """
    from main import create_app

    application = create_app(test_settings)

    @application.post("/api/auth/login")
    async def login():
        return {"ok": True}

    @application.get("/api/courses")
    async def courses():
        return {"courses": []}

    @application.get("/api/ai/hint")
    async def hint():
        return {"hint": "try recursion"}

    @application.get("/health/deep", dependencies=[Depends(enforce_rate_limit)])
    async def deep_health():
        return {"status": "ok"}

    @application.middleware("http")
    async def fake_auth(request: Request, call_next):
        role = request.headers.get("X-Test-Role")
        if role:
            request.state.user = {"id": "u1", "role": role}
        return await call_next(request)

    return application


@pytest_asyncio.fixture
async def client(app):
    """httpx.AsyncClient over ASGITransport (lifespan is not run)."""
    import httpx

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
