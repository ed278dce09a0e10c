"""Learning platform API gateway: FastAPI entry point with request throttling."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from rate_gate.config import Settings, settings as default_settings
from rate_gate.middleware import RateLimitExceeded, rate_limit_exception_handler, rate_limit_middleware
from rate_gate.rate_limiter import RateLimiter

logging.basicConfig(
    level=default_settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


def create_app(settings: Settings | None = None, limiter: RateLimiter | None = None) -> FastAPI:
    settings = settings or default_settings
    limiter = limiter or RateLimiter(settings.quota_table(), per_route_buckets=settings.per_route_buckets)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        limiter.start_cleanup(settings.cleanup_interval_seconds)
        logger.info(
            "Rate limiting %s, sweeping every %ss",
            "enabled" if settings.rate_limit_enabled else "disabled",
            settings.cleanup_interval_seconds,
        )
        yield
        await limiter.stop_cleanup()
        logger.info("Rate limit sweep stopped")

    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    app.state.settings = settings
    app.state.rate_limiter = limiter
    app.middleware("http")(rate_limit_middleware(limiter, settings))
    app.add_exception_handler(RateLimitExceeded, rate_limit_exception_handler)

    @app.get("/health")
    async def health(request: Request):
        return {"status": "ok", "tracked_clients": len(request.app.state.rate_limiter)}

    return app


app = create_app()
