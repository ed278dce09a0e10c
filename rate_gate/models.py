"""Pydantic models for quota configuration and rejection responses."""
import math

from pydantic import BaseModel, ConfigDict, Field

TOO_MANY_REQUESTS = 429


class RouteQuota(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_ms: int = Field(..., gt=0)
    max_requests: int = Field(..., ge=0)
    message: str | None = None
    status_code: int = Field(default=TOO_MANY_REQUESTS, ge=400, le=599)

    def scaled(self, multiplier: float) -> "RouteQuota":
        """Return a copy whose ceiling is multiplied (floored) by `multiplier`."""
        if multiplier == 1:
            return self
        return self.model_copy(update={"max_requests": math.floor(self.max_requests * multiplier)})


class RateLimitErrorBody(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = False
    error: str = "Rate limit exceeded"
    message: str
    retry_after: int = Field(..., alias="retryAfter", ge=0)
