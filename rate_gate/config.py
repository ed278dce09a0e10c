from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from rate_gate.models import RouteQuota
from rate_gate.quotas import DEFAULT_KEY, ROUTE_QUOTAS


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    app_name: str = "Learning Platform API"
    log_level: str = "INFO"
    rate_limit_enabled: bool = True
    cleanup_interval_seconds: float = Field(default=300, ge=1)
    trust_forwarded_headers: bool = True
    per_route_buckets: bool = False
    exempt_paths: list[str] = Field(default_factory=lambda: ["/health"])
    default_window_ms: int = Field(default=ROUTE_QUOTAS[DEFAULT_KEY].window_ms, gt=0)
    default_max_requests: int = Field(default=ROUTE_QUOTAS[DEFAULT_KEY].max_requests, ge=0)

    def quota_table(self) -> dict[str, RouteQuota]:
        """Route quotas with the catch-all entry taken from the environment."""
        table = dict(ROUTE_QUOTAS)
        table[DEFAULT_KEY] = RouteQuota(
            window_ms=self.default_window_ms,
            max_requests=self.default_max_requests,
        )
        return table


settings = Settings()
