"""Hosted record store (PostgREST) configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy

HOSTED_STORE_TIMEOUT_SECONDS = 15.0
HOSTED_STORE_REST_PATH = "/rest/v1"


@dataclass(frozen=True, slots=True)
class HostedStoreConfig:
    """Holds the hosted store endpoint and service key."""

    url: str
    api_key: str
    resilience: ResilienceConfig


def get_hosted_store_config(*, resilience: ResilienceConfig | None = None) -> HostedStoreConfig:
    values = require_env_vars(("CASELINK_STORE_URL", "CASELINK_STORE_KEY"))
    url = values["CASELINK_STORE_URL"].rstrip("/")
    api_key = values["CASELINK_STORE_KEY"]
    return HostedStoreConfig(
        url=url,
        api_key=api_key,
        resilience=resilience
        or ResilienceConfig(
            name="hosted-store",
            base_url=f"{url}{HOSTED_STORE_REST_PATH}",
            timeout_seconds=HOSTED_STORE_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=3),
            ratelimit=RateLimit(max_calls=10, per_seconds=1.0),
            default_headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
            },
        ),
    )
