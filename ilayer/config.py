import os

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def model_post_init(self, __context: Any) -> None:
        """Pick up the node URL from the legacy environment variable."""

        super().model_post_init(__context)

        if "waku_node_url" not in self.model_fields_set:
            fallback = os.getenv("WAKU_REST_URL")
            if fallback:
                object.__setattr__(self, "waku_node_url", fallback)

    # Server Settings
    host: str = Field(default="127.0.0.1", description="Server host")
    port: int = Field(default=8000, description="Server port")
    log_level: str = Field(default="INFO", description="Logging level")

    # Price Feed
    coingecko_api_key: str = Field(default="", description="Coingecko API key")
    coingecko_base_url: str = Field(
        default="https://api.coingecko.com/api/v3",
        description="Coingecko API base URL",
    )
    coingecko_platform: str = Field(
        default="ethereum",
        description="Asset platform used for contract address price lookups",
    )
    enable_coingecko: bool = Field(default=True, description="Enable Coingecko provider")

    # Rate Limiting
    max_concurrent_requests: int = Field(default=4, ge=1, description="Max concurrent price lookups")
    request_timeout_seconds: int = Field(default=15, description="Outbound HTTP timeout")

    # RFQ Node
    rfq_role: Literal["requester", "solver", "both"] = Field(
        default="both",
        description="Which side of the RFQ protocol this process runs",
    )
    rfq_transport: Literal["waku", "memory"] = Field(
        default="waku",
        description="Messaging substrate: nwaku REST node or in-process bus",
    )
    waku_node_url: str = Field(
        default="http://127.0.0.1:8645",
        description="REST endpoint of the nwaku node used for relay and light push",
    )
    waku_poll_interval_seconds: float = Field(
        default=1.0,
        gt=0,
        description="How often relay subscriptions are polled for new messages",
    )
    peer_wait_timeout_seconds: Optional[float] = Field(
        default=None,
        description="Bound on waiting for reachable peers (unset waits forever)",
    )
    subscribe_retry_seconds: float = Field(
        default=3.0,
        gt=0,
        description="Fixed delay between subscription attempts",
    )
    quote_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Default wait for a quote response at the HTTP and CLI boundary",
    )

    # Solver Fees
    fee_min: float = Field(default=0.001, ge=0, description="Lower bound of the solver fee (fraction)")
    fee_max: float = Field(default=0.01, ge=0, description="Upper bound of the solver fee (fraction)")


# Global settings instance
settings = Settings()
