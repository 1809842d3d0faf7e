"""Configuration models and helpers for the Trend Scout agent."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, Mapping

from pydantic import BaseModel, Field, ValidationError, field_validator

from trendscout.models import subreddit_name

__all__ = [
    "AgentConfig",
    "PaymentConfig",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_FACILITATOR_URL",
    "DEFAULT_NETWORK",
    "DEFAULT_USER_AGENT",
]

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "data" / "agent.json"
DEFAULT_NETWORK = "eip155:8453"
DEFAULT_FACILITATOR_URL = "https://facilitator.daydreams.systems"
DEFAULT_USER_AGENT = "TrendScout/1.0"


class PaymentConfig(BaseModel):
    """Settings for the x402 payment gate in front of the priced entrypoints."""

    pay_to: str = Field(default="", description="Address that receives payments")
    network: str = Field(default=DEFAULT_NETWORK, description="CAIP-2 network identifier")
    facilitator_url: str = Field(
        default=DEFAULT_FACILITATOR_URL,
        description="Base URL of the facilitator that verifies and settles payments",
    )
    asset: str | None = Field(
        default=None,
        description="Token contract address; the facilitator default is used when omitted",
    )
    max_timeout_seconds: int = Field(default=60, ge=1)
    prices: Dict[str, str] = Field(
        default_factory=lambda: {"scout": "3000", "deep-scout": "5000"},
        description="Price per entrypoint in the asset's atomic units",
    )

    @field_validator("prices")
    @classmethod
    def _check_prices(cls, prices: Dict[str, str]) -> Dict[str, str]:
        for entrypoint, price in prices.items():
            if not str(price).isdigit():
                raise ValueError(f"Price for {entrypoint} must be a whole number of atomic units")
        return prices

    @property
    def enabled(self) -> bool:
        """Payments are only enforced once a receiving address is configured."""

        return bool(self.pay_to.strip())

    def price_for(self, entrypoint: str) -> str | None:
        return self.prices.get(entrypoint)


class AgentConfig(BaseModel):
    """Top level configuration for the agent service."""

    name: str = "Trend Scout"
    version: str = "0.1.0"
    description: str = "AI agent that scouts trending topics across the web"
    author: str = "CephaloBot"
    url: str = Field(default="http://localhost:3000/", description="Public URL of the agent")
    port: int = Field(default=3000, ge=1, le=65535)
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent sent upstream; Reddit rejects anonymous clients",
    )
    request_timeout: float = Field(default=10.0, gt=0)
    reddit_default_subreddit: str = "all"
    scout_category: str = Field(default="technology", description="Default subreddit for scout calls")
    scout_limit: int = Field(default=5, ge=1, le=50)
    deep_scout_limit: int = Field(default=15, ge=1, le=50)
    payments: PaymentConfig = Field(default_factory=PaymentConfig)

    @field_validator("reddit_default_subreddit", "scout_category")
    @classmethod
    def _check_subreddit(cls, value: str) -> str:
        name = subreddit_name(value)
        if name is None:
            raise ValueError("A subreddit name is required")
        return name

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AgentConfig":
        """Build a configuration from environment variables."""

        env = os.environ if environ is None else environ

        data: dict = {}
        for field_name, variable in _ENV_FIELDS.items():
            value = env.get(variable)
            if value is not None and value.strip():
                data[field_name] = value.strip()

        payments: dict = {}
        for field_name, variable in _PAYMENT_ENV_FIELDS.items():
            value = env.get(variable)
            if value is not None and value.strip():
                payments[field_name] = value.strip()

        prices = PaymentConfig().prices
        for entrypoint, variable in _PRICE_ENV_FIELDS.items():
            value = env.get(variable)
            if value is not None and value.strip():
                prices[entrypoint] = value.strip()
        payments["prices"] = prices
        data["payments"] = payments

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Invalid agent configuration in environment\n{exc}") from exc

    @classmethod
    def from_file(cls, path: Path | str | None = None) -> "AgentConfig":
        """Load configuration data from a JSON file."""

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError as exc:
            raise FileNotFoundError(f"Configuration file not found: {config_path}") from exc
        except json.JSONDecodeError as exc:
            raise ValueError(f"Invalid JSON in configuration file: {config_path}") from exc

        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ValueError(f"Configuration file is invalid: {config_path}\n{exc}") from exc

    def dump(self, path: Path | str | None = None) -> None:
        """Persist the configuration back to disk as JSON."""

        config_path = Path(path) if path else DEFAULT_CONFIG_PATH
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config_path.write_text(self.model_dump_json(indent=2), encoding="utf-8")


_ENV_FIELDS = {
    "name": "AGENT_NAME",
    "version": "AGENT_VERSION",
    "description": "AGENT_DESCRIPTION",
    "author": "AGENT_AUTHOR",
    "url": "AGENT_URL",
    "port": "PORT",
    "user_agent": "TREND_SCOUT_USER_AGENT",
    "request_timeout": "REQUEST_TIMEOUT",
    "reddit_default_subreddit": "REDDIT_DEFAULT_SUBREDDIT",
    "scout_category": "SCOUT_CATEGORY",
    "scout_limit": "SCOUT_LIMIT",
    "deep_scout_limit": "DEEP_SCOUT_LIMIT",
}

_PAYMENT_ENV_FIELDS = {
    "pay_to": "PAYMENTS_RECEIVABLE_ADDRESS",
    "network": "NETWORK",
    "facilitator_url": "FACILITATOR_URL",
    "asset": "PAYMENTS_ASSET",
}

_PRICE_ENV_FIELDS = {
    "scout": "SCOUT_PRICE",
    "deep-scout": "DEEP_SCOUT_PRICE",
}
