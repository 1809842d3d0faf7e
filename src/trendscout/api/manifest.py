"""Static descriptors served by the agent: the agent card and the info payload."""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List

from trendscout.config import AgentConfig
from trendscout.models import KNOWN_SOURCES

__all__ = ["ENTRYPOINTS", "build_agent_card", "build_info", "format_price"]

PROTOCOL_VERSION = "1.0"
#: Prices are expressed in the atomic units of a 6 decimal stablecoin (USDC).
PRICE_DECIMALS = 6
PRICE_SYMBOL = "USDC"

ENTRYPOINTS: Dict[str, str] = {
    "ping": "Health check",
    "info": "Get information about Trend Scout",
    "get-trends": "Get trending topics from Reddit, Hacker News, and Lobsters",
    "scout": "Scout trending topics",
    "deep-scout": "Deep scout with more results",
}


def format_price(units: str | None) -> str:
    """Render an atomic-unit price such as ``"3000"`` as ``"0.003 USDC"``."""

    if not units or Decimal(units) == 0:
        return "free"
    amount = Decimal(units).scaleb(-PRICE_DECIMALS).normalize()
    return f"{amount:f} {PRICE_SYMBOL}"


def _skill_description(config: AgentConfig, key: str) -> str:
    if key == "scout":
        return f"Scout trending topics ({config.scout_limit} results)"
    if key == "deep-scout":
        return f"Deep scout ({config.deep_scout_limit} results)"
    return ENTRYPOINTS[key]


def _price(config: AgentConfig, key: str) -> str:
    if not config.payments.enabled:
        return "0"
    return config.payments.price_for(key) or "0"


def build_info(config: AgentConfig) -> Dict[str, Any]:
    pricing = {key: format_price(_price(config, key)) for key in ENTRYPOINTS}
    return {
        "name": config.name,
        "version": config.version,
        "description": config.description,
        "author": config.author,
        "sources": list(KNOWN_SOURCES),
        "pricing": {key: value if value == "free" else f"{value} per query" for key, value in pricing.items()},
    }


def build_agent_card(config: AgentConfig) -> Dict[str, Any]:
    """Return the ``/.well-known/agent.json`` document."""

    skills: List[Dict[str, str]] = [
        {"id": key, "name": key, "description": _skill_description(config, key)} for key in ENTRYPOINTS
    ]
    card: Dict[str, Any] = {
        "protocolVersion": PROTOCOL_VERSION,
        "name": config.name,
        "description": config.description,
        "url": config.url,
        "version": config.version,
        "capabilities": {"streaming": False, "pushNotifications": False},
        "skills": skills,
        "entrypoints": {
            key: {
                "description": _skill_description(config, key),
                "pricing": {"invoke": _price(config, key)},
            }
            for key in ENTRYPOINTS
        },
    }
    if config.payments.enabled:
        card["payments"] = [
            {
                "method": "x402",
                "payee": config.payments.pay_to,
                "network": config.payments.network,
                "endpoint": config.payments.facilitator_url,
            }
        ]
    return card
