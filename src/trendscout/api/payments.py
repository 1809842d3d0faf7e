"""x402 payment gating for the priced entrypoints.

The 402 challenge, payment verification and settlement are handled by the
``x402`` package's FastAPI middleware, which talks to an external facilitator.
This module only turns :class:`~trendscout.config.PaymentConfig` into the
middleware's route table and installs it on the application.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, Union

from fastapi import FastAPI
from x402 import x402ResourceServer
from x402.http import FacilitatorClient, FacilitatorConfig, HTTPFacilitatorClient, PaymentOption, RouteConfig
from x402.http.middleware.fastapi import payment_middleware
from x402.mechanisms.evm.exact import ExactEvmServerScheme
from x402.schemas import AssetAmount

from trendscout.api.manifest import ENTRYPOINTS, PRICE_DECIMALS
from trendscout.config import PaymentConfig

__all__ = [
    "PRICED_ENTRYPOINTS",
    "build_resource_server",
    "build_routes",
    "entrypoint_path",
    "install_payment_middleware",
    "route_price",
]

logger = logging.getLogger(__name__)

PRICED_ENTRYPOINTS = ("scout", "deep-scout")
SCHEME = "exact"
MIME_TYPE = "application/json"


def entrypoint_path(key: str) -> str:
    return f"/entrypoints/{key}/invoke"


def route_price(config: PaymentConfig, key: str) -> Union[str, AssetAmount, None]:
    """Price of entrypoint ``key`` in the form the exact EVM scheme accepts.

    Prices are configured in atomic units. With an explicit ``asset`` they are
    passed through as an :class:`AssetAmount`; otherwise they are written as a
    dollar amount and the scheme resolves the network's default USDC contract
    together with its EIP-712 domain. Free entrypoints return ``None``.
    """

    units = config.price_for(key)
    if not units or Decimal(units) == 0:
        return None
    if config.asset:
        return AssetAmount(amount=units, asset=config.asset)
    return f"${Decimal(units).scaleb(-PRICE_DECIMALS):f}"


def build_routes(config: PaymentConfig) -> Dict[str, RouteConfig]:
    """Map ``POST /entrypoints/<key>/invoke`` of every priced entrypoint to its payment option."""

    routes: Dict[str, RouteConfig] = {}
    for key in PRICED_ENTRYPOINTS:
        price = route_price(config, key)
        if price is None:
            continue
        routes[f"POST {entrypoint_path(key)}"] = RouteConfig(
            accepts=PaymentOption(
                scheme=SCHEME,
                pay_to=config.pay_to,
                price=price,
                network=config.network,
                max_timeout_seconds=config.max_timeout_seconds,
            ),
            description=ENTRYPOINTS[key],
            mime_type=MIME_TYPE,
        )
    return routes


def build_resource_server(
    config: PaymentConfig, facilitator: FacilitatorClient | None = None
) -> x402ResourceServer:
    facilitator = facilitator or HTTPFacilitatorClient(FacilitatorConfig(url=config.facilitator_url))
    server = x402ResourceServer(facilitator)
    server.register(config.network, ExactEvmServerScheme())
    return server


def install_payment_middleware(
    app: FastAPI,
    config: PaymentConfig,
    facilitator: FacilitatorClient | None = None,
) -> bool:
    """Gate the priced entrypoints of ``app`` behind x402 payments.

    Returns ``False`` and leaves ``app`` untouched when payments are disabled
    or every priced entrypoint is free. The facilitator's supported payment
    kinds are fetched once here; a failure is retried on the first paid
    request.
    """

    if not config.enabled:
        return False
    routes = build_routes(config)
    if not routes:
        return False

    middleware = payment_middleware(routes, build_resource_server(config, facilitator))
    app.middleware("http")(middleware)
    logger.info("x402 payments required for %s", ", ".join(sorted(routes)))
    return True
