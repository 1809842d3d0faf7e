"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from html import escape

from fastapi import FastAPI
from fastapi.responses import HTMLResponse
from x402.http import FacilitatorClient

from trendscout.api.manifest import ENTRYPOINTS, build_agent_card, format_price
from trendscout.api.payments import install_payment_middleware
from trendscout.api.routes import router
from trendscout.config import AgentConfig
from trendscout.services.sources import SourceFetcher

logger = logging.getLogger(__name__)

INDEX_TEMPLATE = """
<!DOCTYPE html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <title>{name}</title>
    <style>
      :root {{
        font-family: system-ui, -apple-system, BlinkMacSystemFont, "Segoe UI", sans-serif;
        color: #1f2933;
        background: #f7f7f2;
      }}
      main {{ max-width: 720px; margin: 48px auto; padding: 0 24px; }}
      h1 {{ margin-bottom: 4px; }}
      table {{ width: 100%; border-collapse: collapse; margin-top: 24px; }}
      th, td {{ text-align: left; padding: 8px 4px; border-bottom: 1px solid #d9d9d0; }}
      code {{ font-size: 0.9rem; }}
    </style>
  </head>
  <body>
    <main>
      <h1>{name}</h1>
      <p>{description}</p>
      <table>
        <thead><tr><th>Entrypoint</th><th>Description</th><th>Price</th></tr></thead>
        <tbody>
{rows}
        </tbody>
      </table>
      <p>Agent card: <code>GET /.well-known/agent.json</code></p>
    </main>
  </body>
</html>
"""


def render_index(config: AgentConfig) -> str:
    rows = []
    for key, description in ENTRYPOINTS.items():
        price = config.payments.price_for(key) if config.payments.enabled else None
        rows.append(
            "          <tr>"
            f"<td><code>POST /entrypoints/{escape(key)}/invoke</code></td>"
            f"<td>{escape(description)}</td>"
            f"<td>{escape(format_price(price))}</td>"
            "</tr>"
        )
    return INDEX_TEMPLATE.format(
        name=escape(config.name),
        description=escape(config.description),
        rows="\n".join(rows),
    )


def _log_startup(config: AgentConfig) -> None:
    logger.info("%s %s configured", config.name, config.version)
    for key in ENTRYPOINTS:
        logger.info("  POST /entrypoints/%s/invoke", key)
    if config.payments.enabled:
        logger.info(
            "Payments: %s -> %s via %s",
            config.payments.network,
            config.payments.pay_to,
            config.payments.facilitator_url,
        )
    else:
        logger.warning("PAYMENTS_RECEIVABLE_ADDRESS is not set; priced entrypoints are open")


def create_app(
    config: AgentConfig | None = None,
    *,
    fetcher: SourceFetcher | None = None,
    facilitator: FacilitatorClient | None = None,
) -> FastAPI:
    config = config or AgentConfig.from_env()
    owns_fetcher = fetcher is None

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_fetcher:
            app.state.fetcher.close()

    app = FastAPI(title=config.name, description=config.description, version=config.version, lifespan=lifespan)
    app.state.config = config
    app.state.fetcher = fetcher or SourceFetcher.from_config(config)

    install_payment_middleware(app, config.payments, facilitator)
    app.include_router(router, prefix="/entrypoints")

    @app.get("/", response_class=HTMLResponse)
    async def index() -> str:
        return render_index(config)

    @app.get("/.well-known/agent.json")
    async def agent_card() -> dict:
        return build_agent_card(config)

    _log_startup(config)
    return app


app = create_app()
