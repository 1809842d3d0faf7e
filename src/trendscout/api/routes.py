"""Agent entrypoints exposing the trend aggregator."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime
from typing import Any, Dict, Generic, List, Literal, TypeVar

from fastapi import APIRouter, Body, Depends, Request
from pydantic import BaseModel, ConfigDict, Field, field_validator

from trendscout.api.manifest import ENTRYPOINTS, build_info
from trendscout.config import AgentConfig
from trendscout.models import SourceSelector, TrendQuery, TrendResult, subreddit_name
from trendscout.services.aggregator import aggregate
from trendscout.services.sources import SourceFetcher

logger = logging.getLogger(__name__)

router = APIRouter()

OutputT = TypeVar("OutputT")

DEFAULT_SCOUT_SOURCES: List[SourceSelector] = ["hackernews", "reddit"]


class InvokeResponse(BaseModel, Generic[OutputT]):
    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    status: Literal["succeeded"] = "succeeded"
    output: OutputT


class TrendsRequest(BaseModel):
    input: TrendQuery = Field(default_factory=TrendQuery)


class ScoutInput(BaseModel):
    sources: List[SourceSelector] = Field(default_factory=lambda: list(DEFAULT_SCOUT_SOURCES), min_length=1)
    query: str | None = None
    category: str | None = None

    @field_validator("query", "category")
    @classmethod
    def _check_subreddit(cls, value: str | None) -> str | None:
        return subreddit_name(value)


class ScoutRequest(BaseModel):
    input: ScoutInput = Field(default_factory=ScoutInput)


class ScoutOutput(TrendResult):
    model_config = ConfigDict(populate_by_name=True)

    query: str
    total_items: int = Field(alias="totalItems")


class PingOutput(BaseModel):
    status: Literal["alive"] = "alive"
    agent: str
    version: str
    by: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class InfoOutput(BaseModel):
    name: str
    version: str
    description: str
    author: str
    sources: List[str]
    pricing: Dict[str, str]


def get_config(request: Request) -> AgentConfig:
    return request.app.state.config


def get_fetcher(request: Request) -> SourceFetcher:
    return request.app.state.fetcher


@router.post("/ping/invoke", response_model=InvokeResponse[PingOutput])
async def ping(config: AgentConfig = Depends(get_config)) -> InvokeResponse[PingOutput]:
    """Health check; always free."""

    return InvokeResponse[PingOutput](
        output=PingOutput(agent=config.name, version=config.version, by=config.author)
    )


@router.post("/info/invoke", response_model=InvokeResponse[InfoOutput])
async def info(config: AgentConfig = Depends(get_config)) -> InvokeResponse[InfoOutput]:
    """Describe the agent, its sources and its pricing."""

    return InvokeResponse[InfoOutput](output=InfoOutput(**build_info(config)))


@router.post("/get-trends/invoke", response_model=InvokeResponse[TrendResult])
async def get_trends(
    payload: TrendsRequest | None = Body(default=None),
    fetcher: SourceFetcher = Depends(get_fetcher),
) -> InvokeResponse[TrendResult]:
    """Return trending topics merged from the requested sources."""

    query = (payload or TrendsRequest()).input
    result = await aggregate(query, fetcher)
    return InvokeResponse[TrendResult](output=result)


async def _scout(
    *,
    limit: int,
    payload: ScoutRequest | None,
    config: AgentConfig,
    fetcher: SourceFetcher,
) -> InvokeResponse[ScoutOutput]:
    scout_input = (payload or ScoutRequest()).input
    category = scout_input.category or scout_input.query or config.scout_category

    logger.info("Scouting %s for category %s (limit %d)", ", ".join(scout_input.sources), category, limit)
    query = TrendQuery(sources=scout_input.sources, limit=limit, category=category)
    result = await aggregate(query, fetcher)

    output = ScoutOutput(
        **result.model_dump(),
        query=category,
        total_items=len(result.trends),
    )
    return InvokeResponse[ScoutOutput](output=output)


def _scout_route(key: str, limit_field: str):
    # Payment for these routes is enforced by the x402 middleware installed in create_app.
    async def endpoint(
        payload: ScoutRequest | None = Body(default=None),
        config: AgentConfig = Depends(get_config),
        fetcher: SourceFetcher = Depends(get_fetcher),
    ) -> Any:
        return await _scout(
            limit=getattr(config, limit_field),
            payload=payload,
            config=config,
            fetcher=fetcher,
        )

    endpoint.__name__ = key.replace("-", "_")
    endpoint.__doc__ = ENTRYPOINTS[key]
    return endpoint


router.add_api_route(
    "/scout/invoke",
    _scout_route("scout", "scout_limit"),
    methods=["POST"],
    response_model=InvokeResponse[ScoutOutput],
)
router.add_api_route(
    "/deep-scout/invoke",
    _scout_route("deep-scout", "deep_scout_limit"),
    methods=["POST"],
    response_model=InvokeResponse[ScoutOutput],
)
