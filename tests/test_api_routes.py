"""Tests for the agent entrypoints in :mod:`trendscout.api.routes`."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from x402.http import (
    decode_payment_required_header,
    decode_payment_response_header,
    encode_payment_signature_header,
)
from x402.schemas import PaymentPayload

from trendscout.api.app import create_app
from trendscout.config import AgentConfig, PaymentConfig
from trendscout.models import SourceOutcome, TrendItem

PAY_TO = "0x2222222222222222222222222222222222222222"
BASE_USDC = "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913"


class StubFetcher:
    def __init__(self, outcomes: dict[str, SourceOutcome] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.calls: list[tuple[str, int, str | None]] = []

    def fetch(self, source: str, limit: int, category: str | None = None) -> SourceOutcome:
        self.calls.append((source, limit, category))
        return self.outcomes.get(source) or SourceOutcome(source=source)


def _outcome(source: str, *scores: int) -> SourceOutcome:
    return SourceOutcome(
        source=source,
        items=[
            TrendItem(title=f"{source} {score}", source=source, url=f"https://{source}.example/{score}", score=score, comments=1)
            for score in scores
        ],
    )


def _client(fetcher: StubFetcher, config: AgentConfig | None = None, facilitator=None) -> TestClient:
    app = create_app(config or AgentConfig(), fetcher=fetcher, facilitator=facilitator)
    return TestClient(app)


def _paid_config() -> AgentConfig:
    return AgentConfig(payments=PaymentConfig(pay_to=PAY_TO))


def _signed_payment(challenge) -> dict[str, str]:
    required = decode_payment_required_header(challenge.headers["PAYMENT-REQUIRED"])
    payment = PaymentPayload(payload={"signature": "0xsigned"}, accepted=required.accepts[0])
    return {"PAYMENT-SIGNATURE": encode_payment_signature_header(payment)}


def test_ping_reports_alive() -> None:
    client = _client(StubFetcher())

    response = client.post("/entrypoints/ping/invoke")

    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "succeeded"
    assert payload["run_id"]
    assert payload["output"]["status"] == "alive"
    assert payload["output"]["agent"] == "Trend Scout"


def test_info_lists_sources_and_pricing(facilitator) -> None:
    client = _client(StubFetcher(), _paid_config(), facilitator)

    response = client.post("/entrypoints/info/invoke", json={"input": {}})

    assert response.status_code == 200
    output = response.json()["output"]
    assert output["sources"] == ["reddit", "hackernews", "lobsters"]
    assert output["pricing"]["get-trends"] == "free"
    assert output["pricing"]["scout"] == "0.003 USDC per query"


def test_get_trends_returns_ranked_items() -> None:
    fetcher = StubFetcher({"reddit": _outcome("reddit", 10, 50), "hackernews": _outcome("hackernews", 30, 5)})
    client = _client(fetcher)

    response = client.post(
        "/entrypoints/get-trends/invoke",
        json={"input": {"sources": ["reddit", "hackernews"], "limit": 3}},
    )

    assert response.status_code == 200
    output = response.json()["output"]
    assert [item["score"] for item in output["trends"]] == [50, 30, 10]
    assert sorted(output["sources"]) == ["hackernews", "reddit"]
    assert output["timestamp"]


def test_get_trends_defaults_to_all_sources() -> None:
    fetcher = StubFetcher()
    client = _client(fetcher)

    response = client.post("/entrypoints/get-trends/invoke")

    assert response.status_code == 200
    assert response.json()["output"] == {
        "trends": [],
        "sources": [],
        "timestamp": response.json()["output"]["timestamp"],
    }
    assert sorted(call[0] for call in fetcher.calls) == ["hackernews", "lobsters", "reddit"]
    assert {call[1] for call in fetcher.calls} == {10}


def test_get_trends_rejects_invalid_input_before_fetching() -> None:
    fetcher = StubFetcher()
    client = _client(fetcher)

    unknown = client.post("/entrypoints/get-trends/invoke", json={"input": {"sources": ["digg"]}})
    too_many = client.post("/entrypoints/get-trends/invoke", json={"input": {"limit": 500}})

    assert unknown.status_code == 422
    assert too_many.status_code == 422
    assert fetcher.calls == []


def test_scout_is_open_when_payments_are_disabled() -> None:
    fetcher = StubFetcher({"hackernews": _outcome("hackernews", *range(10))})
    client = _client(fetcher)

    response = client.post("/entrypoints/scout/invoke", json={"input": {"query": "python"}})

    assert response.status_code == 200
    output = response.json()["output"]
    assert output["query"] == "python"
    assert output["totalItems"] == 5
    assert len(output["trends"]) == 5
    assert sorted(fetcher.calls) == [("hackernews", 5, "python"), ("reddit", 5, "python")]


def test_deep_scout_uses_larger_limit_and_default_category() -> None:
    fetcher = StubFetcher({"reddit": _outcome("reddit", *range(20))})
    client = _client(fetcher)

    response = client.post("/entrypoints/deep-scout/invoke")

    assert response.status_code == 200
    output = response.json()["output"]
    assert output["query"] == "technology"
    assert output["totalItems"] == 15
    assert ("reddit", 15, "technology") in fetcher.calls


@pytest.mark.parametrize(
    "category",
    ["/", "python/../../api/v1/me", "python?x=1#", "r/", "rust lang"],
)
def test_get_trends_rejects_unsafe_category(category: str) -> None:
    fetcher = StubFetcher()
    client = _client(fetcher)

    as_category = client.post("/entrypoints/get-trends/invoke", json={"input": {"category": category}})
    as_query = client.post("/entrypoints/get-trends/invoke", json={"input": {"query": category}})

    assert as_category.status_code == 422
    assert as_query.status_code == 422
    assert fetcher.calls == []


def test_scout_rejects_unsafe_query() -> None:
    fetcher = StubFetcher()
    client = _client(fetcher)

    response = client.post("/entrypoints/scout/invoke", json={"input": {"query": "python?x=1#"}})
    deep = client.post("/entrypoints/deep-scout/invoke", json={"input": {"category": "../me"}})

    assert response.status_code == 422
    assert deep.status_code == 422
    assert fetcher.calls == []


def test_scout_accepts_prefixed_subreddit() -> None:
    fetcher = StubFetcher()
    client = _client(fetcher)

    response = client.post("/entrypoints/scout/invoke", json={"input": {"sources": ["reddit"], "category": "r/rust"}})

    assert response.status_code == 200
    assert response.json()["output"]["query"] == "rust"
    assert fetcher.calls == [("reddit", 5, "rust")]


def test_scout_requires_payment_when_enabled(facilitator) -> None:
    fetcher = StubFetcher()
    client = _client(fetcher, _paid_config(), facilitator)

    response = client.post("/entrypoints/scout/invoke", json={"input": {}})

    assert response.status_code == 402
    required = decode_payment_required_header(response.headers["PAYMENT-REQUIRED"])
    [accepted] = required.accepts
    assert accepted.scheme == "exact"
    assert accepted.network == "eip155:8453"
    assert accepted.pay_to == PAY_TO
    assert accepted.amount == "3000"
    assert accepted.asset == BASE_USDC
    assert accepted.extra["name"] == "USD Coin"
    assert required.resource.url.endswith("/entrypoints/scout/invoke")
    assert fetcher.calls == []
    assert facilitator.calls == ["supported"]


def test_deep_scout_is_priced_separately(facilitator) -> None:
    client = _client(StubFetcher(), _paid_config(), facilitator)

    response = client.post("/entrypoints/deep-scout/invoke")

    assert response.status_code == 402
    required = decode_payment_required_header(response.headers["PAYMENT-REQUIRED"])
    assert required.accepts[0].amount == "5000"


def test_scout_settles_verified_payment(facilitator) -> None:
    fetcher = StubFetcher({"reddit": _outcome("reddit", 7)})
    client = _client(fetcher, _paid_config(), facilitator)
    body = {"input": {"sources": ["reddit"]}}
    challenge = client.post("/entrypoints/deep-scout/invoke", json=body)

    response = client.post("/entrypoints/deep-scout/invoke", json=body, headers=_signed_payment(challenge))

    assert response.status_code == 200
    assert response.json()["output"]["trends"][0]["score"] == 7
    settlement = decode_payment_response_header(response.headers["PAYMENT-RESPONSE"])
    assert settlement.success is True
    assert settlement.transaction == "0xfeed"
    assert facilitator.calls == ["supported", "verify", "settle"]
    assert facilitator.verified[0].amount == "5000"
    assert fetcher.calls == [("reddit", 15, "technology")]


def test_scout_rejects_payment_the_facilitator_does_not_verify(facilitator) -> None:
    facilitator.valid = False
    fetcher = StubFetcher()
    client = _client(fetcher, _paid_config(), facilitator)
    challenge = client.post("/entrypoints/scout/invoke")

    response = client.post("/entrypoints/scout/invoke", headers=_signed_payment(challenge))

    assert response.status_code == 402
    required = decode_payment_required_header(response.headers["PAYMENT-REQUIRED"])
    assert required.error == "invalid_exact_evm_payload_signature"
    assert "settle" not in facilitator.calls
    assert fetcher.calls == []


def test_scout_does_not_settle_rejected_input(facilitator) -> None:
    fetcher = StubFetcher()
    client = _client(fetcher, _paid_config(), facilitator)
    challenge = client.post("/entrypoints/scout/invoke")

    response = client.post(
        "/entrypoints/scout/invoke",
        json={"input": {"query": "../secrets"}},
        headers=_signed_payment(challenge),
    )

    assert response.status_code == 422
    assert "settle" not in facilitator.calls
    assert fetcher.calls == []


def test_get_trends_is_never_gated(facilitator) -> None:
    client = _client(StubFetcher(), _paid_config(), facilitator)

    response = client.post("/entrypoints/get-trends/invoke", json={"input": {"sources": ["lobsters"]}})

    assert response.status_code == 200


def test_agent_card_describes_entrypoints_and_payments(facilitator) -> None:
    config = AgentConfig(url="https://scout.example/", payments=PaymentConfig(pay_to=PAY_TO))
    client = _client(StubFetcher(), config, facilitator)

    response = client.get("/.well-known/agent.json")

    assert response.status_code == 200
    card = response.json()
    assert card["url"] == "https://scout.example/"
    assert {skill["id"] for skill in card["skills"]} == {"ping", "info", "get-trends", "scout", "deep-scout"}
    assert card["entrypoints"]["scout"]["pricing"]["invoke"] == "3000"
    assert card["entrypoints"]["ping"]["pricing"]["invoke"] == "0"
    assert card["payments"][0]["method"] == "x402"
    assert card["payments"][0]["payee"] == PAY_TO


def test_agent_card_omits_payments_when_disabled() -> None:
    client = _client(StubFetcher())

    card = client.get("/.well-known/agent.json").json()

    assert "payments" not in card
    assert card["entrypoints"]["deep-scout"]["pricing"]["invoke"] == "0"


def test_index_page_lists_entrypoints() -> None:
    client = _client(StubFetcher())

    response = client.get("/")

    assert response.status_code == 200
    assert "/entrypoints/get-trends/invoke" in response.text
    assert "Trend Scout" in response.text
