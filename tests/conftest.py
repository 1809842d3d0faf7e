from __future__ import annotations

import pytest
from x402.schemas import SettleResponse, SupportedKind, SupportedResponse, VerifyResponse

from trendscout.config import DEFAULT_NETWORK

PAYER = "0x3333333333333333333333333333333333333333"


class FakeFacilitator:
    """In-memory facilitator that records every call it receives."""

    def __init__(self, network: str = DEFAULT_NETWORK, *, valid: bool = True, settled: bool = True) -> None:
        self.network = network
        self.valid = valid
        self.settled = settled
        self.calls: list[str] = []
        self.verified: list = []

    def get_supported(self) -> SupportedResponse:
        self.calls.append("supported")
        return SupportedResponse(kinds=[SupportedKind(x402_version=2, scheme="exact", network=self.network)])

    async def verify(self, payload, requirements) -> VerifyResponse:
        self.calls.append("verify")
        self.verified.append(requirements)
        if not self.valid:
            return VerifyResponse(is_valid=False, invalid_reason="invalid_exact_evm_payload_signature")
        return VerifyResponse(is_valid=True, payer=PAYER)

    async def settle(self, payload, requirements) -> SettleResponse:
        self.calls.append("settle")
        if not self.settled:
            return SettleResponse(
                success=False,
                error_reason="insufficient_funds",
                transaction="",
                network=requirements.network,
            )
        return SettleResponse(success=True, transaction="0xfeed", network=requirements.network, payer=PAYER)


@pytest.fixture
def facilitator() -> FakeFacilitator:
    return FakeFacilitator()
