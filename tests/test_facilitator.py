"""Tests for the x402 facilitator client (HTTP mocked with httpx.MockTransport)."""

import base64
import json

import httpx
import pytest

from facilitator import FacilitatorClient, decode_payment_header
from payment_gate import build_requirement
from pricing import build_price_table
from settings import Settings

PAYLOAD = {"x402Version": 1, "scheme": "exact", "network": "base-sepolia", "payload": {"signature": "0xsig"}}
PROOF = base64.b64encode(json.dumps(PAYLOAD).encode()).decode()


@pytest.fixture
def requirement(paid_settings):
    entry = build_price_table(paid_settings)["GET /mcp/weather"]
    return build_requirement(entry, "https://mcp.test/mcp/weather", "Weather")


def _client(settings, handler):
    return FacilitatorClient(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestDecodePaymentHeader:
    def test_base64_json(self):
        assert decode_payment_header(PROOF) == PAYLOAD

    def test_raw_json(self):
        assert decode_payment_header(json.dumps(PAYLOAD)) == PAYLOAD

    def test_garbage(self):
        assert decode_payment_header("not a payment") is None

    def test_non_object_json(self):
        assert decode_payment_header(base64.b64encode(b"[1, 2]").decode()) is None


class TestFacilitatorClient:
    def test_requires_url(self):
        with pytest.raises(ValueError):
            FacilitatorClient(Settings(pay_to_address="0xabc"))

    async def test_valid_payment(self, paid_settings, requirement):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"isValid": True, "payer": "0xpayer"})

        result = await _client(paid_settings, handler).verify(PROOF, requirement)

        assert result.valid
        assert result.payer == "0xpayer"
        assert seen["url"] == "https://facilitator.test/verify"
        assert seen["body"]["x402Version"] == 1
        assert seen["body"]["paymentPayload"] == PAYLOAD
        assert seen["body"]["paymentRequirements"]["maxAmountRequired"] == "2000"
        assert seen["body"]["paymentRequirements"]["resource"] == "https://mcp.test/mcp/weather"

    async def test_invalid_payment_carries_reason(self, paid_settings, requirement):
        def handler(request):
            return httpx.Response(200, json={"isValid": False, "invalidReason": "expired", "payer": "0xp"})

        result = await _client(paid_settings, handler).verify(PROOF, requirement)
        assert not result.valid
        assert result.error == "expired"

    async def test_non_200(self, paid_settings, requirement):
        result = await _client(paid_settings, lambda r: httpx.Response(503, text="down")).verify(
            PROOF, requirement
        )
        assert not result.valid
        assert "503" in result.error

    async def test_malformed_body(self, paid_settings, requirement):
        result = await _client(paid_settings, lambda r: httpx.Response(200, text="<html>")).verify(
            PROOF, requirement
        )
        assert not result.valid
        assert "invalid JSON" in result.error

    async def test_non_object_body(self, paid_settings, requirement):
        result = await _client(paid_settings, lambda r: httpx.Response(200, json=[True])).verify(
            PROOF, requirement
        )
        assert not result.valid

    async def test_transport_error(self, paid_settings, requirement):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        result = await _client(paid_settings, handler).verify(PROOF, requirement)
        assert not result.valid
        assert "unavailable" in result.error
        assert "refused" not in result.error

    async def test_timeout(self, paid_settings, requirement):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        result = await _client(paid_settings, handler).verify(PROOF, requirement)
        assert not result.valid
        assert "timeout" in result.error

    async def test_undecodable_proof_never_calls_facilitator(self, paid_settings, requirement):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"isValid": True})

        result = await _client(paid_settings, handler).verify("???", requirement)
        assert not result.valid
        assert calls == []

    def test_no_auth_header_for_plain_facilitator(self, paid_settings):
        assert "Authorization" not in FacilitatorClient(paid_settings)._headers()
