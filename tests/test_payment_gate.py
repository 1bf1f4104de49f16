"""Tests for PaymentGate decisions and challenge construction."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from facilitator import VerificationResult
from payment_gate import MISSING_PAYMENT_ERROR, PaymentGate, build_challenge
from pricing import build_price_table

RESOURCE = "https://mcp.test/mcp/calculate"


@pytest.fixture
def prices(paid_settings):
    return build_price_table(paid_settings)


class TestBuildChallenge:
    def test_challenge_shape(self, prices):
        challenge = build_challenge(prices["GET /mcp/calculate"], RESOURCE, "Calculator")
        body = challenge.model_dump(by_alias=True)
        assert body["x402Version"] == 1
        assert body["error"] == MISSING_PAYMENT_ERROR
        assert len(body["accepts"]) == 1
        req = body["accepts"][0]
        assert req == {
            "scheme": "exact",
            "network": "base-sepolia",
            "maxAmountRequired": "1000",
            "resource": RESOURCE,
            "description": "Calculator",
            "mimeType": "application/json",
            "payTo": prices["GET /mcp/calculate"].pay_to_address,
            "maxTimeoutSeconds": 60,
            "asset": "0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            "extra": {"name": "USDC", "version": "2"},
        }

    def test_same_entry_same_challenge(self, prices):
        entry = prices["tools/call"]
        first = build_challenge(entry, RESOURCE).model_dump(by_alias=True)
        second = build_challenge(entry, RESOURCE).model_dump(by_alias=True)
        assert first == second


class TestPaymentGate:
    async def test_unpriced_route_is_allowed_without_verifier_call(self, prices, verifier):
        gate = PaymentGate(prices, verifier)
        decision = await gate.check("GET /mcp/tools", RESOURCE, None)
        assert decision.allowed
        verifier.verify.assert_not_called()

    async def test_missing_proof_is_denied(self, prices, verifier):
        gate = PaymentGate(prices, verifier)
        decision = await gate.check("GET /mcp/calculate", RESOURCE, None)
        assert not decision.allowed
        assert decision.challenge.error == MISSING_PAYMENT_ERROR
        assert decision.challenge.accepts[0].resource == RESOURCE
        verifier.verify.assert_not_called()

    async def test_verified_proof_is_allowed(self, prices, verifier):
        gate = PaymentGate(prices, verifier)
        decision = await gate.check("GET /mcp/calculate", RESOURCE, "proof")
        assert decision.allowed
        assert decision.payer == "0xpayer"
        proof, requirement = verifier.verify.call_args.args
        assert proof == "proof"
        assert requirement.max_amount_required == "1000"

    async def test_rejected_proof_is_denied_with_reason(self, prices, verifier):
        verifier.verify.return_value = VerificationResult(valid=False, error="insufficient_funds")
        gate = PaymentGate(prices, verifier)
        decision = await gate.check("tools/call", RESOURCE, "proof")
        assert not decision.allowed
        assert decision.challenge.error == "Payment verification failed: insufficient_funds"
        assert decision.challenge.accepts[0].max_amount_required == "5000"

    async def test_verifier_exception_is_a_rejection(self, prices, verifier):
        verifier.verify.side_effect = RuntimeError("boom")
        gate = PaymentGate(prices, verifier)
        decision = await gate.check("tools/call", RESOURCE, "proof")
        assert not decision.allowed
        assert decision.challenge.error == "Payment verification failed: verification error"
        assert "boom" not in decision.challenge.error

    async def test_verifier_timeout_is_a_rejection(self, paid_settings):
        prices = build_price_table(paid_settings.model_copy(update={"max_timeout_seconds": 1}))

        async def slow_verify(proof, requirement):
            await asyncio.sleep(5)

        slow = MagicMock()
        slow.verify = AsyncMock(side_effect=slow_verify)
        gate = PaymentGate(prices, slow)
        decision = await gate.check("tools/call", RESOURCE, "proof")
        assert not decision.allowed
        assert "did not answer" in decision.challenge.error

    async def test_no_verifier_rejects_proofs(self, prices):
        gate = PaymentGate(prices)
        decision = await gate.check("tools/call", RESOURCE, "proof")
        assert not decision.allowed
        assert "unavailable" in decision.challenge.error

    def test_price_lookup(self, prices):
        gate = PaymentGate(prices)
        assert gate.is_priced("POST /mcp/weather")
        assert not gate.is_priced("POST /mcp/tools")
        assert gate.price_for("POST /mcp/weather").amount == "0.002"
