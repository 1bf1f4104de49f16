"""
x402 payment gate.

Decides, per route key, whether a request may execute:

  - no PriceEntry for the route       -> allow
  - priced, no X-PAYMENT proof         -> deny with a 402 challenge
  - priced, proof present              -> ask the facilitator; verified -> allow,
                                          rejected / error / timeout -> deny

The challenge is built from the PriceEntry alone (plus the resource URL), so
the same entry yields the same challenge on every transport. The gate does
no blockchain I/O; the facilitator call is the only suspension point and is
bounded by the entry's ``maxTimeoutSeconds``.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

from facilitator import PaymentVerifier, VerificationResult
from models import PaymentChallenge, PaymentRequirement, PriceEntry

logger = logging.getLogger("fluid-mcp.payment")

MISSING_PAYMENT_ERROR = "X-PAYMENT header is required"


def build_requirement(entry: PriceEntry, resource_url: str, description: str = "") -> PaymentRequirement:
    """One ``accepts`` entry for ``entry`` at ``resource_url``."""
    return PaymentRequirement(
        network=entry.network,
        max_amount_required=entry.max_amount_required,
        resource=resource_url,
        description=description,
        pay_to=entry.pay_to_address,
        max_timeout_seconds=entry.max_timeout_seconds,
        asset=entry.asset_address,
        extra={"name": entry.currency, "version": "2"},
    )


def build_challenge(
    entry: PriceEntry,
    resource_url: str,
    description: str = "",
    error: str = MISSING_PAYMENT_ERROR,
) -> PaymentChallenge:
    """The 402 body for a priced route."""
    return PaymentChallenge(
        error=error,
        accepts=[build_requirement(entry, resource_url, description)],
    )


class GateDecision:
    """Outcome of a payment check: allowed, or denied with a challenge."""

    def __init__(self, allowed: bool, challenge: Optional[PaymentChallenge] = None, payer: str = ""):
        self.allowed = allowed
        self.challenge = challenge
        self.payer = payer

    @classmethod
    def allow(cls, payer: str = "") -> "GateDecision":
        return cls(True, payer=payer)

    @classmethod
    def deny(cls, challenge: PaymentChallenge) -> "GateDecision":
        return cls(False, challenge=challenge)


class PaymentGate:
    """Owns the pay/no-pay decision and challenge construction."""

    def __init__(
        self,
        prices: Mapping[str, PriceEntry],
        verifier: Optional[PaymentVerifier] = None,
    ) -> None:
        self._prices = prices
        self._verifier = verifier

    def price_for(self, route_key: str) -> Optional[PriceEntry]:
        return self._prices.get(route_key)

    def is_priced(self, route_key: str) -> bool:
        return route_key in self._prices

    async def check(
        self,
        route_key: str,
        resource_url: str,
        payment_proof: Optional[str],
        description: str = "",
    ) -> GateDecision:
        entry = self._prices.get(route_key)
        if entry is None:
            return GateDecision.allow()

        if not payment_proof:
            logger.info("402 challenge for %s (no payment proof)", route_key)
            return GateDecision.deny(build_challenge(entry, resource_url, description))

        requirement = build_requirement(entry, resource_url, description)
        verdict = await self._verify(payment_proof, requirement, entry.max_timeout_seconds)
        if not verdict.valid:
            logger.warning("Payment rejected for %s: %s", route_key, verdict.error)
            return GateDecision.deny(
                build_challenge(
                    entry, resource_url, description,
                    error=f"Payment verification failed: {verdict.error}",
                )
            )
        return GateDecision.allow(payer=verdict.payer)

    async def _verify(self, proof: str, requirement: PaymentRequirement, timeout: int) -> VerificationResult:
        if self._verifier is None:
            return VerificationResult(valid=False, error="payment verification unavailable")
        try:
            result = await asyncio.wait_for(self._verifier.verify(proof, requirement), timeout=timeout)
        except asyncio.TimeoutError:
            return VerificationResult(valid=False, error=f"facilitator did not answer within {timeout}s")
        except Exception as e:
            logger.exception("Payment verifier raised: %s", e)
            return VerificationResult(valid=False, error="verification error")
        if not result.valid and not result.error:
            return VerificationResult(valid=False, payer=result.payer, error="payment rejected")
        return result
