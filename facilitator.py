"""
x402 facilitator client.

Forwards a client-supplied payment proof (the ``X-PAYMENT`` header, base64
JSON) together with the route's payment requirements to the facilitator's
``/verify`` endpoint. The facilitator performs the cryptographic and
on-chain checks; this module only marshals the request and maps the reply.

Every failure mode (undecodable header, transport error, timeout, non-200,
malformed body) becomes a rejected ``VerificationResult``. Nothing raises
into the payment gate.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from typing import Any, Optional, Protocol, runtime_checkable
from urllib.parse import urlparse

import httpx

from models import PaymentRequirement
from settings import Settings

logger = logging.getLogger("fluid-mcp.facilitator")

CDP_HOST = "api.cdp.coinbase.com"


class VerificationResult:
    """Result of a facilitator verification call."""

    def __init__(self, valid: bool, payer: str = "", error: str = ""):
        self.valid = valid
        self.payer = payer
        self.error = error

    def __repr__(self) -> str:
        return f"VerificationResult(valid={self.valid!r}, payer={self.payer!r}, error={self.error!r})"


@runtime_checkable
class PaymentVerifier(Protocol):
    """Anything that can verify a payment proof against a requirement."""

    async def verify(self, payment_proof: str, requirement: PaymentRequirement) -> VerificationResult:
        ...


def decode_payment_header(payment_header: str) -> Optional[dict[str, Any]]:
    """Decode an X-PAYMENT header (base64 JSON, or raw JSON). None if neither."""
    try:
        decoded = base64.b64decode(payment_header, validate=True)
        payload = json.loads(decoded)
    except (binascii.Error, ValueError):
        try:
            payload = json.loads(payment_header)
        except ValueError:
            return None
    return payload if isinstance(payload, dict) else None


class FacilitatorClient:
    """HTTP client for an x402 facilitator's ``/verify`` endpoint."""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None) -> None:
        if not settings.facilitator_url:
            raise ValueError("FacilitatorClient requires a facilitator URL")
        self._base_url = settings.facilitator_url.rstrip("/")
        self._cdp_key_id = settings.cdp_api_key_id
        self._cdp_key_secret = settings.cdp_api_key_secret
        self._client = client

    @property
    def verify_url(self) -> str:
        return f"{self._base_url}/verify"

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if CDP_HOST in self._base_url and self._cdp_key_id and self._cdp_key_secret:
            from coinbase_jwt import build_cdp_jwt

            parsed = urlparse(self.verify_url)
            token = build_cdp_jwt(
                self._cdp_key_id,
                self._cdp_key_secret,
                parsed.netloc,
                parsed.path,
            )
            headers["Authorization"] = f"Bearer {token}"
        return headers

    async def _post(self, body: dict[str, Any], timeout: float) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(
                self.verify_url, json=body, headers=self._headers(), timeout=timeout
            )
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
            return await client.post(self.verify_url, json=body, headers=self._headers())

    async def verify(self, payment_proof: str, requirement: PaymentRequirement) -> VerificationResult:
        """Ask the facilitator whether ``payment_proof`` satisfies ``requirement``."""
        payload = decode_payment_header(payment_proof)
        if payload is None:
            return VerificationResult(valid=False, error="Cannot decode payment header")

        body = {
            "x402Version": payload.get("x402Version", 1),
            "paymentPayload": payload,
            "paymentRequirements": requirement.model_dump(by_alias=True),
        }

        try:
            resp = await self._post(body, timeout=float(requirement.max_timeout_seconds))
        except httpx.TimeoutException:
            logger.warning("x402 facilitator timeout for %s", requirement.resource)
            return VerificationResult(valid=False, error="x402 facilitator timeout")
        except httpx.HTTPError as e:
            logger.warning("x402 facilitator request failed: %s", e)
            return VerificationResult(valid=False, error="Facilitator unavailable")

        if resp.status_code != 200:
            logger.warning("x402 facilitator verify failed: %s %s", resp.status_code, resp.text[:500])
            return VerificationResult(
                valid=False,
                error=f"Facilitator verify failed ({resp.status_code})",
            )

        try:
            raw = resp.json()
        except ValueError:
            return VerificationResult(valid=False, error="Facilitator returned invalid JSON")

        if not isinstance(raw, dict):
            return VerificationResult(
                valid=False, error=f"Unexpected facilitator response type: {type(raw).__name__}"
            )

        payer = str(raw.get("payer") or "")
        if not raw.get("isValid", False):
            return VerificationResult(
                valid=False, payer=payer, error=str(raw.get("invalidReason") or "Payment rejected")
            )

        logger.info("x402 payment verified: payer=%s resource=%s", payer[:10] + "...", requirement.resource)
        return VerificationResult(valid=True, payer=payer)
