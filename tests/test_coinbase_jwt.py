"""Tests for CDP JWT generation."""

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

from coinbase_jwt import JWT_LIFETIME_SECONDS, build_cdp_jwt
from facilitator import FacilitatorClient
from settings import Settings


def _pem_key():
    key = ec.generate_private_key(ec.SECP256R1())
    pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.TraditionalOpenSSL,
        serialization.NoEncryption(),
    ).decode()
    return key, pem


class TestBuildCdpJwt:
    def test_claims_and_headers(self):
        key, pem = _pem_key()
        token = build_cdp_jwt("key-id", pem, "api.cdp.coinbase.com", "/platform/v2/x402/verify")

        header = jwt.get_unverified_header(token)
        assert header["alg"] == "ES256"
        assert header["kid"] == "key-id"
        assert header["nonce"]

        claims = jwt.decode(token, key.public_key(), algorithms=["ES256"], audience="cdp_service")
        assert claims["sub"] == "key-id"
        assert claims["iss"] == "cdp"
        assert claims["uris"] == ["POST api.cdp.coinbase.com/platform/v2/x402/verify"]
        assert claims["exp"] - claims["nbf"] == JWT_LIFETIME_SECONDS

    def test_escaped_newlines_are_accepted(self):
        key, pem = _pem_key()
        token = build_cdp_jwt("key-id", pem.replace("\n", "\\n"), "h", "/p")
        assert jwt.decode(token, key.public_key(), algorithms=["ES256"], audience="cdp_service")


class TestFacilitatorCdpAuth:
    def test_bearer_token_for_cdp_facilitator(self):
        _, pem = _pem_key()
        settings = Settings(
            facilitator_url="https://api.cdp.coinbase.com/platform/v2/x402",
            pay_to_address="0xabc",
            cdp_api_key_id="key-id",
            cdp_api_key_secret=pem,
        )
        headers = FacilitatorClient(settings)._headers()
        assert headers["Authorization"].startswith("Bearer ")
