"""Shared fixtures: settings, a fake facilitator verifier and HTTP clients."""

import random
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from dispatcher import build_dispatcher
from facilitator import VerificationResult
from main import create_app
from settings import Settings
from tool_executor import ToolExecutor

PAY_TO = "0x38C867005D271Eb8Ea68F262ac64F1Bf336Ee2cf"
FIXED_NOW = datetime(2025, 1, 2, 3, 4, 5, 678000, tzinfo=timezone.utc)


@pytest.fixture
def free_settings():
    return Settings()


@pytest.fixture
def paid_settings():
    return Settings(
        facilitator_url="https://facilitator.test",
        pay_to_address=PAY_TO,
        network="base-sepolia",
    )


@pytest.fixture
def executor():
    return ToolExecutor(rng=random.Random(42), clock=lambda: FIXED_NOW)


@pytest.fixture
def verifier():
    """A verifier that accepts every proof unless reconfigured by the test."""
    fake = MagicMock()
    fake.verify = AsyncMock(return_value=VerificationResult(valid=True, payer="0xpayer"))
    return fake


@pytest.fixture
def free_dispatcher(free_settings, executor):
    return build_dispatcher(free_settings, executor=executor)


@pytest.fixture
def paid_dispatcher(paid_settings, verifier, executor):
    return build_dispatcher(paid_settings, verifier=verifier, executor=executor)


@pytest.fixture
def free_client(free_settings, executor):
    return TestClient(create_app(free_settings, executor=executor))


@pytest.fixture
def paid_client(paid_settings, verifier, executor):
    return TestClient(create_app(paid_settings, verifier=verifier, executor=executor))
