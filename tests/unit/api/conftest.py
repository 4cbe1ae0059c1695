"""Fixtures for API router tests.

Routers run against moto tables and the patched StripeClient; identity is
passed the way API Gateway does it, via x-user-id / x-user-role headers.
"""

from typing import Any
from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from bluewater_api.main import app

USER_HEADERS = {"x-user-id": "42"}
OTHER_USER_HEADERS = {"x-user-id": "43"}
STAFF_HEADERS = {"x-user-id": "1", "x-user-role": "staff"}


@pytest.fixture
def client(seeded_catalog: dict[str, Any], mock_stripe_client: MagicMock) -> TestClient:
    """Test client for API (lifespan not run; settings resolve lazily)."""
    return TestClient(app)


@pytest.fixture
def user_headers() -> dict[str, str]:
    return dict(USER_HEADERS)


@pytest.fixture
def other_user_headers() -> dict[str, str]:
    return dict(OTHER_USER_HEADERS)


@pytest.fixture
def staff_headers() -> dict[str, str]:
    return dict(STAFF_HEADERS)
