"""Pytest fixtures for seatorder tests."""

import tempfile
from pathlib import Path

import pytest

from seatorder.config import Settings
from seatorder.models import LineItem

TEST_SECRET = "test-secret-key-with-at-least-32-bytes!"


@pytest.fixture
def temp_dir():
    """Create a temporary directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    """Settings for the test environment, storing data under temp_dir."""
    return Settings(
        env="test",
        jwt_secret=TEST_SECRET,
        data_dir=temp_dir / "data",
        frontend_url="https://order.example.com",
    )


@pytest.fixture
def service(settings):
    from seatorder.services import SeatOrderService

    return SeatOrderService(settings)


@pytest.fixture
def api_client(settings):
    """Create a test client around an app built from the test settings."""
    from fastapi.testclient import TestClient

    from seatorder.api import create_app

    return TestClient(create_app(settings))


def make_items() -> list[LineItem]:
    """Two lines totalling 250: 2 x 100 and 1 x 50."""
    return [
        LineItem.create("p1", quantity=2, price=100),
        LineItem.create("p2", quantity=1, price=50),
    ]
