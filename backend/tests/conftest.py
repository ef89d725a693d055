"""Pytest configuration and fixtures for backend tests."""

import pytest

from factories import NOW, FakeTransport
from services.stripe.service import StripeMetricsService


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def make_service():
    """Build a service around a fake transport with a fixed clock and small pages."""

    def _make(transport: FakeTransport, api_key: str = "sk_test_123", **kwargs) -> StripeMetricsService:
        kwargs.setdefault("currency", "usd")
        kwargs.setdefault("page_size", 2)
        kwargs.setdefault("window_days", 30)
        return StripeMetricsService(
            api_key=api_key,
            transport=transport,
            clock=lambda: NOW,
            **kwargs,
        )

    return _make
