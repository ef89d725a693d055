"""Tests for the Stripe-backed transport, with the stripe resources patched out."""

from types import SimpleNamespace

import pytest
import stripe

from services.stripe.transport import CollectionKind, StripeTransport


class FakeObject(dict):
    def to_dict(self):
        return dict(self)


@pytest.fixture()
def captured(monkeypatch):
    calls = []

    def fake_list(**kwargs):
        calls.append(kwargs)
        return SimpleNamespace(data=[FakeObject(id="sub_1")], has_more=True)

    monkeypatch.setattr(stripe.Subscription, "list", fake_list)
    monkeypatch.setattr(stripe, "api_key", None)
    return calls


class TestStripeTransport:
    def test_key_is_passed_per_request(self, captured) -> None:
        transport = StripeTransport("sk_test_abc")

        page = transport.list_page(CollectionKind.SUBSCRIPTIONS, {"limit": 10, "status": "active"})

        assert captured == [{"api_key": "sk_test_abc", "limit": 10, "status": "active"}]
        assert page.records == [{"id": "sub_1"}]
        assert page.has_more is True
        assert stripe.api_key is None

    def test_two_transports_do_not_share_keys(self, captured) -> None:
        StripeTransport("sk_one").list_page(CollectionKind.SUBSCRIPTIONS, {"limit": 1})
        StripeTransport("sk_two").list_page(CollectionKind.SUBSCRIPTIONS, {"limit": 1})

        assert [c["api_key"] for c in captured] == ["sk_one", "sk_two"]

    def test_retries_connection_errors_when_configured(self, monkeypatch) -> None:
        attempts = []

        def flaky_retrieve(**kwargs):
            attempts.append(kwargs)
            if len(attempts) == 1:
                raise stripe.APIConnectionError("reset")
            return FakeObject(available=[], pending=[])

        monkeypatch.setattr(stripe.Balance, "retrieve", flaky_retrieve)
        monkeypatch.setattr("core.backoff.time.sleep", lambda _s: None)

        assert StripeTransport("sk_test", max_retries=1).get_balance() == {"available": [], "pending": []}
        assert len(attempts) == 2

    def test_no_retry_by_default(self, monkeypatch) -> None:
        attempts = []

        def failing_retrieve(**kwargs):
            attempts.append(kwargs)
            raise stripe.APIConnectionError("reset")

        monkeypatch.setattr(stripe.Balance, "retrieve", failing_retrieve)

        with pytest.raises(stripe.APIConnectionError):
            StripeTransport("sk_test", max_retries=0).get_balance()
        assert len(attempts) == 1
