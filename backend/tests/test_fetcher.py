"""Tests for the paginated collection fetcher."""

import asyncio
import threading

import pytest
import stripe

from core.errors import FetchError
from factories import FakeTransport, charge, customers, monthly
from services.stripe.fetcher import CollectionFetcher
from services.stripe.transport import CollectionKind


class BlockingTransport(FakeTransport):
    """Blocks on every page after the first until released."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.entered = threading.Event()
        self.release = threading.Event()

    def list_page(self, kind, params):
        if "starting_after" in params:
            self.entered.set()
            self.release.wait(5)
        return super().list_page(kind, params)


class TestPagination:
    @pytest.mark.asyncio
    async def test_collects_every_page_in_order(self) -> None:
        subs = [monthly(100 * n) for n in range(1, 6)]
        transport = FakeTransport({("subscriptions", "active"): subs})
        fetcher = CollectionFetcher(transport, page_size=2)

        records = await fetcher.fetch_all(CollectionKind.SUBSCRIPTIONS, status="active")

        assert [r["id"] for r in records] == [s["id"] for s in subs]
        assert transport.pages_requested("subscriptions") == 3

    @pytest.mark.asyncio
    async def test_continues_after_last_id_of_previous_page(self) -> None:
        subs = [monthly(100) for _ in range(3)]
        transport = FakeTransport({("subscriptions", "active"): subs})
        fetcher = CollectionFetcher(transport, page_size=2)

        await fetcher.fetch_all(CollectionKind.SUBSCRIPTIONS, status="active")

        first, second = (params for _, params in transport.calls)
        assert "starting_after" not in first
        assert second["starting_after"] == subs[1]["id"]

    @pytest.mark.asyncio
    async def test_passes_filters(self) -> None:
        transport = FakeTransport()
        fetcher = CollectionFetcher(transport, page_size=50)

        await fetcher.fetch_all(
            CollectionKind.SUBSCRIPTIONS, status="canceled", expand=["data.items.data.price"]
        )

        _, params = transport.calls[0]
        assert params == {"limit": 50, "status": "canceled", "expand": ["data.items.data.price"]}

    @pytest.mark.asyncio
    async def test_page_size_is_capped_at_provider_maximum(self) -> None:
        transport = FakeTransport()
        fetcher = CollectionFetcher(transport, page_size=500)

        await fetcher.fetch_all(CollectionKind.CHARGES, limit=1000)

        assert transport.calls[0][1]["limit"] == 100

    @pytest.mark.asyncio
    async def test_empty_collection(self) -> None:
        fetcher = CollectionFetcher(FakeTransport())
        assert await fetcher.fetch_all(CollectionKind.INVOICES) == []

    @pytest.mark.asyncio
    async def test_count(self) -> None:
        transport = FakeTransport({("customers", None): customers(7)})
        fetcher = CollectionFetcher(transport, page_size=3)

        assert await fetcher.count(CollectionKind.CUSTOMERS) == 7
        assert transport.pages_requested("customers") == 3


class TestFailures:
    @pytest.mark.asyncio
    async def test_failure_on_page_two_of_three_returns_nothing(self) -> None:
        transport = FakeTransport(
            {("charges", None): [charge() for _ in range(6)]},
            errors={("charges", 2): stripe.APIConnectionError("connection reset")},
        )
        fetcher = CollectionFetcher(transport, page_size=2)

        with pytest.raises(FetchError) as excinfo:
            await fetcher.fetch_all(CollectionKind.CHARGES)

        assert excinfo.value.kind == "charges"
        assert excinfo.value.page == 2
        assert excinfo.value.unauthorized is False
        assert isinstance(excinfo.value.cause, stripe.APIConnectionError)
        assert transport.pages_requested("charges") == 2

    @pytest.mark.asyncio
    async def test_authentication_failure_is_flagged(self) -> None:
        transport = FakeTransport(errors={("customers", 1): stripe.AuthenticationError("Invalid API Key")})
        fetcher = CollectionFetcher(transport)

        with pytest.raises(FetchError) as excinfo:
            await fetcher.count(CollectionKind.CUSTOMERS)

        assert excinfo.value.unauthorized is True

    @pytest.mark.asyncio
    async def test_rate_limit_is_not_retried(self) -> None:
        transport = FakeTransport(errors={("invoices", 1): stripe.RateLimitError("slow down")})
        fetcher = CollectionFetcher(transport)

        with pytest.raises(FetchError):
            await fetcher.fetch_all(CollectionKind.INVOICES)

        assert transport.pages_requested("invoices") == 1

    @pytest.mark.asyncio
    async def test_balance_failure(self) -> None:
        transport = FakeTransport(errors={"balance": stripe.PermissionError("restricted key")})
        fetcher = CollectionFetcher(transport)

        with pytest.raises(FetchError) as excinfo:
            await fetcher.get_balance()

        assert excinfo.value.kind == "balance"
        assert excinfo.value.unauthorized is True


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancel_between_pages_yields_no_result(self) -> None:
        transport = BlockingTransport({("subscriptions", "active"): [monthly(100) for _ in range(4)]})
        fetcher = CollectionFetcher(transport, page_size=2)

        task = asyncio.create_task(fetcher.fetch_all(CollectionKind.SUBSCRIPTIONS, status="active"))
        assert await asyncio.to_thread(transport.entered.wait, 5)
        task.cancel()

        try:
            with pytest.raises(asyncio.CancelledError):
                await task
            assert transport.pages_requested("subscriptions") == 1
        finally:
            transport.release.set()
