import asyncio
from datetime import datetime, timezone
from typing import Callable, List, Optional, Union

from core.base_service import BaseService
from core.config import (
    CHURN_WINDOW_DAYS,
    METRICS_CONCURRENCY,
    STRIPE_PAGE_SIZE,
    STRIPE_SECRET_KEY,
)
from core.errors import FetchError
from core.registry import ServiceRegistry
from core.logger import Logger
from .aggregation import (
    balance_totals,
    compute_churn,
    group_revenue_by_product,
    summarize_charges,
    summarize_invoices,
    summarize_subscriptions,
    window_start,
)
from .fetcher import CollectionFetcher
from .kpi import MetricKind
from .models import (
    BalanceTotals,
    Charge,
    ChargeMetrics,
    ChurnSummary,
    HealthResult,
    HealthStatus,
    Invoice,
    InvoiceMetrics,
    MetricsSnapshot,
    ProductRevenue,
    Subscription,
    SubscriptionStatus,
    SubscriptionSummary,
)
from .projection import (
    KpiValue,
    Table,
    project_charges,
    project_invoices,
    project_metric,
    project_products,
    project_snapshot,
    project_subscriptions,
)
from .transport import CollectionKind, StripeTransport

logger = Logger(__name__)

# Stripe allows at most four levels of expansion, so products stay as ids.
SUBSCRIPTION_EXPAND = ("data.items.data.price",)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StripeMetricsService(BaseService):
    """
    Billing KPIs computed live from one Stripe account.

    Each call re-fetches what it needs; nothing is cached between calls. The
    API key is bound at construction and only ever handed to the transport.
    """
    name = "stripe"

    def __init__(
        self,
        api_key: Optional[str] = None,
        currency: Optional[str] = None,
        window_days: int = CHURN_WINDOW_DAYS,
        page_size: int = STRIPE_PAGE_SIZE,
        concurrency: int = METRICS_CONCURRENCY,
        transport=None,
        clock: Callable[[], datetime] = utcnow,
    ):
        super().__init__(currency)
        self.api_key = STRIPE_SECRET_KEY if api_key is None else api_key
        self.transport = transport or StripeTransport(self.api_key)
        self.fetcher = CollectionFetcher(self.transport, page_size=page_size)
        self.window_days = window_days
        self.concurrency = max(1, concurrency)
        self.clock = clock

    # -------------------------------------------------------------------------
    # Listings
    # -------------------------------------------------------------------------

    async def list_subscriptions(self, status: Union[SubscriptionStatus, str]) -> List[Subscription]:
        status = SubscriptionStatus(status).value
        records = await self.fetcher.fetch_all(
            CollectionKind.SUBSCRIPTIONS, status=status, expand=SUBSCRIPTION_EXPAND
        )
        return [Subscription.from_stripe(r) for r in records]

    async def count_subscriptions(self, status: Union[SubscriptionStatus, str]) -> int:
        return await self.fetcher.count(
            CollectionKind.SUBSCRIPTIONS, status=SubscriptionStatus(status).value
        )

    async def list_invoices(self) -> List[Invoice]:
        records = await self.fetcher.fetch_all(CollectionKind.INVOICES)
        return [Invoice.from_stripe(r) for r in records]

    async def list_charges(self) -> List[Charge]:
        records = await self.fetcher.fetch_all(CollectionKind.CHARGES)
        return [Charge.from_stripe(r) for r in records]

    async def count_customers(self) -> int:
        return await self.fetcher.count(CollectionKind.CUSTOMERS)

    async def get_balance(self) -> BalanceTotals:
        balance = await self.fetcher.get_balance()
        return balance_totals(balance, self.currency)

    # -------------------------------------------------------------------------
    # Aggregates
    # -------------------------------------------------------------------------

    async def get_subscription_summary(self) -> SubscriptionSummary:
        active = await self.list_subscriptions(SubscriptionStatus.ACTIVE)
        return summarize_subscriptions(active)

    async def get_churn(self, active: Optional[List[Subscription]] = None) -> ChurnSummary:
        since = window_start(self.clock(), self.window_days)
        if active is None:
            active = await self.list_subscriptions(SubscriptionStatus.ACTIVE)
        canceled = await self.list_subscriptions(SubscriptionStatus.CANCELED)
        return compute_churn(active, canceled, since)

    async def _gather(self, *coros):
        """Run independent listings with bounded concurrency; one failure cancels the rest."""
        semaphore = asyncio.Semaphore(self.concurrency)

        async def limited(coro):
            async with semaphore:
                return await coro

        tasks = [asyncio.ensure_future(limited(c)) for c in coros]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

    async def get_metrics(self) -> MetricsSnapshot:
        since = window_start(self.clock(), self.window_days)
        logger.info(f"Computing metrics ({self.currency}, {self.window_days}d window)")

        active, canceled, trialing, past_due, customers, balance = await self._gather(
            self.list_subscriptions(SubscriptionStatus.ACTIVE),
            self.list_subscriptions(SubscriptionStatus.CANCELED),
            self.count_subscriptions(SubscriptionStatus.TRIALING),
            self.count_subscriptions(SubscriptionStatus.PAST_DUE),
            self.count_customers(),
            self.get_balance(),
        )

        summary = summarize_subscriptions(active)
        churn = compute_churn(active, canceled, since)
        snapshot = MetricsSnapshot(
            currency=self.currency,
            mrr=summary.mrr,
            active_subscribers=summary.active_subscribers,
            total_customers=customers,
            available_balance=balance.available,
            pending_balance=balance.pending,
            new_mrr=churn.new_mrr,
            churned_mrr=churn.churned_mrr,
            churn_rate=churn.churn_rate,
            trialing_count=trialing,
            past_due_count=past_due,
            canceled_count=churn.canceled_count,
            window_days=self.window_days,
        )
        logger.info(
            f"Metrics: mrr={snapshot.mrr} active={snapshot.active_subscribers} "
            f"churn={snapshot.churn_rate:.2f}%"
        )
        return snapshot

    async def get_metric(self, kind: Union[MetricKind, str]) -> KpiValue:
        if not isinstance(kind, MetricKind):
            kind = MetricKind.parse(kind)
        snapshot = await self.get_metrics()
        return project_metric(snapshot, kind)

    async def get_kpis(self) -> List[KpiValue]:
        return project_snapshot(await self.get_metrics())

    async def get_revenue_by_product(self) -> List[ProductRevenue]:
        active = await self.list_subscriptions(SubscriptionStatus.ACTIVE)
        return group_revenue_by_product(active)

    async def get_invoice_metrics(self) -> InvoiceMetrics:
        return summarize_invoices(await self.list_invoices(), self.clock())

    async def get_charge_metrics(self) -> ChargeMetrics:
        return summarize_charges(await self.list_charges())

    # -------------------------------------------------------------------------
    # Tables
    # -------------------------------------------------------------------------

    async def get_subscriptions_table(self) -> Table:
        active = await self.list_subscriptions(SubscriptionStatus.ACTIVE)
        return project_subscriptions(active, self.currency)

    async def get_invoices_table(self) -> Table:
        return project_invoices(await self.list_invoices())

    async def get_charges_table(self) -> Table:
        return project_charges(await self.list_charges())

    async def get_products_table(self) -> Table:
        return project_products(await self.get_revenue_by_product(), self.currency)

    # -------------------------------------------------------------------------
    # Health
    # -------------------------------------------------------------------------

    async def ping(self):
        """Cheapest authorized call available: read the balance."""
        await self.fetcher.get_balance()

    async def check_health(self) -> HealthResult:
        if not self.api_key:
            return HealthResult(status=HealthStatus.MISSING_CREDENTIAL, message="API key is missing")
        try:
            await self.ping()
        except FetchError as e:
            status = HealthStatus.UNAUTHORIZED if e.unauthorized else HealthStatus.UNREACHABLE
            logger.warning(f"Stripe health check failed ({status.value}): {e.cause}")
            return HealthResult(status=status, message=f"Stripe API error: {e.cause}")
        return HealthResult(status=HealthStatus.OK, message="Connected to Stripe")


ServiceRegistry.register_service("stripe", StripeMetricsService())
