"""
Pure aggregation over fetched Stripe records.

Nothing in here talks to the network: the service fetches, these functions
fold the records into KPIs. All amounts stay in integer minor units.
"""
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Sequence

from .models import (
    BalanceTotals,
    Charge,
    ChargeMetrics,
    ChargeStatus,
    ChurnSummary,
    Invoice,
    InvoiceMetrics,
    ProductRevenue,
    Subscription,
    SubscriptionSummary,
)
from .normalizer import monthly_amount, subscription_mrr, total_mrr


def summarize_subscriptions(active: Sequence[Subscription]) -> SubscriptionSummary:
    """MRR and subscriber count of the active set; ARR and ARPU derive from them."""
    return SubscriptionSummary(mrr=total_mrr(active), active_subscribers=len(active))


def window_start(now: datetime, window_days: int) -> datetime:
    return now - timedelta(days=window_days)


def churn_rate(canceled_count: int, start_population: int) -> float:
    """
    Percentage of the window-start population that canceled, within [0, 100].

    A non-positive population means the estimate is meaningless and the rate
    is reported as 0.
    """
    if start_population <= 0:
        return 0.0
    return min(100.0, canceled_count / start_population * 100)


def compute_churn(
    active: Sequence[Subscription],
    canceled: Sequence[Subscription],
    since: datetime,
) -> ChurnSummary:
    """
    New, churned and net-new MRR plus churn rate over the window starting at `since`.

    The population at the start of the window is not measured. It is estimated
    as active - new + canceled, where the number of new subscribers is itself
    approximated as new MRR divided by ARPU.
    """
    new_mrr = sum(
        subscription_mrr(s) for s in active if s.created is not None and s.created >= since
    )
    canceled_in_window = [
        s for s in canceled if s.canceled_at is not None and s.canceled_at >= since
    ]
    churned_mrr = total_mrr(canceled_in_window)
    canceled_count = len(canceled_in_window)

    arpu = summarize_subscriptions(active).arpu
    new_subscribers_proxy = new_mrr // max(arpu, 1)
    start_population = len(active) - new_subscribers_proxy + canceled_count

    return ChurnSummary(
        new_mrr=new_mrr,
        churned_mrr=churned_mrr,
        canceled_count=canceled_count,
        estimated_start_population=start_population,
        churn_rate=churn_rate(canceled_count, start_population),
    )


def balance_totals(balance: dict, currency: str) -> BalanceTotals:
    """Available and pending amounts in one currency; zero when it is absent."""
    currency = currency.lower()

    def _sum(entries) -> int:
        return sum(
            entry.get("amount") or 0
            for entry in entries or []
            if (entry.get("currency") or "").lower() == currency
        )

    return BalanceTotals(
        currency=currency,
        available=_sum(balance.get("available")),
        pending=_sum(balance.get("pending")),
    )


def group_revenue_by_product(active: Iterable[Subscription]) -> List[ProductRevenue]:
    """
    Monthly revenue and line count per product, sorted by product id.

    Items are keyed by product id, falling back to the price id. The label is
    taken from the first item seen for a key: price nickname, then product
    name, then product id, then price id.
    """
    groups: Dict[str, dict] = {}
    for subscription in active:
        for item in subscription.items:
            if not item.has_price:
                continue
            key = item.product_id or item.price_id
            group = groups.get(key)
            if group is None:
                group = groups[key] = {
                    "product_id": key,
                    "product_name": (
                        item.price_nickname
                        or item.product_name
                        or item.product_id
                        or item.price_id
                    ),
                    "revenue": 0,
                    "subscription_count": 0,
                }
            group["revenue"] += monthly_amount(item)
            group["subscription_count"] += 1

    return [ProductRevenue(**groups[key]) for key in sorted(groups)]


def summarize_invoices(invoices: Iterable[Invoice], now: datetime) -> InvoiceMetrics:
    total_revenue = paid = unpaid = overdue = 0
    for invoice in invoices:
        if invoice.paid:
            total_revenue += invoice.amount_paid
            paid += 1
            continue
        unpaid += 1
        if invoice.due_date is not None and invoice.due_date < now:
            overdue += 1
    return InvoiceMetrics(
        total_revenue=total_revenue,
        paid_invoices=paid,
        unpaid_invoices=unpaid,
        overdue_invoices=overdue,
    )


def summarize_charges(charges: Iterable[Charge]) -> ChargeMetrics:
    total = successful_amount = failed = refunded = refunded_amount = 0
    for charge in charges:
        total += 1
        if charge.paid:
            successful_amount += charge.amount
        if charge.status == ChargeStatus.FAILED.value:
            failed += 1
        if charge.refunded:
            refunded += 1
            refunded_amount += charge.amount_refunded
    return ChargeMetrics(
        total_charges=total,
        successful_amount=successful_amount,
        failed_count=failed,
        refunded_count=refunded,
        refunded_amount=refunded_amount,
    )
