from typing import Iterable

from .models import Interval, LineItem, Subscription

MONTHS_PER_YEAR = 12
WEEKS_PER_MONTH = 4
DAYS_PER_MONTH = 30


def _truncating_div(amount: int, divisor: int) -> int:
    """Integer division rounding toward zero, not toward minus infinity."""
    quotient = abs(amount) // divisor
    return quotient if amount >= 0 else -quotient


def monthly_amount(item: LineItem) -> int:
    """
    Monthly-equivalent value of one line item, in minor units.

    Yearly prices are divided by 12 with truncation, weeks count as 4 per
    month and days as 30. Items without a recurring interval contribute 0.
    """
    amount = item.unit_amount * item.quantity
    if item.interval == Interval.YEAR:
        return _truncating_div(amount, MONTHS_PER_YEAR)
    if item.interval == Interval.MONTH:
        return amount
    if item.interval == Interval.WEEK:
        return amount * WEEKS_PER_MONTH
    if item.interval == Interval.DAY:
        return amount * DAYS_PER_MONTH
    return 0


def subscription_mrr(subscription: Subscription) -> int:
    return sum(monthly_amount(item) for item in subscription.items)


def total_mrr(subscriptions: Iterable[Subscription]) -> int:
    return sum(subscription_mrr(s) for s in subscriptions)
