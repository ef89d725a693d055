from enum import Enum
from typing import NamedTuple

from core.errors import UnknownMetric


class MetricKind(str, Enum):
    MRR = "mrr"
    ARR = "arr"
    SUBSCRIBERS = "subscribers"
    CUSTOMERS = "customers"
    BALANCE = "balance"
    PENDING_BALANCE = "pending_balance"
    NEW_MRR = "new_mrr"
    CHURNED_MRR = "churned_mrr"
    NET_NEW_MRR = "net_new_mrr"
    CHURN_RATE = "churn_rate"
    ARPU = "arpu"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"

    @classmethod
    def parse(cls, name: str) -> "MetricKind":
        try:
            return cls((name or "").strip().lower())
        except ValueError:
            raise UnknownMetric(name) from None


class Unit(str, Enum):
    CURRENCY = "currency"
    COUNT = "count"
    PERCENT = "percent"


class MetricDefinition(NamedTuple):
    """`label` may reference `{window_days}`; it is filled in at projection."""
    label: str
    field: str
    unit: Unit


METRICS = {
    MetricKind.MRR: MetricDefinition("MRR", "mrr", Unit.CURRENCY),
    MetricKind.ARR: MetricDefinition("ARR", "arr", Unit.CURRENCY),
    MetricKind.SUBSCRIBERS: MetricDefinition("Active Subscribers", "active_subscribers", Unit.COUNT),
    MetricKind.CUSTOMERS: MetricDefinition("Total Customers", "total_customers", Unit.COUNT),
    MetricKind.BALANCE: MetricDefinition("Available Balance", "available_balance", Unit.CURRENCY),
    MetricKind.PENDING_BALANCE: MetricDefinition("Pending Balance", "pending_balance", Unit.CURRENCY),
    MetricKind.NEW_MRR: MetricDefinition("New MRR", "new_mrr", Unit.CURRENCY),
    MetricKind.CHURNED_MRR: MetricDefinition("Churned MRR", "churned_mrr", Unit.CURRENCY),
    MetricKind.NET_NEW_MRR: MetricDefinition("Net New MRR", "net_new_mrr", Unit.CURRENCY),
    MetricKind.CHURN_RATE: MetricDefinition("Churn Rate %", "churn_rate", Unit.PERCENT),
    MetricKind.ARPU: MetricDefinition("ARPU", "arpu", Unit.CURRENCY),
    MetricKind.TRIALING: MetricDefinition("Trialing", "trialing_count", Unit.COUNT),
    MetricKind.PAST_DUE: MetricDefinition("Past Due", "past_due_count", Unit.COUNT),
    MetricKind.CANCELED: MetricDefinition("Canceled ({window_days}d)", "canceled_count", Unit.COUNT),
}

_missing = set(MetricKind) - set(METRICS)
if _missing:
    raise RuntimeError(f"metric kinds without a definition: {sorted(k.value for k in _missing)}")
