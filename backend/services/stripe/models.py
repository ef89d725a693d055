from enum import Enum
from typing import List, Optional
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field, computed_field


def from_timestamp(value) -> Optional[datetime]:
    """Stripe timestamps are unix seconds; 0 and None both mean unset."""
    if not value:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def ref_id(value) -> Optional[str]:
    """Id of a reference that may or may not have been expanded."""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return value.get("id")


class Interval(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    UNPAID = "unpaid"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    PAUSED = "paused"


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    OPEN = "open"
    PAID = "paid"
    UNCOLLECTIBLE = "uncollectible"
    VOID = "void"


class ChargeStatus(str, Enum):
    SUCCEEDED = "succeeded"
    PENDING = "pending"
    FAILED = "failed"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class LineItem(Record):
    """One subscription item: a price times a quantity."""
    id: Optional[str] = None
    price_id: Optional[str] = None
    price_nickname: Optional[str] = None
    product_id: Optional[str] = None
    product_name: Optional[str] = None
    unit_amount: int = 0
    quantity: int = 0
    interval: Optional[Interval] = None

    @property
    def has_price(self) -> bool:
        return self.price_id is not None

    @classmethod
    def from_stripe(cls, data: dict) -> "LineItem":
        price = data.get("price") or {}
        if isinstance(price, str):
            price = {"id": price}
        recurring = price.get("recurring") or {}
        product = price.get("product")
        return cls(
            id=data.get("id"),
            price_id=price.get("id"),
            price_nickname=price.get("nickname") or None,
            product_id=ref_id(product),
            product_name=product.get("name") if isinstance(product, dict) else None,
            unit_amount=price.get("unit_amount") or 0,
            quantity=data.get("quantity") or 0,
            interval=recurring.get("interval"),
        )


class Subscription(Record):
    id: str
    status: str
    customer: Optional[str] = None
    created: Optional[datetime] = None
    canceled_at: Optional[datetime] = None
    items: List[LineItem] = Field(default_factory=list)

    @property
    def plan(self) -> str:
        """Label of the first priced item: nickname, else product id."""
        for item in self.items:
            if item.has_price:
                return item.price_nickname or item.product_id or ""
        return ""

    @property
    def interval(self) -> str:
        for item in self.items:
            if item.has_price:
                return item.interval.value if item.interval else ""
        return ""

    @classmethod
    def from_stripe(cls, data: dict) -> "Subscription":
        items = data.get("items") or {}
        return cls(
            id=data["id"],
            status=data.get("status") or "",
            customer=ref_id(data.get("customer")),
            created=from_timestamp(data.get("created")),
            canceled_at=from_timestamp(data.get("canceled_at")),
            items=[LineItem.from_stripe(item) for item in items.get("data") or []],
        )


class Invoice(Record):
    id: str
    customer: Optional[str] = None
    status: str = ""
    total: int = 0
    amount_paid: int = 0
    currency: str = ""
    created: Optional[datetime] = None
    due_date: Optional[datetime] = None

    @property
    def paid(self) -> bool:
        return self.status == InvoiceStatus.PAID.value

    @classmethod
    def from_stripe(cls, data: dict) -> "Invoice":
        return cls(
            id=data["id"],
            customer=ref_id(data.get("customer")),
            status=data.get("status") or "",
            total=data.get("total") or 0,
            amount_paid=data.get("amount_paid") or 0,
            currency=data.get("currency") or "",
            created=from_timestamp(data.get("created")),
            due_date=from_timestamp(data.get("due_date")),
        )


class Charge(Record):
    id: str
    amount: int = 0
    currency: str = ""
    status: str = ""
    customer: Optional[str] = None
    created: Optional[datetime] = None
    paid: bool = False
    refunded: bool = False
    amount_refunded: int = 0

    @classmethod
    def from_stripe(cls, data: dict) -> "Charge":
        return cls(
            id=data["id"],
            amount=data.get("amount") or 0,
            currency=data.get("currency") or "",
            status=data.get("status") or "",
            customer=ref_id(data.get("customer")),
            created=from_timestamp(data.get("created")),
            paid=bool(data.get("paid")),
            refunded=bool(data.get("refunded")),
            amount_refunded=data.get("amount_refunded") or 0,
        )


class BalanceTotals(Record):
    currency: str
    available: int = 0
    pending: int = 0


class SubscriptionSummary(Record):
    mrr: int = 0
    active_subscribers: int = 0

    @computed_field
    @property
    def arr(self) -> int:
        return self.mrr * 12

    @computed_field
    @property
    def arpu(self) -> int:
        if self.active_subscribers <= 0:
            return 0
        return self.mrr // self.active_subscribers


class ChurnSummary(Record):
    new_mrr: int = 0
    churned_mrr: int = 0
    canceled_count: int = 0
    estimated_start_population: int = 0
    churn_rate: float = 0.0

    @computed_field
    @property
    def net_new_mrr(self) -> int:
        return self.new_mrr - self.churned_mrr


class MetricsSnapshot(Record):
    """Every KPI of one metrics request. Amounts are minor units of `currency`."""
    currency: str
    mrr: int = 0
    active_subscribers: int = 0
    total_customers: int = 0
    available_balance: int = 0
    pending_balance: int = 0
    new_mrr: int = 0
    churned_mrr: int = 0
    churn_rate: float = 0.0
    trialing_count: int = 0
    past_due_count: int = 0
    canceled_count: int = 0
    window_days: int = 30

    @computed_field
    @property
    def arr(self) -> int:
        return self.mrr * 12

    @computed_field
    @property
    def arpu(self) -> int:
        if self.active_subscribers <= 0:
            return 0
        return self.mrr // self.active_subscribers

    @computed_field
    @property
    def net_new_mrr(self) -> int:
        return self.new_mrr - self.churned_mrr


class ProductRevenue(Record):
    product_id: str
    product_name: str
    revenue: int = 0
    subscription_count: int = 0


class InvoiceMetrics(Record):
    total_revenue: int = 0
    paid_invoices: int = 0
    unpaid_invoices: int = 0
    overdue_invoices: int = 0


class ChargeMetrics(Record):
    total_charges: int = 0
    successful_amount: int = 0
    failed_count: int = 0
    refunded_count: int = 0
    refunded_amount: int = 0


class HealthStatus(str, Enum):
    OK = "ok"
    MISSING_CREDENTIAL = "missing_credential"
    UNAUTHORIZED = "unauthorized"
    UNREACHABLE = "unreachable"


class HealthResult(Record):
    status: HealthStatus
    message: str

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.OK
