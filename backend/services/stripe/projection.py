"""
Flat, column-aligned views of fetched records and snapshot KPIs.

This is the only place where minor-unit integers become major-unit floats.
"""
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel

from core.base_service import BaseService
from .kpi import METRICS, MetricKind, Unit
from .models import Charge, Invoice, MetricsSnapshot, ProductRevenue, Subscription
from .normalizer import subscription_mrr

to_major_units = BaseService.to_major_units


class Table(BaseModel):
    name: str
    columns: Dict[str, List[Any]]

    @property
    def row_count(self) -> int:
        return len(next(iter(self.columns.values()), []))

    def rows(self) -> List[Dict[str, Any]]:
        names = list(self.columns)
        return [dict(zip(names, values)) for values in zip(*self.columns.values())]


class KpiValue(BaseModel):
    metric: MetricKind
    name: str
    value: float
    unit: Unit
    currency: Optional[str] = None


def _table(name: str, records: Sequence, columns: Dict[str, Any]) -> Table:
    return Table(
        name=name,
        columns={column: [getter(r) for r in records] for column, getter in columns.items()},
    )


def project_metric(snapshot: MetricsSnapshot, kind: MetricKind) -> KpiValue:
    definition = METRICS[kind]
    raw = getattr(snapshot, definition.field)
    label = definition.label.format(window_days=snapshot.window_days)
    if definition.unit == Unit.CURRENCY:
        return KpiValue(
            metric=kind,
            name=label,
            value=to_major_units(raw, snapshot.currency),
            unit=definition.unit,
            currency=snapshot.currency,
        )
    return KpiValue(metric=kind, name=label, value=float(raw), unit=definition.unit)


def project_snapshot(snapshot: MetricsSnapshot) -> List[KpiValue]:
    return [project_metric(snapshot, kind) for kind in MetricKind]


def project_subscriptions(subscriptions: Sequence[Subscription], currency: str) -> Table:
    return _table("subscriptions", subscriptions, {
        "id": lambda s: s.id,
        "status": lambda s: s.status,
        "customer": lambda s: s.customer or "",
        "mrr": lambda s: to_major_units(subscription_mrr(s), currency),
        "plan": lambda s: s.plan,
        "interval": lambda s: s.interval,
        "created": lambda s: s.created,
    })


def project_invoices(invoices: Sequence[Invoice]) -> Table:
    return _table("invoices", invoices, {
        "id": lambda i: i.id,
        "customer": lambda i: i.customer or "",
        "status": lambda i: i.status,
        "amount": lambda i: to_major_units(i.total, i.currency),
        "amount_paid": lambda i: to_major_units(i.amount_paid, i.currency),
        "currency": lambda i: i.currency,
        "created": lambda i: i.created,
        "paid": lambda i: i.paid,
    })


def project_charges(charges: Sequence[Charge]) -> Table:
    return _table("charges", charges, {
        "id": lambda c: c.id,
        "customer": lambda c: c.customer or "",
        "status": lambda c: c.status,
        "amount": lambda c: to_major_units(c.amount, c.currency),
        "amount_refunded": lambda c: to_major_units(c.amount_refunded, c.currency),
        "currency": lambda c: c.currency,
        "created": lambda c: c.created,
        "paid": lambda c: c.paid,
        "refunded": lambda c: c.refunded,
    })


def project_products(products: Sequence[ProductRevenue], currency: str) -> Table:
    return _table("products", products, {
        "product_id": lambda p: p.product_id,
        "product": lambda p: p.product_name,
        "mrr": lambda p: to_major_units(p.revenue, currency),
        "subscriptions": lambda p: p.subscription_count,
    })
