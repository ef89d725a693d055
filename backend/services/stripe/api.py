from core.base_api import BaseAPI, get
from core.registry import ServiceRegistry
from .kpi import MetricKind
from .service import StripeMetricsService
from core.logger import Logger

logger = Logger(__name__)


class StripeAPI(BaseAPI):
    service: StripeMetricsService

    @get("/metrics")
    async def metrics(self):
        snapshot = await self.service.get_metrics()
        return snapshot.model_dump()

    @get("/metrics/{kpi}")
    async def metric(self, kpi: str):
        value = await self.service.get_metric(MetricKind.parse(kpi))
        return value.model_dump()

    @get("/kpis")
    async def kpis(self):
        return [value.model_dump() for value in await self.service.get_kpis()]

    @get("/subscriptions")
    async def subscriptions(self):
        return (await self.service.get_subscriptions_table()).model_dump()

    @get("/invoices")
    async def invoices(self):
        return (await self.service.get_invoices_table()).model_dump()

    @get("/charges")
    async def charges(self):
        return (await self.service.get_charges_table()).model_dump()

    @get("/charges/metrics")
    async def charge_metrics(self):
        return (await self.service.get_charge_metrics()).model_dump()

    @get("/products")
    async def products(self):
        return (await self.service.get_products_table()).model_dump()

    @get("/revenue")
    async def revenue(self):
        metrics = await self.service.get_invoice_metrics()
        return {
            "name": "Total Revenue",
            "value": self.service.to_major_units(metrics.total_revenue, self.service.currency),
            "currency": self.service.currency,
            **metrics.model_dump(),
        }

    @get("/health")
    async def health(self):
        result = await self.service.check_health()
        return {"ok": result.ok, **result.model_dump(mode="json")}


ServiceRegistry.register_api("stripe", StripeAPI("/stripe", service=ServiceRegistry.get_service("stripe")).router)
