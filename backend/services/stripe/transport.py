from enum import Enum
from typing import List, NamedTuple

import stripe

from core.backoff import retry_with_exponential_backoff
from core.config import STRIPE_MAX_RETRIES
from core.logger import Logger

logger = Logger(__name__)

RETRYABLE_ERRORS = (stripe.RateLimitError, stripe.APIConnectionError)


class CollectionKind(str, Enum):
    SUBSCRIPTIONS = "subscriptions"
    INVOICES = "invoices"
    CHARGES = "charges"
    CUSTOMERS = "customers"


RESOURCES = {
    CollectionKind.SUBSCRIPTIONS: stripe.Subscription,
    CollectionKind.INVOICES: stripe.Invoice,
    CollectionKind.CHARGES: stripe.Charge,
    CollectionKind.CUSTOMERS: stripe.Customer,
}


class Page(NamedTuple):
    records: List[dict]
    has_more: bool


class StripeTransport:
    """
    Blocking access to the Stripe API, one request per call.

    The key is passed with every request rather than assigned to
    ``stripe.api_key``, so several transports can live in one process.
    """

    def __init__(self, api_key: str, max_retries: int = STRIPE_MAX_RETRIES):
        self.api_key = api_key
        self.max_retries = max_retries

    def list_page(self, kind: CollectionKind, params: dict) -> Page:
        return self._list(kind, params, max_retries=self.max_retries)

    def get_balance(self) -> dict:
        return self._balance(max_retries=self.max_retries)

    @retry_with_exponential_backoff(RETRYABLE_ERRORS)
    def _list(self, kind: CollectionKind, params: dict) -> Page:
        logger.debug(f"GET /v1/{kind.value} {params}")
        result = RESOURCES[kind].list(api_key=self.api_key, **params)
        return Page([obj.to_dict() for obj in result.data], bool(result.has_more))

    @retry_with_exponential_backoff(RETRYABLE_ERRORS)
    def _balance(self) -> dict:
        return stripe.Balance.retrieve(api_key=self.api_key).to_dict()
