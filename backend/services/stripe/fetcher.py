import asyncio
from typing import List, Optional, Sequence

import stripe

from core.config import STRIPE_PAGE_SIZE
from core.errors import FetchError
from core.logger import Logger
from .transport import CollectionKind

logger = Logger(__name__)

MAX_PAGE_SIZE = 100
UNAUTHORIZED_ERRORS = (stripe.AuthenticationError, stripe.PermissionError)


def to_fetch_error(kind: str, error: stripe.StripeError, page: int = None) -> FetchError:
    return FetchError(
        kind,
        cause=error,
        page=page,
        unauthorized=isinstance(error, UNAUTHORIZED_ERRORS),
    )


class CollectionFetcher:
    """
    Walks a Stripe list endpoint page by page until ``has_more`` is false.

    Every page request runs in a worker thread, so cancelling the awaiting
    task stops the walk at the next page boundary and nothing is returned.
    """

    def __init__(self, transport, page_size: int = STRIPE_PAGE_SIZE):
        self.transport = transport
        self.page_size = max(1, min(page_size, MAX_PAGE_SIZE))

    def build_params(
        self,
        status: Optional[str] = None,
        expand: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> dict:
        params = {"limit": max(1, min(limit or self.page_size, MAX_PAGE_SIZE))}
        if status:
            params["status"] = status
        if expand:
            params["expand"] = list(expand)
        return params

    async def fetch_all(
        self,
        kind: CollectionKind,
        status: Optional[str] = None,
        expand: Optional[Sequence[str]] = None,
        limit: Optional[int] = None,
    ) -> List[dict]:
        params = self.build_params(status=status, expand=expand, limit=limit)
        records: List[dict] = []
        page_number = 0

        while True:
            page_number += 1
            try:
                page = await asyncio.to_thread(self.transport.list_page, kind, dict(params))
            except stripe.StripeError as e:
                logger.error(f"Stripe error listing {kind.value} (page {page_number}): {e}")
                raise to_fetch_error(kind.value, e, page=page_number) from e

            records.extend(page.records)
            logger.debug(f"Fetched {kind.value} page {page_number}: {len(page.records)} records")
            if not page.has_more or not page.records:
                break
            params["starting_after"] = page.records[-1]["id"]

        suffix = f" ({status})" if status else ""
        logger.info(f"Fetched {len(records)} {kind.value}{suffix} in {page_number} page(s)")
        return records

    async def count(self, kind: CollectionKind, status: Optional[str] = None) -> int:
        return len(await self.fetch_all(kind, status=status))

    async def get_balance(self) -> dict:
        try:
            return await asyncio.to_thread(self.transport.get_balance)
        except stripe.StripeError as e:
            logger.error(f"Stripe error reading balance: {e}")
            raise to_fetch_error("balance", e) from e
