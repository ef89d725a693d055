from typing import Optional


class UnknownMetric(ValueError):
    """Raised when a KPI name is not one of the known metric kinds."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown metric: {name!r}")


class FetchError(RuntimeError):
    """
    Any failure while talking to the billing provider.

    A listing that fails on any page raises this and returns nothing, so
    callers never see a partial result.
    """

    def __init__(
        self,
        kind: str,
        cause: Optional[BaseException] = None,
        page: Optional[int] = None,
        unauthorized: bool = False,
    ):
        self.kind = kind
        self.cause = cause
        self.page = page
        self.unauthorized = unauthorized
        where = f"{kind} page {page}" if page is not None else kind
        super().__init__(f"failed to fetch {where}: {cause}")
