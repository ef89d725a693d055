from core.config import SETTLEMENT_CURRENCY
from core.logger import Logger

logger = Logger(__name__)


class BaseService:
    name: str = "base"

    # currencies whose minor unit is the major unit
    CURRENCY_EXPONENTS = {
        "bif": 0,
        "clp": 0,
        "djf": 0,
        "gnf": 0,
        "jpy": 0,
        "kmf": 0,
        "krw": 0,
        "mga": 0,
        "pyg": 0,
        "rwf": 0,
        "ugx": 0,
        "vnd": 0,
        "vuv": 0,
        "xaf": 0,
        "xof": 0,
        "xpf": 0,
        # three-decimal currencies
        "bhd": 3,
        "jod": 3,
        "kwd": 3,
        "omr": 3,
        "tnd": 3,
    }
    DEFAULT_EXPONENT = 2

    def __init__(self, currency: str = None):
        self.currency = (currency or SETTLEMENT_CURRENCY).lower()
        logger.info(f"Initializing service: {self.name} ({self.currency})")

    @classmethod
    def currency_exponent(cls, currency: str = None) -> int:
        if not currency:
            return cls.DEFAULT_EXPONENT
        return cls.CURRENCY_EXPONENTS.get(currency.lower(), cls.DEFAULT_EXPONENT)

    @classmethod
    def to_major_units(cls, amount: int, currency: str = None) -> float:
        """Convert an integer minor-unit amount (e.g. cents) to major units."""
        if amount is None:
            return 0.0
        return amount / (10 ** cls.currency_exponent(currency))
