"""Tests for configuration parsing, logging setup and currency conversion."""

import io
import logging

import pytest

from core.base_service import BaseService
from core.config import _int_env
from core.errors import FetchError
from core.logger import ColorFormatter, setup_logging


class TestIntEnv:
    def test_unset_uses_default(self, monkeypatch) -> None:
        monkeypatch.delenv("CHURN_WINDOW_DAYS", raising=False)
        assert _int_env("CHURN_WINDOW_DAYS", 30) == 30

    def test_reads_value(self, monkeypatch) -> None:
        monkeypatch.setenv("CHURN_WINDOW_DAYS", "14")
        assert _int_env("CHURN_WINDOW_DAYS", 30, minimum=1) == 14

    @pytest.mark.parametrize("raw", ["abc", "0", "101"])
    def test_invalid_or_out_of_range_falls_back(self, monkeypatch, raw) -> None:
        monkeypatch.setenv("STRIPE_PAGE_SIZE", raw)
        assert _int_env("STRIPE_PAGE_SIZE", 100, minimum=1, maximum=100) == 100


@pytest.fixture()
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers = handlers
    root.setLevel(level)


@pytest.mark.usefixtures("restore_root_logger")
class TestLogging:
    def test_level_and_plain_formatter_for_non_tty(self) -> None:
        stream = io.StringIO()
        level = setup_logging("debug", stream=stream)

        assert level == logging.DEBUG
        (handler,) = logging.getLogger().handlers
        assert not isinstance(handler.formatter, ColorFormatter)
        logging.getLogger("test").info("hello")
        assert "[INFO] [test] - hello" in stream.getvalue()

    def test_invalid_level_defaults_to_info(self) -> None:
        assert setup_logging("verbose", stream=io.StringIO()) == logging.INFO


class TestCurrency:
    @pytest.mark.parametrize(
        "amount, currency, expected",
        [(1999, "usd", 19.99), (1999, "USD", 19.99), (500, "jpy", 500.0), (1500, "kwd", 1.5), (250, None, 2.5)],
    )
    def test_to_major_units(self, amount, currency, expected) -> None:
        assert BaseService.to_major_units(amount, currency) == pytest.approx(expected)

    def test_none_amount(self) -> None:
        assert BaseService.to_major_units(None, "usd") == 0.0


class TestFetchError:
    def test_message(self) -> None:
        error = FetchError("charges", cause=ValueError("boom"), page=2)
        assert str(error) == "failed to fetch charges page 2: boom"
        assert error.unauthorized is False
