"""Tests for derived trade figures."""

import math

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from klinewaker.journal.derivation import (
    compute_risk_reward,
    compute_usd_pnl,
    is_settled,
    round2,
)
from klinewaker.models import Instrument, JournalEntry

MES = Instrument(id="i1", name="MES", point_value_usd=5)


class TestComputeUsdPnl:

    def test_long(self):
        entry = {"direction": "Long", "entryPrice": 100, "exitPrice": 110, "positionSize": 2}
        assert compute_usd_pnl(entry, MES) == 100.00

    def test_short(self):
        entry = {"direction": "Short", "entryPrice": 100, "exitPrice": 110, "positionSize": 2}
        assert compute_usd_pnl(entry, MES) == -100.00

    def test_no_instrument(self):
        entry = {"direction": "Long", "entryPrice": 100, "exitPrice": 110, "positionSize": 2}
        assert compute_usd_pnl(entry, None) == 0

    def test_points_take_precedence_over_prices(self):
        entry = {"direction": "Long", "entryPrice": 100, "exitPrice": 110, "pnl": -3}
        assert compute_usd_pnl(entry, MES) == -15.00

    def test_open_trade_is_zero(self):
        entry = {"direction": "Long", "entryPrice": 100}
        assert compute_usd_pnl(entry, MES) == 0

    def test_size_defaults_to_one(self):
        for size in (None, "two", math.nan, math.inf):
            entry = {"direction": "Long", "entryPrice": 100, "exitPrice": 101, "positionSize": size}
            assert compute_usd_pnl(entry, MES) == 5.00

    def test_non_numeric_prices_are_not_computable(self):
        entry = {"direction": "Long", "entryPrice": "100", "exitPrice": 110}
        assert compute_usd_pnl(entry, MES) == 0

    def test_rounds_to_cents(self):
        instrument = Instrument(name="X", point_value_usd=1.0 / 3)
        entry = {"direction": "Long", "entryPrice": 0, "exitPrice": 1}
        assert compute_usd_pnl(entry, instrument) == 0.33

    def test_overflow_is_zero(self):
        instrument = Instrument(name="X", point_value_usd=1e308)
        entry = {"direction": "Long", "entryPrice": 0, "exitPrice": 1e308}
        assert compute_usd_pnl(entry, instrument) == 0

    def test_accepts_snake_case_and_models(self):
        entry = JournalEntry(
            date=0,
            symbol="MES",
            direction="Long",
            entry_price=100,
            exit_price=104,
            position_size=3,
        )
        assert compute_usd_pnl(entry, MES) == 60.00
        assert compute_usd_pnl(
            {"direction": "Long", "entry_price": 100, "exit_price": 104}, MES
        ) == 20.00

    @given(
        entry_price=st.floats(min_value=0, max_value=1e6, allow_nan=False),
        exit_price=st.floats(min_value=0, max_value=1e6, allow_nan=False),
        size=st.floats(min_value=0.01, max_value=100, allow_nan=False),
    )
    @settings(max_examples=100)
    def test_long_and_short_are_opposite(self, entry_price: float, exit_price: float, size: float):
        """*For any* prices, a short trade earns the negative of a long one."""
        base = {"entryPrice": entry_price, "exitPrice": exit_price, "positionSize": size}
        long_pnl = compute_usd_pnl({**base, "direction": "Long"}, MES)
        short_pnl = compute_usd_pnl({**base, "direction": "Short"}, MES)
        assert long_pnl == pytest.approx(-short_pnl, abs=0.011)


class TestComputeRiskReward:

    def test_ratio(self):
        assert compute_risk_reward({"entryPrice": 100, "exitPrice": 110, "stopLoss": 95}) == 2.00

    def test_zero_risk_is_none(self):
        assert compute_risk_reward({"entryPrice": 100, "exitPrice": 110, "stopLoss": 100}) is None

    @pytest.mark.parametrize(
        "entry",
        [
            {"entryPrice": 100, "exitPrice": 110},
            {"entryPrice": 100, "stopLoss": 95},
            {"entryPrice": 100, "exitPrice": None, "stopLoss": 95},
            {"entryPrice": 100, "exitPrice": "110", "stopLoss": 95},
            {"entryPrice": 100, "exitPrice": math.nan, "stopLoss": 95},
        ],
    )
    def test_missing_prices_are_none(self, entry: dict):
        assert compute_risk_reward(entry) is None

    def test_losing_trade_uses_absolute_values(self):
        assert compute_risk_reward({"entryPrice": 100, "exitPrice": 97, "stopLoss": 98}) == 1.5

    def test_rounds(self):
        assert compute_risk_reward({"entryPrice": 100, "exitPrice": 101, "stopLoss": 97}) == 0.33


class TestIsSettled:

    @pytest.mark.parametrize("status", ["Closed", "Win", "Loss"])
    def test_settled_statuses(self, status: str):
        assert is_settled({"status": status, "exitPrice": 1, "accountId": "a"})

    def test_open_never_settles(self):
        assert not is_settled({"status": "Open", "exitPrice": 1, "accountId": "a"})

    def test_needs_exit_and_account(self):
        assert not is_settled({"status": "Win", "accountId": "a"})
        assert not is_settled({"status": "Win", "exitPrice": 1})
        assert not is_settled({"status": "Win", "exitPrice": 1, "accountId": ""})

    def test_exit_price_of_zero_counts(self):
        assert is_settled({"status": "Loss", "exitPrice": 0, "accountId": "a"})


def test_round2_normalizes_negative_zero():
    assert math.copysign(1, round2(-0.001)) == 1
    assert round2(1.005 + 1e-9) == 1.01
