"""Tests for cross-platform detection - direction choice, fees and guards."""

import math
import pytest

from arbwatch.arbitrage.cross_platform import detect_cross_platform_arb
from arbwatch.arbitrage.types import ArbDirection
from arbwatch.database.models import ArbQuality, ArbType
from arbwatch.fees.provider import FeeProvider


def _detect(poly, kalshi, fees, pair_id=7):
    return detect_cross_platform_arb(
        poly, kalshi, pair_id, "Poly: Fed cuts in March?", "Kalshi: Fed cuts in March?", fees
    )


class TestDirectionChoice:
    """Tests for picking between the two directional strategies."""

    async def test_exact_tie_prefers_poly_yes_kalshi_no(self, make_snapshot, flat_fees):
        poly = make_snapshot(platform="polymarket", yes_bid=0.40, no_bid=0.40)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.40, no_bid=0.40)

        arb = _detect(poly, kalshi, flat_fees)

        assert arb is not None
        assert arb.arb_direction == ArbDirection.POLY_YES_KALSHI_NO
        assert arb.strategy == "Buy YES @ 0.40 on Poly, Buy NO @ 0.40 on Kalshi"

    async def test_tie_is_deterministic(self, make_snapshot, flat_fees):
        poly = make_snapshot(platform="polymarket", yes_bid=0.35, no_bid=0.35)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.35, no_bid=0.35)

        directions = {_detect(poly, kalshi, flat_fees).arb_direction for _ in range(5)}
        assert directions == {ArbDirection.POLY_YES_KALSHI_NO}

    async def test_strictly_better_b_wins(self, make_snapshot, flat_fees):
        poly = make_snapshot(platform="polymarket", yes_bid=0.50, no_bid=0.30)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.45, no_bid=0.45)

        arb = _detect(poly, kalshi, flat_fees)

        assert arb.arb_direction == ArbDirection.POLY_NO_KALSHI_YES
        assert arb.gross_spread_pct == pytest.approx(25.0)
        assert arb.net_spread_pct == pytest.approx(21.0)
        assert arb.strategy == "Buy NO @ 0.30 on Poly, Buy YES @ 0.45 on Kalshi"

    async def test_only_a_qualifies(self, make_snapshot, flat_fees):
        poly = make_snapshot(platform="polymarket", yes_bid=0.40, no_bid=0.58)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.58, no_bid=0.40)

        arb = _detect(poly, kalshi, flat_fees)

        assert arb.arb_direction == ArbDirection.POLY_YES_KALSHI_NO
        assert arb.net_spread_pct == pytest.approx(16.0)

    async def test_neither_direction_clears_minimum(self, make_snapshot, flat_fees):
        poly = make_snapshot(platform="polymarket", yes_bid=0.49, no_bid=0.49)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.49, no_bid=0.49)

        assert _detect(poly, kalshi, flat_fees) is None

    async def test_deployable_follows_chosen_legs(self, make_snapshot, flat_fees):
        poly = make_snapshot(
            platform="polymarket", yes_bid=0.50, no_bid=0.30,
            yes_bid_size=5000.0, no_bid_size=400.0,
        )
        kalshi = make_snapshot(
            platform="kalshi", yes_bid=0.45, no_bid=0.45,
            yes_bid_size=800.0, no_bid_size=5000.0,
        )

        arb = _detect(poly, kalshi, flat_fees)

        # B: NO on Poly (400) + YES on Kalshi (800)
        assert arb.max_deployable_usd == 400.0
        assert arb.quality == ArbQuality.THIN


class TestFees:
    """Tests for per-venue fee handling."""

    async def test_each_leg_pays_its_own_venue_fee(self, make_snapshot):
        fees = FeeProvider()  # polymarket 2%, kalshi 1%
        poly = make_snapshot(platform="polymarket", yes_bid=0.40, no_bid=0.55)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.55, no_bid=0.40)

        arb = _detect(poly, kalshi, fees)

        assert arb.poly_fee_pct == pytest.approx(2.0)
        assert arb.kalshi_fee_pct == pytest.approx(1.0)
        assert arb.total_fees_pct == pytest.approx(3.0)
        assert arb.net_spread_pct == pytest.approx(17.0)

    async def test_fees_can_erase_spread(self, make_snapshot, flat_fees):
        # gross 5% in direction A, fees 4%
        poly = make_snapshot(platform="polymarket", yes_bid=0.45, no_bid=0.60)
        kalshi = make_snapshot(platform="kalshi", yes_bid=0.60, no_bid=0.50)

        assert _detect(poly, kalshi, flat_fees) is None


class TestResultShape:
    async def test_result_fields(self, make_snapshot, flat_fees):
        poly = make_snapshot(
            market_id=11, platform="polymarket", yes_bid=0.40, no_bid=0.40,
            platform_id="fed-march",
        )
        kalshi = make_snapshot(
            market_id=22, platform="kalshi", yes_bid=0.40, no_bid=0.40,
            platform_id="FED-25MAR",
        )

        arb = _detect(poly, kalshi, flat_fees, pair_id=99)

        assert arb.arb_type == ArbType.CROSS_PLATFORM
        assert arb.identity == "99"
        assert arb.poly_market_id == 11
        assert arb.kalshi_market_id == 22
        assert arb.poly_platform_id == "fed-march"
        assert arb.kalshi_platform_id == "FED-25MAR"
        assert arb.poly_snapshot.yes_bid == 0.40
        assert arb.kalshi_snapshot.no_ask == 0.49
        assert arb.capital_weighted_profit == pytest.approx(0.16 * 1500.0)


class TestInvalidInput:
    @pytest.mark.parametrize("side,field,value", [
        ("poly", "yes_bid", 0.0),
        ("poly", "no_bid", 1.0),
        ("kalshi", "yes_bid", math.nan),
        ("kalshi", "no_bid", None),
        ("kalshi", "yes_bid_size", -5.0),
    ])
    async def test_invalid_leg_returns_none(self, make_snapshot, flat_fees, side, field, value):
        poly_kwargs = {"platform": "polymarket", "yes_bid": 0.40, "no_bid": 0.40}
        kalshi_kwargs = {"platform": "kalshi", "yes_bid": 0.40, "no_bid": 0.40}
        (poly_kwargs if side == "poly" else kalshi_kwargs)[field] = value

        poly = make_snapshot(**poly_kwargs)
        kalshi = make_snapshot(**kalshi_kwargs)

        assert _detect(poly, kalshi, flat_fees) is None
