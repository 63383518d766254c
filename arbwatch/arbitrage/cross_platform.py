"""
Cross-platform arbitrage detection.

For a matched pair (same question listed on Polymarket and Kalshi), buying
YES on one venue and NO on the other pays exactly $1.00 whichever way the
question resolves. Either venue can hold the cheap leg, so both directions
are evaluated:

    A: YES on Polymarket + NO on Kalshi
    B: NO on Polymarket + YES on Kalshi

Each leg pays its own venue's taker fee.
"""

import logging
from typing import Optional

from ..config import DetectionThresholds, DEFAULT_THRESHOLDS
from ..fees.provider import FeeProvider
from .quality import classify_quality, is_valid_price, is_valid_size
from .types import ArbDirection, CrossPlatformArb, LegQuote, PriceSnapshot

logger = logging.getLogger(__name__)


def _describe(direction: ArbDirection, poly: PriceSnapshot, kalshi: PriceSnapshot) -> str:
    if direction == ArbDirection.POLY_YES_KALSHI_NO:
        return (
            f"Buy YES @ {poly.yes_bid:.2f} on Poly, "
            f"Buy NO @ {kalshi.no_bid:.2f} on Kalshi"
        )
    return (
        f"Buy NO @ {poly.no_bid:.2f} on Poly, "
        f"Buy YES @ {kalshi.yes_bid:.2f} on Kalshi"
    )


def detect_cross_platform_arb(
    poly_snapshot: PriceSnapshot,
    kalshi_snapshot: PriceSnapshot,
    pair_id: int,
    poly_title: str,
    kalshi_title: str,
    fees: FeeProvider,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> Optional[CrossPlatformArb]:
    """
    Find the better of the two directional strategies for a market pair.

    On an exact tie of net spread, direction A (poly_yes_kalshi_no) wins.
    Returns None for invalid input or when neither direction clears the
    minimum net spread.
    """
    prices = (
        poly_snapshot.yes_bid, poly_snapshot.no_bid,
        kalshi_snapshot.yes_bid, kalshi_snapshot.no_bid,
    )
    if not all(is_valid_price(p) for p in prices):
        logger.debug(f"Rejected pair {pair_id}: invalid bid prices {prices!r}")
        return None

    sizes = (
        poly_snapshot.yes_bid_size, poly_snapshot.no_bid_size,
        kalshi_snapshot.yes_bid_size, kalshi_snapshot.no_bid_size,
    )
    if not all(is_valid_size(s) for s in sizes):
        logger.debug(f"Rejected pair {pair_id}: invalid bid sizes {sizes!r}")
        return None

    poly_fee = fees.get_fee(poly_snapshot.platform)
    kalshi_fee = fees.get_fee(kalshi_snapshot.platform)
    total_fees = fees.get_combined_fee(poly_snapshot.platform, kalshi_snapshot.platform)

    candidates = [
        (
            ArbDirection.POLY_YES_KALSHI_NO,
            1 - poly_snapshot.yes_bid - kalshi_snapshot.no_bid,
            min(poly_snapshot.yes_bid_size, kalshi_snapshot.no_bid_size),
        ),
        (
            ArbDirection.POLY_NO_KALSHI_YES,
            1 - poly_snapshot.no_bid - kalshi_snapshot.yes_bid,
            min(poly_snapshot.no_bid_size, kalshi_snapshot.yes_bid_size),
        ),
    ]

    best = None
    for direction, gross_spread, max_deployable in candidates:
        net_spread = gross_spread - total_fees
        if net_spread < thresholds.min_net_spread:
            continue
        # Strictly greater, so A keeps exact ties
        if best is None or net_spread > best[2]:
            best = (direction, gross_spread, net_spread, max_deployable)

    if best is None:
        return None

    direction, gross_spread, net_spread, max_deployable = best

    quality = classify_quality(net_spread, max_deployable, thresholds)
    if quality is None:
        return None

    return CrossPlatformArb(
        pair_id=pair_id,
        poly_market_id=poly_snapshot.market_id,
        kalshi_market_id=kalshi_snapshot.market_id,
        poly_title=poly_title,
        kalshi_title=kalshi_title,
        quality=quality,
        arb_direction=direction,
        strategy=_describe(direction, poly_snapshot, kalshi_snapshot),
        gross_spread_pct=gross_spread * 100,
        poly_fee_pct=poly_fee * 100,
        kalshi_fee_pct=kalshi_fee * 100,
        total_fees_pct=total_fees * 100,
        net_spread_pct=net_spread * 100,
        max_deployable_usd=max_deployable,
        capital_weighted_profit=net_spread * max_deployable,
        poly_snapshot=LegQuote.from_snapshot(poly_snapshot),
        kalshi_snapshot=LegQuote.from_snapshot(kalshi_snapshot),
        poly_platform_id=poly_snapshot.platform_id,
        kalshi_platform_id=kalshi_snapshot.platform_id,
    )
