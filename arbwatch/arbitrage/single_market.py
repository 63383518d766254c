"""
Single-market (underround) arbitrage detection.

HOW IT WORKS:
In a binary market, if:
- YES bid: $0.47
- NO bid:  $0.47
- Total:   $0.94

Buy 1 share of each = $0.94 cost
One side MUST pay = $1.00 payout
Gross spread: 6%

Both legs are bought on the same venue, so the taker fee is paid twice.
With a 2% fee the net spread is 6% - 4% = 2%.
"""

import logging
from typing import Optional

from ..config import DetectionThresholds, DEFAULT_THRESHOLDS
from ..fees.provider import FeeProvider
from .quality import classify_quality, is_valid_price, is_valid_size
from .types import PriceSnapshot, SingleMarketArb

logger = logging.getLogger(__name__)


def detect_single_market_arb(
    snapshot: PriceSnapshot,
    market_title: str,
    fees: FeeProvider,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> Optional[SingleMarketArb]:
    """
    Check one market for YES bid + NO bid < $1.00 after fees.

    Returns None for invalid input or a spread below threshold.
    """
    if not is_valid_price(snapshot.yes_bid) or not is_valid_price(snapshot.no_bid):
        logger.debug(
            f"Rejected snapshot for market {snapshot.market_id}: "
            f"yes_bid={snapshot.yes_bid!r} no_bid={snapshot.no_bid!r}"
        )
        return None

    if not is_valid_size(snapshot.yes_bid_size) or not is_valid_size(snapshot.no_bid_size):
        logger.debug(f"Rejected snapshot for market {snapshot.market_id}: bad bid sizes")
        return None

    gross_spread = 1 - (snapshot.yes_bid + snapshot.no_bid)
    if gross_spread < thresholds.min_gross_spread:
        return None

    # One taker fee on the YES leg, one on the NO leg
    total_fees = fees.get_fee(snapshot.platform) * 2
    net_spread = gross_spread - total_fees

    # Both legs must fill
    max_deployable = min(snapshot.yes_bid_size, snapshot.no_bid_size)

    quality = classify_quality(net_spread, max_deployable, thresholds)
    if quality is None:
        return None

    return SingleMarketArb(
        market_id=snapshot.market_id,
        platform=snapshot.platform,
        market_title=market_title,
        quality=quality,
        yes_bid=snapshot.yes_bid,
        no_bid=snapshot.no_bid,
        gross_spread_pct=gross_spread * 100,
        total_fees_pct=total_fees * 100,
        net_spread_pct=net_spread * 100,
        max_deployable_usd=max_deployable,
        capital_weighted_profit=net_spread * max_deployable,
    )
