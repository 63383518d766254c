"""
Multi-outcome arbitrage detection.

HOW IT WORKS:
In a single-winner event (e.g., "Who wins the championship?"), if:
- Team A (Yes): $0.30
- Team B (Yes): $0.30
- Team C (Yes): $0.30
- Total: $0.90

Buy 1 share of each = $0.90 cost
Exactly one MUST win = $1.00 payout
Gross spread: 10%

The fee is charged on the whole stake rather than per leg, so a 2% fee
costs 0.02 * 0.90 = 1.8%, leaving 8.2% net.

Grouping markets into events happens upstream; this module only evaluates
a group it is given.
"""

import logging
from typing import Optional, Sequence

from ..config import DetectionThresholds, DEFAULT_THRESHOLDS
from ..fees.provider import FeeProvider
from .quality import classify_quality, is_valid_price, is_valid_size
from .types import MultiOutcomeArb, OutcomeQuote

logger = logging.getLogger(__name__)

MIN_OUTCOMES = 3


def detect_multi_outcome_arb(
    outcomes: Sequence[OutcomeQuote],
    event_name: str,
    platform: str,
    fees: FeeProvider,
    event_key: Optional[str] = None,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> Optional[MultiOutcomeArb]:
    """
    Check whether buying YES on every outcome costs less than $1 after fees.

    Args:
        outcomes: Every outcome of the event, already grouped
        event_name: Display name of the event
        platform: Venue all outcomes trade on
        fees: Fee provider
        event_key: Stable event group id; the event name is used when absent

    Returns:
        MultiOutcomeArb, or None if the event has fewer than three outcomes,
        any outcome has an invalid ask, or the spread is below threshold
    """
    if len(outcomes) < MIN_OUTCOMES:
        return None

    # A missing leg would break the guaranteed payout, so one bad quote
    # rules out the whole event
    for outcome in outcomes:
        if not is_valid_price(outcome.yes_ask) or not is_valid_size(outcome.ask_size):
            logger.debug(
                f"Rejected event '{event_name}': outcome {outcome.market_id} "
                f"ask={outcome.yes_ask!r} size={outcome.ask_size!r}"
            )
            return None

    total_cost = sum(o.yes_ask for o in outcomes)
    gross_spread = 1 - total_cost

    total_fees = fees.get_fee(platform) * total_cost
    net_spread = gross_spread - total_fees

    if net_spread < thresholds.min_net_spread:
        return None

    max_deployable = min(o.ask_size for o in outcomes)

    quality = classify_quality(net_spread, max_deployable, thresholds)
    if quality is None:
        return None

    ordered = sorted(outcomes, key=lambda o: o.yes_ask, reverse=True)
    strategy = (
        f"Buy all {len(ordered)} outcomes for {total_cost * 100:.1f}¢, "
        f"collect $1. Net: {net_spread * 100:.1f}¢"
    )

    return MultiOutcomeArb(
        event_key=event_key or event_name,
        event_name=event_name,
        platform=platform,
        quality=quality,
        outcome_count=len(ordered),
        outcomes=list(ordered),
        total_cost=total_cost,
        gross_spread_pct=gross_spread * 100,
        total_fees_pct=total_fees * 100,
        net_spread_pct=net_spread * 100,
        max_deployable_usd=max_deployable,
        capital_weighted_profit=net_spread * max_deployable,
        strategy=strategy,
    )
