"""
Arbitrage detection for binary prediction markets

Strategies:
1. Underround: Buy YES and NO on one market when the bids sum below $1
2. Cross-Platform: Buy opposite sides of a matched market on Polymarket and Kalshi
3. Multi-Outcome: Buy every YES of a single-winner event when the asks sum below $1
"""

from .types import (
    PriceSnapshot, OutcomeQuote, MarketQuote, MarketPair, EventGroup,
    LegQuote, SingleMarketArb, CrossPlatformArb, MultiOutcomeArb, ArbResult,
    ArbDirection, details_to_payload, parse_details,
)
from .quality import classify_quality, is_valid_price, is_valid_size, QUALITY_RANK
from .single_market import detect_single_market_arb
from .cross_platform import detect_cross_platform_arb
from .multi_outcome import detect_multi_outcome_arb, MIN_OUTCOMES

__all__ = [
    "PriceSnapshot", "OutcomeQuote", "MarketQuote", "MarketPair", "EventGroup",
    "LegQuote", "SingleMarketArb", "CrossPlatformArb", "MultiOutcomeArb", "ArbResult",
    "ArbDirection", "details_to_payload", "parse_details",
    "classify_quality", "is_valid_price", "is_valid_size", "QUALITY_RANK",
    "detect_single_market_arb", "detect_cross_platform_arb",
    "detect_multi_outcome_arb", "MIN_OUTCOMES",
]
