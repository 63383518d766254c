"""
One detection cycle over freshly fetched market data.

Fetching and pairing markets happens elsewhere; the scanner receives the
grouped inputs, runs every detector, tracks what it finds and reaps
opportunities that were not seen again.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from .arbitrage import (
    ArbResult, EventGroup, MarketPair, MarketQuote,
    detect_cross_platform_arb, detect_multi_outcome_arb, detect_single_market_arb,
)
from .config import DetectionThresholds, DEFAULT_THRESHOLDS
from .database.db import Database
from .fees.provider import FeeProvider
from .tracking.persistence import ArbTracker, DEFAULT_STALE_MINUTES


@dataclass
class CycleStats:
    """Outcome of one scan cycle"""
    markets_checked: int = 0
    pairs_checked: int = 0
    events_checked: int = 0
    underround_found: int = 0
    cross_platform_found: int = 0
    multi_outcome_found: int = 0
    tracked: int = 0
    closed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def arbs_found(self) -> int:
        return self.underround_found + self.cross_platform_found + self.multi_outcome_found


class ArbScanner:
    """
    Runs the detectors for one sync cycle and persists the results.

    A storage failure while tracking one opportunity is recorded and the
    cycle moves on to the next one.
    """

    def __init__(
        self,
        db: Database,
        fees: Optional[FeeProvider] = None,
        tracker: Optional[ArbTracker] = None,
        thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
        stale_minutes: int = DEFAULT_STALE_MINUTES,
    ):
        self.db = db
        self.fees = fees or FeeProvider(db)
        self.tracker = tracker or ArbTracker(db)
        self.thresholds = thresholds
        self.stale_minutes = stale_minutes

    async def run_cycle(
        self,
        singles: Iterable[MarketQuote] = (),
        pairs: Iterable[MarketPair] = (),
        events: Iterable[EventGroup] = (),
    ) -> CycleStats:
        """
        Detect, track and reap for one batch of inputs.

        Returns:
            CycleStats with counts and any per-item errors
        """
        stats = CycleStats()

        # Fees may have been changed by an admin since the last cycle
        await self.fees.reload()

        for quote in singles:
            stats.markets_checked += 1
            arb = detect_single_market_arb(
                quote.snapshot, quote.title, self.fees, self.thresholds
            )
            if arb:
                stats.underround_found += 1
                await self._track(arb, stats)

        for pair in pairs:
            stats.pairs_checked += 1
            arb = detect_cross_platform_arb(
                pair.poly_snapshot,
                pair.kalshi_snapshot,
                pair.pair_id,
                pair.poly_title,
                pair.kalshi_title,
                self.fees,
                self.thresholds,
            )
            if arb:
                stats.cross_platform_found += 1
                await self._track(arb, stats)

        for event in events:
            stats.events_checked += 1
            arb = detect_multi_outcome_arb(
                event.outcomes,
                event.event_name,
                event.platform,
                self.fees,
                event_key=event.event_key,
                thresholds=self.thresholds,
            )
            if arb:
                stats.multi_outcome_found += 1
                await self._track(arb, stats)

        try:
            stats.closed = await self.tracker.close_stale(self.stale_minutes)
        except SQLAlchemyError as e:
            stats.errors.append(f"reaper: {e}")
            logger.error(f"Stale arb sweep failed: {e}")

        logger.info(
            f"Cycle complete: {stats.arbs_found} arbs "
            f"({stats.underround_found} underround, {stats.cross_platform_found} cross-platform, "
            f"{stats.multi_outcome_found} multi-outcome), {stats.closed} closed, "
            f"{len(stats.errors)} errors"
        )
        return stats

    async def _track(self, arb: ArbResult, stats: CycleStats):
        try:
            await self.tracker.track(arb)
            stats.tracked += 1
        except SQLAlchemyError as e:
            stats.errors.append(f"{arb.arb_type.value}:{arb.identity}: {e}")
            logger.error(f"Failed to track {arb.arb_type.value} arb {arb.identity}: {e}")
