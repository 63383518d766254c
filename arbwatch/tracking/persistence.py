"""
Arb persistence tracking.

Every detection is upserted into arb_opportunities keyed by
(type, identity): the same market condition maps to exactly one open row,
extended on each re-observation, so "how long has this arb lasted" is
meaningful. Rows that stop being re-observed are closed by the reaper.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from sqlalchemy import select, and_
from sqlalchemy.exc import IntegrityError

from ..arbitrage.types import (
    ArbResult, CrossPlatformArb, MultiOutcomeArb, SingleMarketArb, details_to_payload
)
from ..database.db import Database
from ..database.models import ArbOpportunity, ArbQuality, ArbType, utcnow

logger = logging.getLogger(__name__)

DEFAULT_STALE_MINUTES = 10

# Net spreads above this are data errors, not opportunities
BOGUS_NET_SPREAD_PCT = 100.0


@dataclass
class ArbStats:
    """Summary of detected opportunities over a time window"""
    total_detected: int = 0
    persisted_5min: int = 0
    persisted_30min: int = 0
    by_quality: Dict[str, int] = field(default_factory=dict)
    avg_net_spread: float = 0.0
    median_deployable: float = 0.0
    total_deployable: float = 0.0


def _median(values: List[float]) -> float:
    if not values:
        return 0.0
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) / 2


def _seconds_between(start: datetime, end: datetime) -> int:
    return max(0, int((end - start).total_seconds()))


class ArbTracker:
    """
    Upserts detected opportunities and closes stale ones.

    Identity per type:
    - underround: market id
    - cross_platform: market pair id
    - multi_outcome: event key (the event name unless a stable id is given)
    """

    def __init__(self, db: Database, clock: Callable[[], datetime] = utcnow):
        """
        Args:
            db: Database instance
            clock: Source of "now" (naive UTC), replaceable in tests
        """
        self.db = db
        self.clock = clock

        # Stats
        self._inserted = 0
        self._updated = 0
        self._closed = 0

    async def track(self, arb: ArbResult) -> int:
        """
        Record one detection of an opportunity.

        Extends the open row for the same (type, identity) if there is one,
        otherwise opens a new row.

        Returns:
            Id of the arb_opportunities row
        """
        try:
            return await self._upsert(arb)
        except IntegrityError:
            # Another writer opened the same identity between our lookup
            # and insert; the row exists now, so extend it instead
            logger.info(
                f"Concurrent insert for {arb.arb_type.value}:{arb.identity}, retrying as update"
            )
            return await self._upsert(arb)

    async def _upsert(self, arb: ArbResult) -> int:
        now = self.clock()
        details = details_to_payload(arb)

        async with self.db.session() as session:
            stmt = select(ArbOpportunity).where(
                and_(
                    ArbOpportunity.type == arb.arb_type,
                    ArbOpportunity.identity_key == arb.identity,
                    ArbOpportunity.resolved_at.is_(None),
                )
            )
            result = await session.execute(stmt)
            existing = result.scalar_one_or_none()

            if existing:
                existing.quality = arb.quality
                existing.gross_spread_pct = arb.gross_spread_pct
                existing.total_fees_pct = arb.total_fees_pct
                existing.net_spread_pct = arb.net_spread_pct
                existing.max_deployable_usd = arb.max_deployable_usd
                existing.capital_weighted_profit = arb.capital_weighted_profit
                existing.details = details
                existing.last_seen_at = now
                # Incremented in SQL so overlapping writers do not lose counts
                existing.snapshot_count = ArbOpportunity.snapshot_count + 1
                existing.duration_seconds = _seconds_between(existing.detected_at, now)

                self._updated += 1
                return existing.id

            row = ArbOpportunity(
                type=arb.arb_type,
                quality=arb.quality,
                identity_key=arb.identity,
                gross_spread_pct=arb.gross_spread_pct,
                total_fees_pct=arb.total_fees_pct,
                net_spread_pct=arb.net_spread_pct,
                max_deployable_usd=arb.max_deployable_usd,
                capital_weighted_profit=arb.capital_weighted_profit,
                details=details,
                detected_at=now,
                last_seen_at=now,
                resolved_at=None,
                snapshot_count=1,
                duration_seconds=0,
            )

            if isinstance(arb, SingleMarketArb):
                row.market_id = arb.market_id
                row.platform = arb.platform
            elif isinstance(arb, CrossPlatformArb):
                row.market_pair_id = arb.pair_id
            elif isinstance(arb, MultiOutcomeArb):
                row.event_name = arb.event_name
                row.platform = arb.platform

            session.add(row)
            await session.flush()

            self._inserted += 1
            logger.info(
                f"New {arb.arb_type.value} arb {arb.identity}: "
                f"net {arb.net_spread_pct:.2f}% ({arb.quality.value})"
            )
            return row.id

    async def close_stale(self, timeout_minutes: int = DEFAULT_STALE_MINUTES) -> int:
        """
        Close every open opportunity not re-observed within the timeout.

        A row last seen exactly `timeout_minutes` ago counts as stale.

        The duration is frozen at the last observation, not at the time
        of the sweep.

        Returns:
            Number of opportunities closed
        """
        now = self.clock()
        cutoff = now - timedelta(minutes=timeout_minutes)

        async with self.db.session() as session:
            stmt = select(ArbOpportunity).where(
                and_(
                    ArbOpportunity.resolved_at.is_(None),
                    ArbOpportunity.last_seen_at <= cutoff,
                )
            )
            result = await session.execute(stmt)
            stale = result.scalars().all()

            self._close_rows(stale, now)

        if stale:
            logger.info(f"Closed {len(stale)} stale arbs (not seen for {timeout_minutes}m)")

        return len(stale)

    async def resolve_market(self, market_id: int) -> int:
        """
        Close open opportunities on a market that has resolved.

        Covers underround rows on the market and cross-platform rows where
        either leg is the market.

        Returns:
            Number of opportunities closed
        """
        now = self.clock()

        async with self.db.session() as session:
            stmt = select(ArbOpportunity).where(
                and_(
                    ArbOpportunity.resolved_at.is_(None),
                    ArbOpportunity.type.in_([ArbType.UNDERROUND, ArbType.CROSS_PLATFORM]),
                )
            )
            result = await session.execute(stmt)

            affected = []
            for row in result.scalars().all():
                if row.type == ArbType.UNDERROUND:
                    if row.market_id == market_id:
                        affected.append(row)
                    continue

                legs = row.details or {}
                if market_id in (legs.get("poly_market_id"), legs.get("kalshi_market_id")):
                    affected.append(row)

            self._close_rows(affected, now)

        if affected:
            logger.info(f"Closed {len(affected)} arbs on resolved market {market_id}")

        return len(affected)

    async def resolve_bogus(self, max_net_spread_pct: float = BOGUS_NET_SPREAD_PCT) -> int:
        """Close open opportunities whose net spread is impossible"""
        now = self.clock()

        async with self.db.session() as session:
            stmt = select(ArbOpportunity).where(
                and_(
                    ArbOpportunity.resolved_at.is_(None),
                    ArbOpportunity.net_spread_pct > max_net_spread_pct,
                )
            )
            result = await session.execute(stmt)
            bogus = result.scalars().all()

            self._close_rows(bogus, now)

        if bogus:
            logger.warning(f"Resolved {len(bogus)} bogus arbs (net spread > {max_net_spread_pct}%)")

        return len(bogus)

    def _close_rows(self, rows: Iterable[ArbOpportunity], now: datetime):
        for row in rows:
            row.resolved_at = now
            row.duration_seconds = _seconds_between(row.detected_at, row.last_seen_at)
            self._closed += 1

    async def get_active_arbs(
        self,
        arb_type: Optional[ArbType] = None,
        qualities: Optional[Iterable[ArbQuality]] = None,
        min_net_spread: Optional[float] = None,
        min_deployable: Optional[float] = None,
        status: str = "open",
        limit: Optional[int] = None,
    ) -> List[ArbOpportunity]:
        """
        Query opportunities, best first.

        Args:
            arb_type: Only this type
            qualities: Only these quality tiers
            min_net_spread: Minimum net spread, in percent
            min_deployable: Minimum deployable capital, in USD
            status: "open", "closed" or "all"
            limit: Maximum rows

        Returns:
            Rows ordered by net spread, then deployable capital, descending
        """
        if status not in ("open", "closed", "all"):
            raise ValueError(f"Unknown status filter: {status!r}")

        stmt = select(ArbOpportunity)

        if status == "open":
            stmt = stmt.where(ArbOpportunity.resolved_at.is_(None))
        elif status == "closed":
            stmt = stmt.where(ArbOpportunity.resolved_at.is_not(None))

        if arb_type is not None:
            stmt = stmt.where(ArbOpportunity.type == ArbType(arb_type))

        quality_list = [ArbQuality(q) for q in (qualities or [])]
        if quality_list:
            stmt = stmt.where(ArbOpportunity.quality.in_(quality_list))

        if min_net_spread is not None:
            stmt = stmt.where(ArbOpportunity.net_spread_pct >= min_net_spread)

        if min_deployable is not None:
            stmt = stmt.where(ArbOpportunity.max_deployable_usd >= min_deployable)

        stmt = stmt.order_by(
            ArbOpportunity.net_spread_pct.desc(),
            ArbOpportunity.max_deployable_usd.desc(),
        )

        if limit:
            stmt = stmt.limit(limit)

        async with self.db.session() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def get_arb_stats(self, days: int = 7) -> ArbStats:
        """Persistence and quality summary for opportunities detected in the last N days"""
        since = self.clock() - timedelta(days=days)

        async with self.db.session() as session:
            result = await session.execute(
                select(ArbOpportunity).where(ArbOpportunity.detected_at >= since)
            )
            rows = result.scalars().all()

        stats = ArbStats(by_quality={q.value: 0 for q in ArbQuality})
        if not rows:
            return stats

        deployable = [r.max_deployable_usd or 0.0 for r in rows]

        stats.total_detected = len(rows)
        stats.persisted_5min = sum(1 for r in rows if (r.duration_seconds or 0) >= 300)
        stats.persisted_30min = sum(1 for r in rows if (r.duration_seconds or 0) >= 1800)
        for r in rows:
            stats.by_quality[r.quality.value] += 1
        stats.avg_net_spread = sum(r.net_spread_pct for r in rows) / len(rows)
        stats.median_deployable = _median(deployable)
        stats.total_deployable = sum(deployable)

        return stats

    def get_stats(self) -> dict:
        """Get tracker statistics"""
        return {
            "inserted": self._inserted,
            "updated": self._updated,
            "closed": self._closed,
        }
