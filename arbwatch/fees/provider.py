"""
Fee provider for fee-adjusted spread calculations.

Holds the current per-venue fee schedule in memory. Detectors only read
from it; the schedule is refreshed between detection batches with an
explicit reload().
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from loguru import logger
from sqlalchemy import select

from ..database.db import Database
from ..database.models import PlatformConfig, PlatformFeeHistory, utcnow

# Conservative rate for a venue we have no schedule for
FALLBACK_FEE = 0.02


@dataclass(frozen=True)
class PlatformFees:
    """Fee schedule for one venue (fractions, e.g. 0.02 = 2%)"""
    platform: str
    taker_fee_pct: float
    maker_fee_pct: float = 0.0
    settlement_fee_pct: float = 0.0
    withdrawal_fee_flat: float = 0.0
    fee_notes: Optional[str] = None
    last_verified_at: Optional[datetime] = None


@dataclass(frozen=True)
class FeeChange:
    """One entry of the fee audit trail"""
    platform: str
    field_changed: str
    old_value: Optional[float]
    new_value: Optional[float]
    changed_at: Optional[datetime]
    change_reason: Optional[str]


# Used until the database has been configured
DEFAULT_FEES: Dict[str, PlatformFees] = {
    "polymarket": PlatformFees(
        platform="polymarket",
        taker_fee_pct=0.02,
        fee_notes="Approx 2% spread-based fee, varies by market liquidity",
    ),
    "kalshi": PlatformFees(
        platform="kalshi",
        taker_fee_pct=0.01,
        fee_notes="Approximately $0.01-0.02 per contract, modeled as 1%",
    ),
}


class FeeProvider:
    """
    Supplies taker/maker/settlement fee rates per venue.

    Lookup order: loaded schedule, built-in defaults, then the
    conservative FALLBACK_FEE for unknown venues.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        fees: Optional[Iterable[PlatformFees]] = None,
    ):
        """
        Args:
            db: Database holding platform_config (None for a static schedule)
            fees: Initial schedule, mainly for tests and offline use
        """
        self.db = db
        self._cache: Dict[str, PlatformFees] = {f.platform: f for f in (fees or [])}
        self.loaded_at: Optional[datetime] = None
        self._warned_platforms: set = set()

    async def reload(self) -> int:
        """
        Re-read the fee schedule from the database.

        Keeps the previous schedule if the read fails.

        Returns:
            Number of platforms in the cache
        """
        if self.db is None:
            return len(self._cache)

        try:
            async with self.db.session() as session:
                result = await session.execute(select(PlatformConfig))
                rows = result.scalars().all()

                fresh = {
                    row.platform: PlatformFees(
                        platform=row.platform,
                        taker_fee_pct=float(row.taker_fee_pct or 0.0),
                        maker_fee_pct=float(row.maker_fee_pct or 0.0),
                        settlement_fee_pct=float(row.settlement_fee_pct or 0.0),
                        withdrawal_fee_flat=float(row.withdrawal_fee_flat or 0.0),
                        fee_notes=row.fee_notes,
                        last_verified_at=row.last_verified_at,
                    )
                    for row in rows
                }
        except Exception as e:
            source = "previous schedule" if self._cache else "defaults"
            logger.warning(f"Failed to load fees from database, keeping {source}: {e}")
            return len(self._cache)

        self._cache = fresh
        self._warned_platforms.clear()
        self.loaded_at = utcnow()
        logger.info(f"Fee cache loaded: {len(self._cache)} platforms")
        return len(self._cache)

    def get_fees(self, platform: str) -> PlatformFees:
        """Get the fee schedule for a platform, never failing"""
        fees = self._cache.get(platform)
        if fees:
            return fees

        default = DEFAULT_FEES.get(platform)
        if default:
            return default

        if platform not in self._warned_platforms:
            logger.warning(
                f"No fee schedule for platform '{platform}', "
                f"using conservative {FALLBACK_FEE:.0%} taker fee"
            )
            self._warned_platforms.add(platform)

        return PlatformFees(
            platform=platform,
            taker_fee_pct=FALLBACK_FEE,
            fee_notes="Default conservative estimate",
        )

    def get_fee(self, platform: str, is_maker: bool = False) -> float:
        """Trade fee (maker or taker) plus settlement fee, as a fraction"""
        fees = self.get_fees(platform)
        trade_fee = fees.maker_fee_pct if is_maker else fees.taker_fee_pct
        return trade_fee + fees.settlement_fee_pct

    def get_combined_fee(self, platform_a: str, platform_b: str) -> float:
        """Total fee for a two-leg trade, one leg per venue"""
        return self.get_fee(platform_a) + self.get_fee(platform_b)

    def all_fees(self) -> List[PlatformFees]:
        """All known schedules for display (defaults when nothing is loaded)"""
        if not self._cache:
            return list(DEFAULT_FEES.values())
        return list(self._cache.values())

    async def get_fee_history(self, platform: Optional[str] = None) -> List[FeeChange]:
        """Fee audit trail, newest first"""
        if self.db is None:
            return []

        async with self.db.session() as session:
            stmt = select(PlatformFeeHistory).order_by(
                PlatformFeeHistory.changed_at.desc(),
                PlatformFeeHistory.id.desc(),
            )
            if platform:
                stmt = stmt.where(PlatformFeeHistory.platform == platform)

            result = await session.execute(stmt)
            return [
                FeeChange(
                    platform=row.platform,
                    field_changed=row.field_changed,
                    old_value=row.old_value,
                    new_value=row.new_value,
                    changed_at=row.changed_at,
                    change_reason=row.change_reason,
                )
                for row in result.scalars().all()
            ]
