"""
Volume spike detection.

Compares the most recent hourly volume bucket of a market against the
mean of the earlier buckets in the window. A spike is flagged when the
current bucket is a configured multiple of that baseline and large enough
in absolute terms to matter.
"""

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

from sqlalchemy import select

from ..config import VolumeSpikeConfig, DEFAULT_VOLUME_CONFIG
from ..database.db import Database
from ..database.models import VolumeAlert, utcnow

logger = logging.getLogger(__name__)


@dataclass
class VolumeStats:
    """Baseline statistics of a volume window"""
    mean: float
    stddev: float  # sample standard deviation
    total: float


@dataclass
class VolumeSpike:
    """A market trading well above its recent baseline"""
    market_id: int
    platform: str
    title: str
    current_volume_usd: float
    rolling_avg: float
    rolling_stddev: float
    multiplier: float
    z_score: float  # display/ranking only
    alerted_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class MarketVolume:
    """Hourly volume buckets for one market, oldest first"""
    market_id: int
    platform: str
    title: str
    volumes: Sequence[float]


def compute_volume_stats(volumes: Sequence[float]) -> VolumeStats:
    """Mean, sample standard deviation and total of a volume series"""
    if not volumes:
        return VolumeStats(mean=0.0, stddev=0.0, total=0.0)

    total = sum(volumes)
    mean = total / len(volumes)

    if len(volumes) < 2:
        return VolumeStats(mean=mean, stddev=0.0, total=total)

    variance = sum((v - mean) ** 2 for v in volumes) / (len(volumes) - 1)
    return VolumeStats(mean=mean, stddev=math.sqrt(variance), total=total)


def detect_volume_spike(
    volumes: Sequence[float],
    market_id: int,
    platform: str,
    title: str,
    config: VolumeSpikeConfig = DEFAULT_VOLUME_CONFIG,
) -> Optional[VolumeSpike]:
    """
    Check the latest bucket of a volume window against the earlier ones.

    Args:
        volumes: Hourly volume buckets, oldest first; the last is current.
            Only the last `config.lookback_hours` buckets are considered

    Returns:
        VolumeSpike, or None if there is too little history, the current
        bucket is below the minimum volume, or it is under the multiplier
    """
    if config.lookback_hours > 0:
        volumes = list(volumes)[-config.lookback_hours:]

    if len(volumes) < config.min_buckets:
        return None

    baseline = compute_volume_stats(volumes[:-1])
    current = volumes[-1]

    if current < config.min_volume_usd:
        return None

    multiplier = current / baseline.mean if baseline.mean > 0 else 0.0
    if multiplier < config.spike_multiplier:
        return None

    z_score = (current - baseline.mean) / baseline.stddev if baseline.stddev > 0 else 0.0

    return VolumeSpike(
        market_id=market_id,
        platform=platform,
        title=title,
        current_volume_usd=current,
        rolling_avg=baseline.mean,
        rolling_stddev=baseline.stddev,
        multiplier=multiplier,
        z_score=z_score,
    )


class VolumeSpikeDetector:
    """
    Runs spike detection over many markets and stores the alerts.

    Volume history is fetched upstream; this class only evaluates and
    records it.
    """

    def __init__(
        self,
        db: Database,
        config: Optional[VolumeSpikeConfig] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.config = config or DEFAULT_VOLUME_CONFIG
        self.clock = clock

    async def check_markets(self, markets: Sequence[MarketVolume]) -> List[VolumeSpike]:
        """
        Detect and store spikes for a batch of markets.

        A failure on one market is logged and does not stop the batch.
        """
        spikes = []

        for market in markets:
            try:
                spike = detect_volume_spike(
                    market.volumes,
                    market_id=market.market_id,
                    platform=market.platform,
                    title=market.title,
                    config=self.config,
                )
                if spike is None:
                    continue

                spike.alerted_at = self.clock()
                await self.store_alert(spike)
                spikes.append(spike)
            except Exception as e:
                logger.warning(f"Volume check failed for market {market.market_id}: {e}")

        if spikes:
            logger.info(f"Detected {len(spikes)} volume spikes across {len(markets)} markets")

        return spikes

    async def store_alert(self, spike: VolumeSpike) -> int:
        """Persist a spike, returning the alert id"""
        async with self.db.session() as session:
            alert = VolumeAlert(
                market_id=spike.market_id,
                platform=spike.platform,
                title=spike.title,
                volume_usd=spike.current_volume_usd,
                rolling_avg=spike.rolling_avg,
                rolling_stddev=spike.rolling_stddev,
                z_score=spike.z_score,
                multiplier=spike.multiplier,
                alert_at=spike.alerted_at,
            )
            session.add(alert)
            await session.flush()
            return alert.id

    async def get_recent_alerts(self, hours: int = 24, limit: int = 50) -> List[VolumeAlert]:
        """Alerts from the last N hours, biggest multiplier first"""
        since = self.clock() - timedelta(hours=hours)

        async with self.db.session() as session:
            stmt = (
                select(VolumeAlert)
                .where(VolumeAlert.alert_at > since)
                .order_by(VolumeAlert.multiplier.desc(), VolumeAlert.alert_at.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return list(result.scalars().all())
