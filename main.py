#!/usr/bin/env python3
"""
Arb Watch - Prediction Market Arbitrage Monitor

Inspects the opportunities recorded by the sync job and runs maintenance
sweeps against the same database.

Usage:
    python main.py --list                       # Open opportunities, best first
    python main.py --list --type underround     # Only one arb type
    python main.py --stats 7                    # Persistence summary for 7 days
    python main.py --reap 10                    # Close arbs not seen for 10 minutes
    python main.py --fees                       # Current fee schedule
    python main.py --fee-history kalshi         # Fee changes for one platform
    python main.py --volume-alerts 6            # Volume spikes in the last 6 hours
    python main.py --resolve-bogus              # Close arbs with impossible spreads
    python main.py --config my.yaml --list      # Custom config
"""

import asyncio
import argparse
import sys
from typing import Optional

from loguru import logger

from arbwatch.config import load_config, volume_config_from_config
from arbwatch.database import ArbQuality, ArbType, Database, init_db
from arbwatch.fees import FeeProvider
from arbwatch.tracking import ArbTracker
from arbwatch.volume import VolumeSpikeDetector


class ArbWatch:
    """
    Application wrapper: config, logging, database and the read-side
    commands.
    """

    def __init__(self, config_path: str = "config.yaml"):
        self.config = load_config(config_path)
        self.db: Optional[Database] = None
        self.fees: Optional[FeeProvider] = None
        self.tracker: Optional[ArbTracker] = None
        self.volume: Optional[VolumeSpikeDetector] = None

    async def initialize(self):
        """Initialize all components"""
        self._setup_logging()

        db_path = self.config['database']['path']
        self.db = await init_db(db_path)

        self.fees = FeeProvider(self.db)
        await self.fees.reload()

        self.tracker = ArbTracker(self.db)
        self.volume = VolumeSpikeDetector(self.db, volume_config_from_config(self.config))

    def _setup_logging(self):
        """Configure logging"""
        log_config = self.config.get('logging', {})
        level = log_config.get('level', 'INFO')

        # Remove default handler
        logger.remove()

        logger.add(
            sys.stderr,
            level=level,
            format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
        )

        log_file = log_config.get('file')
        if log_file:
            logger.add(
                log_file,
                level=level,
                rotation="10 MB",
                retention="7 days"
            )

    async def list_arbs(
        self,
        arb_type: Optional[str],
        qualities: Optional[list],
        min_spread: Optional[float],
        min_deployable: Optional[float],
        status: str,
    ):
        arbs = await self.tracker.get_active_arbs(
            arb_type=ArbType(arb_type) if arb_type else None,
            qualities=[ArbQuality(q) for q in qualities] if qualities else None,
            min_net_spread=min_spread,
            min_deployable=min_deployable,
            status=status,
        )

        if not arbs:
            print("No opportunities found")
            return

        print(f"{'ID':>6}  {'TYPE':<15} {'QUALITY':<12} {'NET %':>7} {'DEPLOY $':>10} {'SEEN':>5} {'AGE':>7}  IDENTITY")
        for arb in arbs:
            print(
                f"{arb.id:>6}  {arb.type.value:<15} {arb.quality.value:<12} "
                f"{arb.net_spread_pct:>7.2f} {arb.max_deployable_usd:>10,.0f} "
                f"{arb.snapshot_count:>5} {arb.duration_seconds:>6}s  {arb.identity_key}"
            )

    async def show_stats(self, days: int):
        stats = await self.tracker.get_arb_stats(days)

        print(f"Opportunities detected in the last {days} days: {stats.total_detected}")
        print(f"  lasted 5+ minutes:  {stats.persisted_5min}")
        print(f"  lasted 30+ minutes: {stats.persisted_30min}")
        for quality, count in stats.by_quality.items():
            print(f"  {quality:<12} {count}")
        print(f"  avg net spread:     {stats.avg_net_spread:.2f}%")
        print(f"  median deployable:  ${stats.median_deployable:,.0f}")
        print(f"  total deployable:   ${stats.total_deployable:,.0f}")

    async def reap(self, minutes: int):
        closed = await self.tracker.close_stale(minutes)
        print(f"Closed {closed} stale opportunities")

    async def resolve_bogus(self):
        closed = await self.tracker.resolve_bogus()
        print(f"Resolved {closed} bogus opportunities")

    def show_fees(self):
        for fees in self.fees.all_fees():
            print(
                f"{fees.platform:<12} taker={fees.taker_fee_pct:.2%} "
                f"maker={fees.maker_fee_pct:.2%} settlement={fees.settlement_fee_pct:.2%}"
                + (f"  ({fees.fee_notes})" if fees.fee_notes else "")
            )

    async def show_fee_history(self, platform: Optional[str]):
        history = await self.fees.get_fee_history(platform)
        if not history:
            print("No fee changes recorded")
            return

        for change in history:
            when = change.changed_at.strftime("%Y-%m-%d %H:%M") if change.changed_at else "?"
            print(
                f"{when}  {change.platform:<12} {change.field_changed:<20} "
                f"{change.old_value} -> {change.new_value}"
                + (f"  ({change.change_reason})" if change.change_reason else "")
            )

    async def show_volume_alerts(self, hours: int):
        alerts = await self.volume.get_recent_alerts(hours)
        if not alerts:
            print(f"No volume spikes in the last {hours}h")
            return

        for alert in alerts:
            print(
                f"{alert.alert_at:%Y-%m-%d %H:%M}  x{alert.multiplier:<5.1f} z={alert.z_score:<6.1f} "
                f"${alert.volume_usd:>10,.0f}  {alert.platform or '?':<10} {alert.title or alert.market_id}"
            )

    async def close(self):
        if self.db:
            await self.db.close()


async def main():
    """Main entry point"""
    parser = argparse.ArgumentParser(
        description="Arb Watch - Prediction Market Arbitrage Monitor"
    )
    parser.add_argument(
        '--config', '-c',
        default='config.yaml',
        help='Path to configuration file'
    )
    parser.add_argument('--list', action='store_true', help='List opportunities')
    parser.add_argument('--type', choices=[t.value for t in ArbType], help='Filter by arb type')
    parser.add_argument(
        '--quality', action='append', choices=[q.value for q in ArbQuality],
        help='Filter by quality (repeatable)'
    )
    parser.add_argument('--min-spread', type=float, help='Minimum net spread, in percent')
    parser.add_argument('--min-deployable', type=float, help='Minimum deployable capital, in USD')
    parser.add_argument(
        '--status', default='open', choices=['open', 'closed', 'all'],
        help='Which opportunities to list'
    )
    parser.add_argument('--stats', type=int, nargs='?', const=7, metavar='DAYS', help='Show persistence stats')
    parser.add_argument('--reap', type=int, nargs='?', const=None, default=False, metavar='MINUTES',
                        help='Close opportunities not seen recently')
    parser.add_argument('--fees', action='store_true', help='Show the fee schedule')
    parser.add_argument('--fee-history', nargs='?', const='', default=None, metavar='PLATFORM',
                        help='Show fee changes, optionally for one platform')
    parser.add_argument('--volume-alerts', type=int, nargs='?', const=24, metavar='HOURS',
                        help='Show recent volume spikes')
    parser.add_argument('--resolve-bogus', action='store_true',
                        help='Close opportunities with impossible spreads')

    args = parser.parse_args()

    app = ArbWatch(args.config)

    try:
        await app.initialize()

        if args.reap is not False:
            minutes = args.reap if args.reap is not None else app.config['tracking']['stale_minutes']
            await app.reap(minutes)

        if args.resolve_bogus:
            await app.resolve_bogus()

        if args.fees:
            app.show_fees()

        if args.fee_history is not None:
            await app.show_fee_history(args.fee_history or None)

        if args.stats is not None:
            await app.show_stats(args.stats)

        if args.volume_alerts is not None:
            await app.show_volume_alerts(args.volume_alerts)

        if args.list:
            await app.list_arbs(
                args.type, args.quality, args.min_spread, args.min_deployable, args.status
            )
    finally:
        await app.close()


if __name__ == "__main__":
    asyncio.run(main())
