"""
Database models for Arb Watch
"""

from datetime import datetime, timezone
from enum import Enum
from sqlalchemy import (
    Column, String, Integer, Float, DateTime, Text, JSON,
    Enum as SQLEnum, Index, text
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp, matching what SQLite hands back"""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class ArbType(str, Enum):
    """Kind of arbitrage opportunity"""
    UNDERROUND = "underround"          # YES + NO on one market < $1
    CROSS_PLATFORM = "cross_platform"  # opposite sides on two venues
    MULTI_OUTCOME = "multi_outcome"    # every YES of an exclusive event


class ArbQuality(str, Enum):
    """How much capital an opportunity can realistically absorb"""
    THEORETICAL = "theoretical"
    THIN = "thin"
    EXECUTABLE = "executable"


class ArbOpportunity(Base):
    """
    One live or historically-closed arbitrage opportunity.

    At most one open row (resolved_at IS NULL) exists per
    (type, identity_key). identity_key is the market id for underround,
    the market pair id for cross-platform and the event key for
    multi-outcome opportunities.
    """
    __tablename__ = "arb_opportunities"

    id = Column(Integer, primary_key=True, autoincrement=True)

    # Classification
    type = Column(SQLEnum(ArbType, values_callable=_enum_values), nullable=False)
    quality = Column(SQLEnum(ArbQuality, values_callable=_enum_values), nullable=False)

    # Identity
    identity_key = Column(String(255), nullable=False)
    market_id = Column(Integer, nullable=True)
    market_pair_id = Column(Integer, nullable=True)
    event_name = Column(String(500), nullable=True)
    platform = Column(String(20), nullable=True)

    # Spreads (percent)
    gross_spread_pct = Column(Float, nullable=False)
    total_fees_pct = Column(Float, nullable=False)
    net_spread_pct = Column(Float, nullable=False)

    # Liquidity
    max_deployable_usd = Column(Float, nullable=False, default=0.0)
    capital_weighted_profit = Column(Float, nullable=False, default=0.0)

    # Type-specific breakdown, tagged with "kind"
    details = Column(JSON, nullable=True)

    # Lifecycle
    detected_at = Column(DateTime, nullable=False, default=utcnow)
    last_seen_at = Column(DateTime, nullable=False, default=utcnow)
    resolved_at = Column(DateTime, nullable=True)

    # Persistence metrics
    snapshot_count = Column(Integer, nullable=False, default=1)
    duration_seconds = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index(
            'uq_arb_open_identity', 'type', 'identity_key',
            unique=True,
            sqlite_where=text('resolved_at IS NULL'),
            postgresql_where=text('resolved_at IS NULL'),
        ),
        Index('idx_arb_type_quality', 'type', 'quality'),
        Index('idx_arb_detected', 'detected_at'),
        Index('idx_arb_resolved', 'resolved_at'),
    )

    @property
    def is_open(self) -> bool:
        return self.resolved_at is None

    @property
    def parsed_details(self):
        """Details payload deserialized through its kind tag"""
        from ..arbitrage.types import parse_details
        return parse_details(self.details)

    def __repr__(self):
        state = "open" if self.is_open else "closed"
        return (
            f"<ArbOpportunity {self.type.value}:{self.identity_key} "
            f"net={self.net_spread_pct:.2f}% ({state})>"
        )


class PlatformConfig(Base):
    """Per-venue fee schedule (fractions, e.g. 0.02 = 2%)"""
    __tablename__ = "platform_config"

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(20), nullable=False, unique=True)

    # Trading fees
    taker_fee_pct = Column(Float, nullable=False, default=0.02)
    maker_fee_pct = Column(Float, nullable=False, default=0.0)

    # Settlement/withdrawal fees
    settlement_fee_pct = Column(Float, nullable=False, default=0.0)
    withdrawal_fee_flat = Column(Float, nullable=False, default=0.0)

    fee_notes = Column(Text, nullable=True)
    last_verified_at = Column(DateTime, nullable=True)

    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<PlatformConfig {self.platform} taker={self.taker_fee_pct:.4f}>"


class PlatformFeeHistory(Base):
    """Append-only audit trail of fee changes"""
    __tablename__ = "platform_fee_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    platform = Column(String(20), nullable=False)
    field_changed = Column(String(50), nullable=False)
    old_value = Column(Float, nullable=True)
    new_value = Column(Float, nullable=True)
    changed_at = Column(DateTime, default=utcnow)
    change_reason = Column(Text, nullable=True)

    __table_args__ = (
        Index('idx_fee_history_platform_time', 'platform', 'changed_at'),
    )

    def __repr__(self):
        return f"<PlatformFeeHistory {self.platform}.{self.field_changed}>"


class VolumeAlert(Base):
    """Stored volume spike alert"""
    __tablename__ = "volume_alerts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    market_id = Column(Integer, nullable=False)
    platform = Column(String(20), nullable=True)
    title = Column(String(500), nullable=True)

    # Current volume
    volume_usd = Column(Float, nullable=False)

    # Statistical context
    rolling_avg = Column(Float, nullable=False)
    rolling_stddev = Column(Float, nullable=False, default=0.0)
    z_score = Column(Float, nullable=False, default=0.0)
    multiplier = Column(Float, nullable=False)

    alert_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('idx_volume_alerts_time', 'alert_at'),
    )

    def __repr__(self):
        return f"<VolumeAlert market={self.market_id} x{self.multiplier:.1f}>"
