"""
Data types shared by the arbitrage detectors.

Detector results are plain dataclasses. When persisted, a result is
written to the details column with a "kind" tag and read back through
parse_details(), which rebuilds the matching dataclass.
"""

from dataclasses import MISSING, asdict, dataclass, fields
from enum import Enum
from typing import List, Optional, Sequence, Union

from ..database.models import ArbType, ArbQuality


class ArbDirection(str, Enum):
    """Which leg is bought on which venue for a cross-platform arb"""
    POLY_YES_KALSHI_NO = "poly_yes_kalshi_no"
    POLY_NO_KALSHI_YES = "poly_no_kalshi_yes"


@dataclass(frozen=True)
class PriceSnapshot:
    """One venue's observed state for one market at one instant"""
    market_id: int
    platform: str
    yes_bid: float
    no_bid: float
    yes_ask: Optional[float] = None
    no_ask: Optional[float] = None
    yes_price: Optional[float] = None
    no_price: Optional[float] = None
    yes_bid_size: float = 0.0
    yes_ask_size: float = 0.0
    no_bid_size: float = 0.0
    no_ask_size: float = 0.0
    volume_24h: float = 0.0
    platform_id: Optional[str] = None  # external id, for building URLs


@dataclass(frozen=True)
class OutcomeQuote:
    """One outcome of a multi-outcome event: the price to buy its YES side"""
    market_id: int
    title: str
    yes_ask: float
    ask_size: float


# Grouped inputs handed to the scanner by the ingestion side

@dataclass(frozen=True)
class MarketQuote:
    snapshot: PriceSnapshot
    title: str


@dataclass(frozen=True)
class MarketPair:
    pair_id: int
    poly_snapshot: PriceSnapshot
    kalshi_snapshot: PriceSnapshot
    poly_title: str
    kalshi_title: str


@dataclass(frozen=True)
class EventGroup:
    event_name: str
    platform: str
    outcomes: Sequence[OutcomeQuote]
    event_key: Optional[str] = None  # stable group id assigned at ingestion


@dataclass
class LegQuote:
    """Bid/ask snapshot of one leg, kept for audit and display"""
    yes_bid: float
    no_bid: float
    yes_ask: Optional[float]
    no_ask: Optional[float]

    @classmethod
    def from_snapshot(cls, snapshot: PriceSnapshot) -> "LegQuote":
        return cls(
            yes_bid=snapshot.yes_bid,
            no_bid=snapshot.no_bid,
            yes_ask=snapshot.yes_ask,
            no_ask=snapshot.no_ask,
        )


@dataclass
class SingleMarketArb:
    """Underround: YES bid + NO bid on one market below $1"""
    market_id: int
    platform: str
    market_title: str
    quality: ArbQuality

    # Prices used
    yes_bid: float
    no_bid: float

    # Spreads, in percent
    gross_spread_pct: float
    total_fees_pct: float
    net_spread_pct: float

    # Liquidity
    max_deployable_usd: float
    capital_weighted_profit: float

    arb_type = ArbType.UNDERROUND

    @property
    def identity(self) -> str:
        return str(self.market_id)


@dataclass
class CrossPlatformArb:
    """Opposite sides of one matched market pair bought on two venues"""
    pair_id: int
    poly_market_id: int
    kalshi_market_id: int
    poly_title: str
    kalshi_title: str
    quality: ArbQuality

    arb_direction: ArbDirection
    strategy: str

    # Spreads, in percent
    gross_spread_pct: float
    poly_fee_pct: float
    kalshi_fee_pct: float
    total_fees_pct: float
    net_spread_pct: float

    # Liquidity
    max_deployable_usd: float
    capital_weighted_profit: float

    poly_snapshot: LegQuote
    kalshi_snapshot: LegQuote
    poly_platform_id: Optional[str] = None
    kalshi_platform_id: Optional[str] = None

    arb_type = ArbType.CROSS_PLATFORM

    @property
    def identity(self) -> str:
        return str(self.pair_id)


@dataclass
class MultiOutcomeArb:
    """Every YES of a mutually exclusive event bought for less than $1"""
    event_key: str
    event_name: str
    platform: str
    quality: ArbQuality

    outcome_count: int
    outcomes: List[OutcomeQuote]
    total_cost: float  # sum of YES asks

    # Spreads, in percent
    gross_spread_pct: float
    total_fees_pct: float  # fee on the whole stake
    net_spread_pct: float

    # Liquidity (min across outcomes)
    max_deployable_usd: float
    capital_weighted_profit: float

    strategy: str

    arb_type = ArbType.MULTI_OUTCOME

    @property
    def identity(self) -> str:
        return self.event_key


ArbResult = Union[SingleMarketArb, CrossPlatformArb, MultiOutcomeArb]

_KIND_TO_CLASS = {
    ArbType.UNDERROUND.value: SingleMarketArb,
    ArbType.CROSS_PLATFORM.value: CrossPlatformArb,
    ArbType.MULTI_OUTCOME.value: MultiOutcomeArb,
}


def _jsonable(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def details_to_payload(arb: ArbResult) -> dict:
    """Serialize a detector result for the details column"""
    payload = _jsonable(asdict(arb))
    payload["kind"] = arb.arb_type.value
    return payload


def parse_details(payload: Optional[dict]) -> ArbResult:
    """
    Rebuild a detector result from a stored details payload.

    Raises:
        ValueError: if the payload is missing, has no known kind tag, or
            does not match the fields of its kind
    """
    if not isinstance(payload, dict):
        raise ValueError("Details payload must be a JSON object")

    kind = payload.get("kind")
    cls = _KIND_TO_CLASS.get(kind)
    if cls is None:
        raise ValueError(f"Unknown arb details kind: {kind!r}")

    data = _known_fields(cls, payload, kind)

    try:
        data["quality"] = ArbQuality(data["quality"])

        if cls is CrossPlatformArb:
            data["arb_direction"] = ArbDirection(data["arb_direction"])
            for leg in ("poly_snapshot", "kalshi_snapshot"):
                data[leg] = LegQuote(**_known_fields(LegQuote, data[leg], kind))
        elif cls is MultiOutcomeArb:
            if not isinstance(data["outcomes"], list):
                raise ValueError(f"{kind} details outcomes must be a list")
            data["outcomes"] = [
                OutcomeQuote(**_known_fields(OutcomeQuote, o, kind)) for o in data["outcomes"]
            ]

        return cls(**data)
    except TypeError as e:
        raise ValueError(f"Malformed {kind} details: {e}") from e


def _known_fields(cls, payload, kind) -> dict:
    """Keep the fields cls declares, rejecting non-objects and missing fields"""
    if not isinstance(payload, dict):
        raise ValueError(f"{kind} details: expected an object for {cls.__name__}, got {payload!r}")

    names = {f.name for f in fields(cls)}
    data = {k: v for k, v in payload.items() if k in names}
    missing = [
        f.name for f in fields(cls)
        if f.name not in data and f.default is MISSING and f.default_factory is MISSING
    ]
    if missing:
        raise ValueError(f"{kind} details missing fields: {', '.join(missing)}")
    return data
