"""
Shared test fixtures for the Arb Watch test suite.
All tests run offline with in-memory SQLite and a controllable clock.
"""

import pytest
from datetime import datetime, timedelta

from arbwatch.database.db import Database
from arbwatch.fees.provider import FeeProvider, PlatformFees
from arbwatch.arbitrage.types import PriceSnapshot, OutcomeQuote


@pytest.fixture
async def db():
    """
    Create an in-memory async SQLite database for testing.
    Each test gets a completely fresh database.
    """
    database = Database(":memory:")
    await database.initialize()

    yield database

    await database.close()


@pytest.fixture
async def file_db(tmp_path):
    """File-backed database, for tests that need separate connections"""
    database = Database(str(tmp_path / "arbwatch.db"))
    await database.initialize()

    yield database

    await database.close()


class FakeClock:
    """Naive-UTC clock that only moves when told to"""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 0, minutes: float = 0):
        self.now = self.now + timedelta(seconds=seconds, minutes=minutes)


@pytest.fixture
def clock():
    return FakeClock(datetime(2025, 1, 15, 14, 30, 0))


@pytest.fixture
def flat_fees():
    """2% taker fee on both venues, nothing else"""
    return FeeProvider(fees=[
        PlatformFees(platform="polymarket", taker_fee_pct=0.02),
        PlatformFees(platform="kalshi", taker_fee_pct=0.02),
    ])


@pytest.fixture
def zero_fees():
    return FeeProvider(fees=[
        PlatformFees(platform="polymarket", taker_fee_pct=0.0),
        PlatformFees(platform="kalshi", taker_fee_pct=0.0),
    ])


@pytest.fixture
def make_snapshot():
    """Factory for PriceSnapshot instances with deep books by default."""
    _counter = [0]

    def _factory(**overrides):
        _counter[0] += 1
        defaults = {
            "market_id": _counter[0],
            "platform": "polymarket",
            "yes_bid": 0.47,
            "no_bid": 0.47,
            "yes_ask": 0.49,
            "no_ask": 0.49,
            "yes_bid_size": 1500.0,
            "no_bid_size": 1500.0,
            "yes_ask_size": 1500.0,
            "no_ask_size": 1500.0,
            "volume_24h": 50000.0,
        }
        defaults.update(overrides)
        return PriceSnapshot(**defaults)

    return _factory


@pytest.fixture
def make_outcomes():
    """Factory for a list of OutcomeQuote from ask prices."""
    def _factory(asks, size=1500.0, sizes=None):
        return [
            OutcomeQuote(
                market_id=100 + i,
                title=f"Outcome {i}",
                yes_ask=ask,
                ask_size=sizes[i] if sizes else size,
            )
            for i, ask in enumerate(asks)
        ]

    return _factory
