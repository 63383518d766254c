"""
Arb Watch - fee-adjusted arbitrage detection for Polymarket and Kalshi.
"""

__version__ = "0.1.0"
