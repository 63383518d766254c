from .provider import FeeProvider, PlatformFees, FeeChange, DEFAULT_FEES, FALLBACK_FEE

__all__ = ["FeeProvider", "PlatformFees", "FeeChange", "DEFAULT_FEES", "FALLBACK_FEE"]
