"""
Quality classification and input guards shared by the detectors.
"""

import math
from typing import Optional

from ..config import DetectionThresholds, DEFAULT_THRESHOLDS
from ..database.models import ArbQuality

# theoretical < thin < executable
QUALITY_RANK = {
    ArbQuality.THEORETICAL: 0,
    ArbQuality.THIN: 1,
    ArbQuality.EXECUTABLE: 2,
}


def is_valid_price(price) -> bool:
    """A usable probability: a finite number strictly inside (0, 1)"""
    if isinstance(price, bool) or not isinstance(price, (int, float)):
        return False
    return math.isfinite(price) and 0 < price < 1


def is_valid_size(size) -> bool:
    """A usable book size: a finite, non-negative number"""
    if isinstance(size, bool) or not isinstance(size, (int, float)):
        return False
    return math.isfinite(size) and size >= 0


def classify_quality(
    net_spread: float,
    max_deployable: float,
    thresholds: DetectionThresholds = DEFAULT_THRESHOLDS,
) -> Optional[ArbQuality]:
    """
    Classify an opportunity by net spread and deployable capital.

    Args:
        net_spread: Net spread after fees, as a fraction
        max_deployable: Capital the thinnest leg can absorb, in USD

    Returns:
        Quality tier, or None when the spread is below the minimum
    """
    if net_spread < thresholds.min_net_spread:
        return None

    if max_deployable >= thresholds.executable_min_deploy:
        return ArbQuality.EXECUTABLE
    elif max_deployable >= thresholds.thin_min_deploy:
        return ArbQuality.THIN
    else:
        return ArbQuality.THEORETICAL
