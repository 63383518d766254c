from .models import (
    ArbOpportunity, PlatformConfig, PlatformFeeHistory, VolumeAlert,
    ArbType, ArbQuality, utcnow
)
from .db import Database, init_db

__all__ = [
    'ArbOpportunity', 'PlatformConfig', 'PlatformFeeHistory', 'VolumeAlert',
    'ArbType', 'ArbQuality', 'utcnow',
    'Database', 'init_db'
]
