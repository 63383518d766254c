from .spikes import (
    VolumeStats, VolumeSpike, MarketVolume, VolumeSpikeDetector,
    compute_volume_stats, detect_volume_spike,
)

__all__ = [
    "VolumeStats", "VolumeSpike", "MarketVolume", "VolumeSpikeDetector",
    "compute_volume_stats", "detect_volume_spike",
]
