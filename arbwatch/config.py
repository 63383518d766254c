"""
Configuration for Arb Watch.

Tunables live in dataclasses with defaults that match the values already
stored in existing databases. A YAML file and environment variables can
override them at startup.
"""

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from loguru import logger


@dataclass(frozen=True)
class DetectionThresholds:
    """Spread and liquidity thresholds shared by every detector"""
    min_gross_spread: float = 0.005  # 0.5% minimum gross before fees
    min_net_spread: float = 0.02  # 2% minimum net for any quality
    executable_min_deploy: float = 1000.0  # $1,000+
    thin_min_deploy: float = 100.0  # $100-$999


@dataclass(frozen=True)
class VolumeSpikeConfig:
    """Volume spike trigger parameters"""
    spike_multiplier: float = 2.0  # current / baseline mean
    min_volume_usd: float = 1000.0  # ignore illiquid markets
    min_buckets: int = 3  # hourly buckets, including the current one
    lookback_hours: int = 24  # buckets older than this are ignored


DEFAULT_THRESHOLDS = DetectionThresholds()
DEFAULT_VOLUME_CONFIG = VolumeSpikeConfig()

DEFAULT_CONFIG = {
    'database': {
        'path': 'arbwatch.db'
    },
    'detection': {
        'min_gross_spread': DEFAULT_THRESHOLDS.min_gross_spread,
        'min_net_spread': DEFAULT_THRESHOLDS.min_net_spread,
        'executable_min_deploy': DEFAULT_THRESHOLDS.executable_min_deploy,
        'thin_min_deploy': DEFAULT_THRESHOLDS.thin_min_deploy,
    },
    'tracking': {
        'stale_minutes': 10
    },
    'volume': {
        'spike_multiplier': DEFAULT_VOLUME_CONFIG.spike_multiplier,
        'min_volume_usd': DEFAULT_VOLUME_CONFIG.min_volume_usd,
        'min_buckets': DEFAULT_VOLUME_CONFIG.min_buckets,
        'lookback_hours': DEFAULT_VOLUME_CONFIG.lookback_hours,
    },
    'logging': {
        'level': 'INFO'
    }
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _apply_env_overrides(config: dict) -> dict:
    """Apply environment variable overrides to config"""
    if os.getenv('ARBWATCH_DB_PATH'):
        config['database']['path'] = os.getenv('ARBWATCH_DB_PATH')

    if os.getenv('ARBWATCH_STALE_MINUTES'):
        config['tracking']['stale_minutes'] = int(os.getenv('ARBWATCH_STALE_MINUTES'))

    if os.getenv('ARBWATCH_MIN_NET_SPREAD'):
        config['detection']['min_net_spread'] = float(os.getenv('ARBWATCH_MIN_NET_SPREAD'))

    if os.getenv('ARBWATCH_LOG_LEVEL'):
        config['logging']['level'] = os.getenv('ARBWATCH_LOG_LEVEL')

    return config


def load_config(config_path: Optional[str] = "config.yaml") -> dict:
    """
    Load configuration from YAML, falling back to defaults.

    Args:
        config_path: Path to YAML config file (missing file is not an error)

    Returns:
        Config dict with every section present
    """
    load_dotenv()

    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path:
        config_file = Path(config_path)
        if config_file.exists():
            with open(config_file) as f:
                config = _merge(config, yaml.safe_load(f) or {})
        else:
            logger.warning(f"Config file not found: {config_path}, using defaults")

    return _apply_env_overrides(config)


def thresholds_from_config(config: dict) -> DetectionThresholds:
    detection = config.get('detection', {})
    return DetectionThresholds(
        min_gross_spread=float(detection.get('min_gross_spread', DEFAULT_THRESHOLDS.min_gross_spread)),
        min_net_spread=float(detection.get('min_net_spread', DEFAULT_THRESHOLDS.min_net_spread)),
        executable_min_deploy=float(detection.get('executable_min_deploy', DEFAULT_THRESHOLDS.executable_min_deploy)),
        thin_min_deploy=float(detection.get('thin_min_deploy', DEFAULT_THRESHOLDS.thin_min_deploy)),
    )


def volume_config_from_config(config: dict) -> VolumeSpikeConfig:
    volume = config.get('volume', {})
    return VolumeSpikeConfig(
        spike_multiplier=float(volume.get('spike_multiplier', DEFAULT_VOLUME_CONFIG.spike_multiplier)),
        min_volume_usd=float(volume.get('min_volume_usd', DEFAULT_VOLUME_CONFIG.min_volume_usd)),
        min_buckets=int(volume.get('min_buckets', DEFAULT_VOLUME_CONFIG.min_buckets)),
        lookback_hours=int(volume.get('lookback_hours', DEFAULT_VOLUME_CONFIG.lookback_hours)),
    )
