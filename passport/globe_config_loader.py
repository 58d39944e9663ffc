"""Utility helpers for loading globe-config.json with shared fallbacks."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

import orjson

from .globe_config_defaults import DEFAULT_GLOBE_CONFIG

GlobeConfigResult = Tuple[dict, str, bool]

_SECTIONS = ('rotation', 'trip', 'pins', 'ornaments')


@dataclass(frozen=True)
class GlobeConfig:
    rotationStepDeg: float = 0.15
    tickPeriodMs: int = 100
    quietPeriodMs: int = 5000
    fallbackZoom: float = 2.0
    tripZoom: float = 8.0
    tripPitch: float = 45.0
    flyToDurationMs: int = 3000
    zoomOutDurationMs: int = 2000
    zoomOutPitch: float = 0.0
    defaultPreviousZoom: float = 1.5
    pinIconPath: str = 'assets/pin.png'
    pinIconScale: float = 0.05
    showCompass: bool = False
    showLogo: bool = False
    showScaleBar: bool = False

    @property
    def tickPeriodS(self) -> float:
        return self.tickPeriodMs / 1000.0

    @property
    def quietPeriodS(self) -> float:
        return self.quietPeriodMs / 1000.0

    @classmethod
    def fromDict(cls, config: dict) -> 'GlobeConfig':
        rotation, trip = config['rotation'], config['trip']
        pins, ornaments = config['pins'], config['ornaments']
        return cls(
            rotationStepDeg=float(rotation['stepDeg']),
            tickPeriodMs=int(rotation['tickPeriodMs']),
            quietPeriodMs=int(rotation['quietPeriodMs']),
            fallbackZoom=float(rotation['fallbackZoom']),
            tripZoom=float(trip['zoom']),
            tripPitch=float(trip['pitch']),
            flyToDurationMs=int(trip['flyToDurationMs']),
            zoomOutDurationMs=int(trip['zoomOutDurationMs']),
            zoomOutPitch=float(trip['zoomOutPitch']),
            defaultPreviousZoom=float(trip['defaultPreviousZoom']),
            pinIconPath=str(pins['iconPath']),
            pinIconScale=float(pins['iconScale']),
            showCompass=bool(ornaments['compass']),
            showLogo=bool(ornaments['logo']),
            showScaleBar=bool(ornaments['scaleBar']),
        )


def _merge_with_defaults(config: dict) -> dict:
    merged = copy.deepcopy(DEFAULT_GLOBE_CONFIG)
    for key, value in config.items():
        if key in _SECTIONS:
            if not isinstance(value, dict):
                raise ValueError(f"'{key}' section must be an object")
            merged[key].update(value)
        else:
            merged[key] = value
    return merged


def _validate_globe_config(config: dict) -> None:
    if not isinstance(config, dict):
        raise ValueError('globe-config is not a JSON object')
    rotation, trip, pins = config['rotation'], config['trip'], config['pins']
    for section, key in (('rotation', 'tickPeriodMs'), ('rotation', 'quietPeriodMs')):
        if config[section][key] <= 0:
            raise ValueError(f"'{section}.{key}' must be positive")
    for key in ('flyToDurationMs', 'zoomOutDurationMs'):
        if trip[key] < 0:
            raise ValueError(f"'trip.{key}' must not be negative")
    if not -180.0 < rotation['stepDeg'] < 180.0:
        raise ValueError("'rotation.stepDeg' must be within (-180, 180)")
    if pins['iconScale'] <= 0:
        raise ValueError("'pins.iconScale' must be positive")
    if not pins['iconPath']:
        raise ValueError("Missing 'pins.iconPath'")


def load_globe_config(path: Optional[str | Path] = None, log: Optional[object] = None) -> GlobeConfigResult:
    """Load globe-config.json over the defaults, falling back to the defaults alone on error."""
    if path is None:
        return copy.deepcopy(DEFAULT_GLOBE_CONFIG), DEFAULT_GLOBE_CONFIG['configVersion'], False

    cfg_path = Path(path)
    try:
        config = orjson.loads(cfg_path.read_bytes())
        if not isinstance(config, dict):
            raise ValueError('globe-config is not a JSON object')
        config = _merge_with_defaults(config)
        _validate_globe_config(config)
        GlobeConfig.fromDict(config)
        version = config.get('configVersion', '1.0')
        if log:
            log.info('Loaded globe-config.json', event='globeConfigLoad', component='GlobeConfig',
                     configPath=str(cfg_path), configVersion=version)
        return config, version, False
    except Exception as exc:
        if log:
            log.error('Failed to load globe-config.json', event='globeConfigLoadError', component='GlobeConfig',
                      configPath=str(cfg_path), errorClass=type(exc).__name__, errorMsg=str(exc))

        fallback = copy.deepcopy(DEFAULT_GLOBE_CONFIG)
        version = fallback.get('configVersion', 'backup')
        if log:
            log.warning('Loaded globe-config defaults', event='globeConfigBackupLoad',
                        component='GlobeConfig', configVersion=version)
        return fallback, version, True
