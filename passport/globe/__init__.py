"""
passport.globe - Rotating globe controller

Public API:
    - GlobeController: Rotation state machine, pin plotting and trip fly-to over a MapSurface
    - PlotSummary: Outcome of one plotLocations call
    - Location: Photo/video location dataclass
    - RotationState: ROTATING | SUSPENDED_BY_USER | SUSPENDED_BY_TRIP
    - PinAssetLoader, PinAssetError: Bundled pin icon access
"""

from .controller import GlobeController, PlotSummary
from .location import Location
from .pinAsset import PinAssetError, PinAssetLoader
from .rotationState import RotationState

__all__ = ['GlobeController', 'PlotSummary', 'Location', 'RotationState', 'PinAssetLoader', 'PinAssetError']
