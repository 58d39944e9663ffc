"""
MapSurface: Abstract contract for the map-rendering surface the globe controller drives.

Camera read/write, animated fly-to, ornament (chrome) toggles, pointer-move/tap
listeners, and an annotation sub-manager for point markers. Methods may be
implemented sync or async; callers go through sdk.surface.result.callSurface.
"""


# Imports
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional, Union


@dataclass(frozen=True)
class Point:
    """Geographic point in degrees (GeoJSON order: lon, lat)."""
    lon: float
    lat: float

    def toDict(self) -> dict:
        return {"type": "Point", "coordinates": [self.lon, self.lat]}


@dataclass(frozen=True)
class CameraState:
    """Read-only snapshot of the surface viewpoint."""
    center: Optional[Point] = None
    zoom: Optional[float] = None
    pitch: float = 0.0


@dataclass(frozen=True)
class CameraOptions:
    """Partial camera update - None fields are left unchanged by the surface."""
    center: Optional[Point] = None
    zoom: Optional[float] = None
    pitch: Optional[float] = None

    def toDict(self) -> dict:
        return {"center": self.center.toDict() if self.center else None, "zoom": self.zoom, "pitch": self.pitch}


@dataclass(frozen=True)
class AnimationOptions:
    durationMs: int
    startDelayMs: int = 0


@dataclass(frozen=True)
class PointAnnotationOptions:
    """Marker request: icon image bytes drawn at geometry, scaled by iconSize."""
    geometry: Point
    image: bytes = field(repr=False)
    iconSize: float = 1.0


SurfaceReturn = Union[Any, Awaitable[Any]]
InteractionListener = Callable[[Point], None]


class AnnotationManager(ABC):
    """Surface-provided handle for creating/removing point markers."""

    @abstractmethod
    def create(self, options: PointAnnotationOptions) -> SurfaceReturn:
        pass

    @abstractmethod
    def deleteAll(self) -> SurfaceReturn:
        pass


class MapSurface(ABC):
    """
    Rendering surface consumed by GlobeController.

    Implementations own the viewpoint; the controller only reads snapshots
    and requests changes."""


    # ===== Annotations =====
    @abstractmethod
    def createAnnotationManager(self) -> SurfaceReturn:
        pass


    # ===== Camera =====
    @abstractmethod
    def getCameraState(self) -> SurfaceReturn:
        pass

    @abstractmethod
    def setCamera(self, camera: CameraOptions) -> SurfaceReturn:
        pass

    @abstractmethod
    def flyTo(self, camera: CameraOptions, animation: AnimationOptions) -> SurfaceReturn:
        pass


    # ===== Chrome =====
    @abstractmethod
    def setOrnaments(self, compass: bool, logo: bool, scaleBar: bool) -> SurfaceReturn:
        pass


    # ===== Interaction =====
    @abstractmethod
    def setOnMapMoveListener(self, listener: Optional[InteractionListener]) -> None:
        pass

    @abstractmethod
    def setOnMapTapListener(self, listener: Optional[InteractionListener]) -> None:
        pass
