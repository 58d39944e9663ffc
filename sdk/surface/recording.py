"""
RecordingSurface: In-memory MapSurface for headless runs and tests.

- Holds a camera snapshot and applies setCamera/flyTo to it
- Records every command (with monotonic timestamp) for inspection or export
- Simulates per-operation latency (asyncio suspension points)
- Injects failures per operation name for degraded-path testing
- Emits synthetic pointer-move/tap gestures to the registered listeners
"""

# Imports
import asyncio, time
import orjson
from collections import Counter
from dataclasses import replace
from typing import Callable, Dict, List, Optional

from sdk.logging import getLogger
from sdk.surface.base import (
    AnimationOptions, AnnotationManager, CameraOptions, CameraState,
    InteractionListener, MapSurface, Point, PointAnnotationOptions
)


class SurfaceCallError(RuntimeError):
    """Injected failure raised by RecordingSurface."""


class RecordingAnnotationManager(AnnotationManager):

    def __init__(self, surface: 'RecordingSurface'):
        self.surface = surface
        self.pins: List[PointAnnotationOptions] = []
        self._rejectWhen: Optional[Callable[[PointAnnotationOptions], bool]] = None

    def rejectWhen(self, predicate: Optional[Callable[[PointAnnotationOptions], bool]]):
        """Fail create() for every request matching predicate (None clears)."""
        self._rejectWhen = predicate

    async def create(self, options: PointAnnotationOptions) -> PointAnnotationOptions:
        await self.surface._enter('annotation.create', geometry=options.geometry.toDict(), iconSize=options.iconSize)
        if self._rejectWhen is not None and self._rejectWhen(options):
            raise SurfaceCallError(f"annotation rejected at {options.geometry}")
        self.pins.append(options)
        return options

    async def deleteAll(self) -> int:
        await self.surface._enter('annotation.deleteAll')
        removed = len(self.pins)
        self.pins.clear()
        return removed


class RecordingSurface(MapSurface):

    def __init__(self, camera: Optional[CameraState] = None, latencyS: Optional[Dict[str, float]] = None):
        self.log = getLogger()
        self.camera = camera or CameraState(center=Point(0.0, 0.0), zoom=1.5, pitch=0.0)
        self.latencyS: Dict[str, float] = dict(latencyS or {})
        self.commands: List[dict] = []
        self.callCounts: Counter = Counter()
        self.ornaments: Dict[str, bool] = {'compass': True, 'logo': True, 'scaleBar': True}
        self.annotationManager: Optional[RecordingAnnotationManager] = None
        self.moveListener: Optional[InteractionListener] = None
        self.tapListener: Optional[InteractionListener] = None
        self._failures: Dict[str, int] = {}
        self._startedAt = time.monotonic()


    # ===== Test/demo controls =====
    def failNext(self, operation: str, times: int = 1):
        """Make the next `times` calls of operation raise SurfaceCallError."""
        self._failures[operation] = self._failures.get(operation, 0) + times

    def emitMove(self, point: Point = Point(0.0, 0.0)):
        if self.moveListener:
            self.moveListener(point)

    def emitTap(self, point: Point = Point(0.0, 0.0)):
        if self.tapListener:
            self.tapListener(point)

    def commandsFor(self, operation: str) -> List[dict]:
        return [c for c in self.commands if c['op'] == operation]

    def exportCommands(self) -> bytes:
        return orjson.dumps(self.commands, option=orjson.OPT_INDENT_2)


    # ===== MapSurface =====
    async def createAnnotationManager(self) -> RecordingAnnotationManager:
        await self._enter('createAnnotationManager')
        if self.annotationManager is None:
            self.annotationManager = RecordingAnnotationManager(self)
        return self.annotationManager

    async def getCameraState(self) -> CameraState:
        await self._enter('getCameraState', record=False)
        return self.camera

    async def setCamera(self, camera: CameraOptions) -> None:
        await self._enter('setCamera', camera=camera.toDict())
        self._apply(camera)

    async def flyTo(self, camera: CameraOptions, animation: AnimationOptions) -> None:
        await self._enter('flyTo', camera=camera.toDict(), durationMs=animation.durationMs)
        self._apply(camera)

    async def setOrnaments(self, compass: bool, logo: bool, scaleBar: bool) -> None:
        await self._enter('setOrnaments', compass=compass, logo=logo, scaleBar=scaleBar)
        self.ornaments = {'compass': compass, 'logo': logo, 'scaleBar': scaleBar}

    def setOnMapMoveListener(self, listener: Optional[InteractionListener]) -> None:
        self.callCounts['setOnMapMoveListener'] += 1
        self.moveListener = listener

    def setOnMapTapListener(self, listener: Optional[InteractionListener]) -> None:
        self.callCounts['setOnMapTapListener'] += 1
        self.tapListener = listener


    # ===== Internals =====
    async def _enter(self, operation: str, record: bool = True, **fields):
        """Count the call, wait its latency, then raise an injected failure or record it."""
        self.callCounts[operation] += 1
        latency = self.latencyS.get(operation, 0.0)
        if latency:
            await asyncio.sleep(latency)
        if self._failures.get(operation, 0) > 0:
            self._failures[operation] -= 1
            self.log.debug("Injected surface failure", operation=operation)
            raise SurfaceCallError(f"{operation} failed")
        if record:
            self.commands.append({'op': operation, 't': round(time.monotonic() - self._startedAt, 4), **fields})

    def _apply(self, camera: CameraOptions):
        updates = {k: v for k, v in (('center', camera.center), ('zoom', camera.zoom), ('pitch', camera.pitch)) if v is not None}
        self.camera = replace(self.camera, **updates)
