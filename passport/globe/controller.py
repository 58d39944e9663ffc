"""
GlobeController - idle-rotating globe, location pins and trip fly-to over a MapSurface.

Lifecycle:
- initialize(surface): create the annotation manager, hide chrome, start rotating, listen for gestures
- Gestures suspend rotation; it resumes after a quiet period
- flyToLocation/zoomBackOut enter and leave trip view (rotation off while viewing a trip)
- plotLocations replaces all pins

Everything runs on one asyncio loop. Surface calls are the only suspension
points, and every resumption re-checks the rotation state before touching the
camera. Surface failures are logged and absorbed; nothing here raises into the UI.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from sdk.globe import advanceLongitude, filterPlottable
from sdk.logging import getLogger
from sdk.surface import (
    AnimationOptions, AnnotationManager, CameraOptions, CameraState,
    MapSurface, Point, PointAnnotationOptions, SurfaceResult, callSurface
)
from passport.globe_config_loader import GlobeConfig
from passport.globe.pinAsset import PinAssetError, PinAssetLoader
from passport.globe.rotationState import (
    RotationState, Transition,
    onQuietPeriodElapsed, onResumeRequested, onUserGesture, onViewingTrip
)
from passport.globe.timers import TaskSlot, oneShot, periodic


@dataclass(frozen=True)
class PlotSummary:
    requested: int
    valid: int
    plotted: int = 0
    failed: int = 0
    completed: bool = False


class GlobeController:

    def __init__(self, onPlotComplete: Optional[Callable[[], None]] = None,
                 config: Optional[GlobeConfig] = None, pinAsset: Optional[PinAssetLoader] = None):
        self.log = getLogger()
        self.config = config or GlobeConfig()
        self.onPlotComplete = onPlotComplete
        self.pinAsset = pinAsset or PinAssetLoader(self.config.pinIconPath)

        # Surface handles (owned for the controller's lifetime once set)
        self._surface: Optional[MapSurface] = None
        self._annotations: Optional[AnnotationManager] = None
        self._initialized = False
        self._initializing = False
        self._shutdown = False

        # Rotation state
        self._state = RotationState.ROTATING
        self._rotationSlot = TaskSlot('globeRotation')
        self._interactionSlot = TaskSlot('globeInteraction')
        self._rotationEpoch = 0

        # Last successfully observed camera
        self._lastCameraState: Optional[CameraState] = None
        self._lastCenter: Optional[Point] = None
        self._lastZoom: Optional[float] = None
        self._previousZoomLevel = self.config.defaultPreviousZoom

        self._plotLock = asyncio.Lock()


    # ===== Read-only state =====
    @property
    def isInitialized(self) -> bool:
        return self._initialized

    @property
    def state(self) -> RotationState:
        return self._state

    @property
    def userInteracted(self) -> bool:
        return self._state.userInteracted

    @property
    def viewingTrip(self) -> bool:
        return self._state.viewingTrip

    @property
    def isRotating(self) -> bool:
        return self._rotationSlot.active

    @property
    def previousZoomLevel(self) -> float:
        return self._previousZoomLevel

    @property
    def lastCameraState(self) -> Optional[CameraState]:
        return self._lastCameraState


    # ===== Lifecycle =====
    async def initialize(self, surface: MapSurface) -> None:
        """Called once the map surface exists. Repeated calls are no-ops."""
        if self._shutdown:
            self.log.warning("GlobeController was shut down, not initializing")
            return
        if self._initialized or self._initializing:
            self.log.info("GlobeController already initialized, skipping re-initialization")
            return

        self._initializing = True
        try:
            created = await callSurface('createAnnotationManager', surface.createAnnotationManager)
        finally:
            self._initializing = False

        if not created.ok:
            self.log.error("Error creating annotation manager", error=created.errorMsg)
            return

        self._surface = surface
        self._annotations = created.value
        self._initialized = True
        self.log.info("GlobeController initialized")

        cfg = self.config
        chrome = await callSurface('setOrnaments', surface.setOrnaments,
                                   compass=cfg.showCompass, logo=cfg.showLogo, scaleBar=cfg.showScaleBar)
        if not chrome.ok:
            self.log.warning("Could not update map ornaments", error=chrome.errorMsg)

        self._startRotation()

        for operation, register in (('setOnMapMoveListener', surface.setOnMapMoveListener),
                                    ('setOnMapTapListener', surface.setOnMapTapListener)):
            registered = await callSurface(operation, register, self._handleUserInteraction)
            if not registered.ok:
                self.log.warning("Could not register interaction listener", operation=operation, error=registered.errorMsg)
        self.log.info("Map interaction listeners added")

    async def shutdown(self) -> None:
        """
        Detach from the surface and stop both timers.

        The controller is not reusable afterwards: gestures, trip transitions
        and resume requests are ignored and initialize() stays a no-op.
        """
        if self._shutdown:
            return
        self._shutdown = True
        self._rotationEpoch += 1

        if self._surface is not None:
            for operation, register in (('setOnMapMoveListener', self._surface.setOnMapMoveListener),
                                        ('setOnMapTapListener', self._surface.setOnMapTapListener)):
                removed = await callSurface(operation, register, None)
                if not removed.ok:
                    self.log.warning("Could not remove interaction listener", operation=operation, error=removed.errorMsg)

        await self._rotationSlot.drain()
        await self._interactionSlot.drain()
        self.log.info("GlobeController timers stopped")


    # ===== Rotation control =====
    def setViewingTrip(self, isViewing: bool) -> None:
        if not self._requireInitialized('setViewingTrip'):
            return
        if isViewing:
            self.log.info("Viewing trip, stopping auto-rotation")
        else:
            self.log.info("Exited trip view, resuming auto-rotation")
        self._apply(onViewingTrip(self._state, isViewing), reason='setViewingTrip')

    def resumeAutoRotation(self) -> None:
        if not self._requireInitialized('resumeAutoRotation'):
            return
        transition = onResumeRequested(self._state)
        if transition.startRotation:
            self.log.info("Resuming auto-rotation")
        self._apply(transition, reason='resumeAutoRotation')

    def _handleUserInteraction(self, point: Optional[Point] = None) -> None:
        transition = onUserGesture(self._state)
        if not transition.changed:
            return
        self.log.debug("User interaction detected, stopping rotation", state=self._state.value)
        self._apply(transition, reason='userInteraction')

    def _onQuietPeriodElapsed(self) -> None:
        self.log.debug("Quiet period elapsed", state=self._state.value)
        self._apply(onQuietPeriodElapsed(self._state), reason='quietPeriodElapsed')

    def _apply(self, transition: Transition, reason: str) -> None:
        if self._shutdown:
            self.log.debug("Controller shut down, ignoring transition", reason=reason)
            return
        previous = self._state
        self._state = transition.state

        if transition.stopRotation:
            self._stopRotation(reason)
        if transition.cancelQuietTimer:
            self._interactionSlot.cancel()
        if transition.armQuietTimer:
            self._interactionSlot.reschedule(oneShot(self.config.quietPeriodS, self._onQuietPeriodElapsed))
        if transition.startRotation:
            self._startRotation()

        if previous is not transition.state:
            self.log.info("Rotation state changed", fromState=previous.value, toState=transition.state.value, reason=reason)

    def _startRotation(self) -> None:
        if not self._initialized or self._shutdown:
            return
        if self._state is not RotationState.ROTATING:
            self.log.debug("Rotation suppressed", state=self._state.value)
            return

        self._rotationEpoch += 1
        epoch = self._rotationEpoch
        self._rotationSlot.reschedule(lambda: self._rotate(epoch))
        self.log.info("Globe rotation started")

    def _stopRotation(self, reason: str) -> None:
        # Bumping the epoch invalidates a tick that is between its camera read and write
        self._rotationEpoch += 1
        if self._rotationSlot.cancel():
            self.log.info("Globe rotation stopped", reason=reason)

    def _rotationLive(self, epoch: int) -> bool:
        return self._initialized and self._state is RotationState.ROTATING and epoch == self._rotationEpoch

    async def _rotate(self, epoch: int) -> None:
        await self._readCamera()
        if not self._rotationLive(epoch):
            return
        await periodic(self.config.tickPeriodS, lambda: self._rotationTick(epoch))()

    async def _rotationTick(self, epoch: int) -> bool:
        if not self._rotationLive(epoch):
            self.log.debug("Rotation suppressed, stopping ticks", state=self._state.value)
            return False

        await self._readCamera()
        center = self._lastCenter or Point(0.0, 0.0)
        zoom = self._lastZoom if self._lastZoom is not None else self.config.fallbackZoom
        newLongitude = advanceLongitude(center.lon, self.config.rotationStepDeg)

        # State may have changed while the camera read was suspended
        if not self._rotationLive(epoch):
            self.log.debug("Dropped rotation update", state=self._state.value)
            return False

        applied = await callSurface('setCamera', self._surface.setCamera,
                                    CameraOptions(center=Point(newLongitude, center.lat), zoom=zoom))
        if not applied.ok:
            self.log.warning("Rotation camera update failed", error=applied.errorMsg)
        return True

    async def _readCamera(self) -> None:
        """Refresh the last observed camera; on failure the previous observation stays in place."""
        read = await callSurface('getCameraState', self._surface.getCameraState)
        if not read.ok or read.value is None:
            self.log.warning("Camera state read failed, keeping last observed camera", error=read.errorMsg)
            return
        state: CameraState = read.value
        self._lastCameraState = state
        if state.center is not None:
            self._lastCenter = state.center
        if state.zoom is not None:
            self._lastZoom = state.zoom


    # ===== Pins =====
    async def plotLocations(self, locations: Iterable, onComplete: Optional[Callable[[], None]] = None) -> Optional[PlotSummary]:
        """
        Replace all pins with one per plottable location.

        onComplete (default: the constructor's onPlotComplete) runs exactly once
        after every pin was attempted, unless clearing the old pins or loading
        the icon failed.
        """
        if not self._requireInitialized('plotLocations'):
            return None

        locations = list(locations)
        callback = onComplete or self.onPlotComplete

        async with self._plotLock:
            self.log.info("Starting to plot locations", count=len(locations))

            cleared = await callSurface('deleteAll', self._annotations.deleteAll)
            if not cleared.ok:
                self.log.error("Error plotting locations: could not clear markers", error=cleared.errorMsg)
                return PlotSummary(requested=len(locations), valid=0)

            valid = filterPlottable(locations)
            if not valid:
                self.log.info("No valid locations to plot", skipped=len(locations))
                self._notifyPlotComplete(callback)
                return PlotSummary(requested=len(locations), valid=0, completed=True)

            try:
                icon = self.pinAsset.load()
            except PinAssetError as e:
                self.log.error(f"Error plotting locations: {e}", iconPath=self.pinAsset.logicalPath)
                return PlotSummary(requested=len(locations), valid=len(valid))

            plotted = failed = 0
            for loc in valid:
                created = await callSurface('createPin', self._annotations.create, PointAnnotationOptions(
                    geometry=Point(loc.longitude, loc.latitude), image=icon, iconSize=self.config.pinIconScale))
                if created.ok:
                    plotted += 1
                    self.log.debug("Plotted pin", lat=loc.latitude, lon=loc.longitude)
                else:
                    failed += 1
                    self.log.warning("Error creating marker", lat=loc.latitude, lon=loc.longitude, error=created.errorMsg)

            self.log.info("Pins plotted", plotted=plotted, failed=failed, skipped=len(locations) - len(valid))
            self._notifyPlotComplete(callback)
            return PlotSummary(requested=len(locations), valid=len(valid), plotted=plotted, failed=failed, completed=True)

    def _notifyPlotComplete(self, callback: Optional[Callable[[], None]]) -> None:
        if callback is None:
            return
        try:
            callback()
        except Exception as e:
            self.log.error(f"Plot completion callback failed: {e!r}", errorClass=type(e).__name__)


    # ===== Trip view =====
    async def flyToLocation(self, latitude: float, longitude: float) -> Optional[SurfaceResult]:
        if not self._requireInitialized('flyToLocation'):
            return None

        # Ticks are off while viewing a trip, so this is the pre-trip zoom even on trip-to-trip hops
        self._previousZoomLevel = self._lastZoom if self._lastZoom is not None else self.config.defaultPreviousZoom
        self._apply(onViewingTrip(self._state, True), reason='flyToLocation')
        self.log.info("Flying to location", lat=latitude, lon=longitude, previousZoom=self._previousZoomLevel)

        cfg = self.config
        flown = await callSurface('flyTo', self._surface.flyTo,
                                  CameraOptions(center=Point(longitude, latitude), zoom=cfg.tripZoom, pitch=cfg.tripPitch),
                                  AnimationOptions(durationMs=cfg.flyToDurationMs))
        if not flown.ok:
            self.log.error("Fly-to failed", lat=latitude, lon=longitude, error=flown.errorMsg)
        return flown

    async def zoomBackOut(self) -> Optional[SurfaceResult]:
        if not self._requireInitialized('zoomBackOut'):
            return None

        self.log.info("Zooming back out to previous zoom level", previousZoom=self._previousZoomLevel)
        self._apply(onViewingTrip(self._state, False, restart=False), reason='zoomBackOut')

        cfg = self.config
        flown = await callSurface('flyTo', self._surface.flyTo,
                                  CameraOptions(zoom=self._previousZoomLevel, pitch=cfg.zoomOutPitch),
                                  AnimationOptions(durationMs=cfg.zoomOutDurationMs))
        if not flown.ok:
            self.log.error("Zoom-out failed", error=flown.errorMsg)

        self._startRotation()
        return flown

    def _requireInitialized(self, operation: str) -> bool:
        if self._shutdown:
            self.log.warning("GlobeController was shut down", operation=operation)
            return False
        if not self._initialized:
            self.log.warning("GlobeController not initialized yet", operation=operation)
        return self._initialized
