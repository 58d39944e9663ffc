"""
GlobeController Tests: initialization, idle rotation, gestures, trip view, pins

Tests:
1. initialize is idempotent and degrades on surface failure
2. Rotation ticks advance longitude, wrap, and fall back to the last observed camera
3. Gestures suspend rotation; quiet timer resumes it and is debounced
4. Trip view suppresses rotation, including ticks already in flight
5. flyToLocation / zoomBackOut camera transitions and zoom restore
6. plotLocations replaces pins, skips invalid locations and failed pins, calls back once
7. shutdown detaches the gesture listeners and ignores late transitions
"""

import pytest
import asyncio
from contextlib import asynccontextmanager
from unittest.mock import MagicMock

from passport.globe import GlobeController, Location, PinAssetLoader, RotationState
from passport.globe_config_loader import GlobeConfig
from sdk.surface import CameraState, Point, RecordingSurface


FAST = GlobeConfig(tickPeriodMs=10, quietPeriodMs=200)


async def waitFor(predicate, timeout: float = 2.0):
    """Poll predicate on the event loop until true or timeout"""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.002)


@asynccontextmanager
async def running(controller, surface):
    """Initialize controller on surface and stop its timers afterwards"""
    await controller.initialize(surface)
    try:
        yield controller
    finally:
        await controller.shutdown()


def cameraUpdates(surface):
    return surface.commandsFor('setCamera')


class TestInitialization:

    @pytest.mark.asyncio
    async def test_initialize_sets_up_surface_once(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await controller.initialize(surface)

            assert controller.isInitialized
            assert surface.callCounts['createAnnotationManager'] == 1
            assert surface.callCounts['setOnMapMoveListener'] == 1
            assert surface.callCounts['setOnMapTapListener'] == 1
            assert surface.ornaments == {'compass': False, 'logo': False, 'scaleBar': False}

    @pytest.mark.asyncio
    async def test_concurrent_initialize_creates_one_manager(self):
        surface = RecordingSurface(latencyS={'createAnnotationManager': 0.02})
        controller = GlobeController(config=FAST)

        await asyncio.gather(controller.initialize(surface), controller.initialize(surface))
        try:
            assert controller.isInitialized
            assert surface.callCounts['createAnnotationManager'] == 1
        finally:
            await controller.shutdown()

    @pytest.mark.asyncio
    async def test_manager_failure_leaves_controller_uninitialized(self):
        surface = RecordingSurface()
        surface.failNext('createAnnotationManager')
        controller = GlobeController(config=FAST)

        await controller.initialize(surface)

        assert not controller.isInitialized
        assert surface.moveListener is None
        assert await controller.plotLocations([Location(1.0, 2.0)]) is None

        # A later call may retry
        async with running(controller, surface):
            assert controller.isInitialized

    @pytest.mark.asyncio
    async def test_operations_before_initialize_are_noops(self):
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        assert await controller.plotLocations([Location(1.0, 2.0)]) is None
        assert await controller.flyToLocation(10.0, 20.0) is None
        assert await controller.zoomBackOut() is None
        controller.setViewingTrip(True)
        controller.resumeAutoRotation()

        callback.assert_not_called()
        assert controller.state is RotationState.ROTATING
        assert not controller.isRotating

    @pytest.mark.asyncio
    async def test_ornament_failure_does_not_block_initialization(self):
        surface = RecordingSurface()
        surface.failNext('setOrnaments')
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            assert controller.isInitialized
            assert surface.moveListener is not None
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)


class TestShutdown:

    @pytest.mark.asyncio
    async def test_shutdown_removes_listeners(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            assert surface.moveListener is not None

        assert surface.moveListener is None
        assert surface.tapListener is None
        assert not controller.isRotating

    @pytest.mark.asyncio
    async def test_late_gesture_does_not_restart_rotation(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=30))

        async with running(controller, surface):
            listener = surface.moveListener
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)

        # A gesture already dispatched by the surface when the controller shut down
        listener(Point(1.0, 1.0))
        stoppedAt = len(cameraUpdates(surface))
        await asyncio.sleep(0.1)

        assert controller.state is RotationState.ROTATING
        assert not controller.isRotating
        assert len(cameraUpdates(surface)) == stoppedAt

    @pytest.mark.asyncio
    async def test_operations_after_shutdown_are_noops(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            pass
        flyTos = len(surface.commandsFor('flyTo'))

        assert await controller.flyToLocation(10.0, 20.0) is None
        controller.resumeAutoRotation()
        await controller.initialize(surface)

        assert len(surface.commandsFor('flyTo')) == flyTos
        assert surface.callCounts['createAnnotationManager'] == 1
        assert not controller.isRotating


class TestRotation:

    @pytest.mark.asyncio
    async def test_ticks_advance_longitude_keeping_lat_and_zoom(self):
        surface = RecordingSurface(camera=CameraState(center=Point(10.0, 35.0), zoom=1.8))
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 3)

        lons = [c['camera']['center']['coordinates'][0] for c in cameraUpdates(surface)[:3]]
        assert lons == pytest.approx([10.15, 10.30, 10.45])
        for command in cameraUpdates(surface):
            assert command['camera']['center']['coordinates'][1] == 35.0
            assert command['camera']['zoom'] == 1.8

    @pytest.mark.asyncio
    async def test_longitude_wraps_past_antimeridian(self):
        surface = RecordingSurface(camera=CameraState(center=Point(179.95, 0.0), zoom=1.5))
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 2)

        lons = [c['camera']['center']['coordinates'][0] for c in cameraUpdates(surface)[:2]]
        assert lons == pytest.approx([-179.9, -179.75])
        assert all(-180.0 < lon <= 180.0 for lon in lons)

    @pytest.mark.asyncio
    async def test_failed_camera_read_falls_back_to_last_observed(self):
        surface = RecordingSurface(camera=CameraState(center=Point(40.0, 5.0), zoom=3.0))
        # Initial read and first tick read both fail: nothing observed yet
        surface.failNext('getCameraState', times=2)
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 2)

        first, second = cameraUpdates(surface)[:2]
        assert first['camera']['center']['coordinates'] == pytest.approx([0.15, 0.0])
        assert first['camera']['zoom'] == FAST.fallbackZoom
        assert second['camera']['center']['coordinates'] == pytest.approx([0.30, 0.0])

    @pytest.mark.asyncio
    async def test_failed_read_mid_rotation_keeps_rotating(self):
        surface = RecordingSurface(camera=CameraState(center=Point(0.0, 0.0), zoom=1.5))
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 2)
            surface.failNext('getCameraState', times=3)
            before = len(cameraUpdates(surface))
            await waitFor(lambda: len(cameraUpdates(surface)) >= before + 4)
            assert controller.isRotating

    @pytest.mark.asyncio
    async def test_failed_camera_write_keeps_rotating(self):
        surface = RecordingSurface()
        surface.failNext('setCamera', times=2)
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 2)
            assert surface.callCounts['setCamera'] >= 4

    @pytest.mark.asyncio
    async def test_tick_rate_holds_with_slow_surface(self):
        surface = RecordingSurface(latencyS={'getCameraState': 0.03, 'setCamera': 0.01})
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=50))

        async with running(controller, surface):
            await asyncio.sleep(1.0)

        # About 19 ticks on a 50ms schedule; about 11 if latency stretched the period
        assert len(cameraUpdates(surface)) >= 15


class TestUserInteraction:

    @pytest.mark.asyncio
    async def test_gesture_stops_rotation_immediately(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=10_000))

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 2)

            surface.emitMove(Point(3.0, 4.0))
            stoppedAt = len(cameraUpdates(surface))

            assert controller.state is RotationState.SUSPENDED_BY_USER
            assert controller.userInteracted
            assert not controller.isRotating

            await asyncio.sleep(0.08)
            assert len(cameraUpdates(surface)) == stoppedAt

    @pytest.mark.asyncio
    async def test_rotation_resumes_after_quiet_period(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=60))

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)
            surface.emitTap()
            stoppedAt = len(cameraUpdates(surface))

            await waitFor(lambda: controller.state is RotationState.ROTATING)
            await waitFor(lambda: len(cameraUpdates(surface)) > stoppedAt)
            assert controller.isRotating

    @pytest.mark.asyncio
    async def test_second_gesture_resets_quiet_timer(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=200))

        async with running(controller, surface):
            surface.emitMove()
            await asyncio.sleep(0.12)
            surface.emitMove()

            # The first gesture's timer would have fired at 200ms
            await asyncio.sleep(0.13)
            assert controller.state is RotationState.SUSPENDED_BY_USER
            assert not controller.isRotating

            await waitFor(lambda: controller.state is RotationState.ROTATING)

    @pytest.mark.asyncio
    async def test_gesture_ignored_while_viewing_trip(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            controller.setViewingTrip(True)
            surface.emitMove()

            assert controller.state is RotationState.SUSPENDED_BY_TRIP
            assert not controller.userInteracted


class TestTripView:

    @pytest.mark.asyncio
    async def test_entering_trip_view_drops_tick_in_flight(self):
        surface = RecordingSurface(latencyS={'getCameraState': 0.03})
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            # Initial read plus the first tick's read, still suspended
            await waitFor(lambda: surface.callCounts['getCameraState'] >= 2)
            before = len(cameraUpdates(surface))

            controller.setViewingTrip(True)
            await asyncio.sleep(0.1)

            assert len(cameraUpdates(surface)) == before
            assert controller.viewingTrip
            assert not controller.isRotating

    @pytest.mark.asyncio
    async def test_entering_trip_view_drops_camera_write_in_flight(self):
        surface = RecordingSurface(latencyS={'setCamera': 0.03})
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: surface.callCounts['setCamera'] >= 1)
            controller.setViewingTrip(True)
            await asyncio.sleep(0.1)

            assert cameraUpdates(surface) == []

    @pytest.mark.asyncio
    async def test_state_change_during_camera_read_is_rechecked(self):
        controller = GlobeController(config=FAST)

        class TripEnteringSurface(RecordingSurface):
            """Enters trip view from inside the rotation task's own camera read"""
            trigger = False

            async def getCameraState(self):
                state = await super().getCameraState()
                if self.trigger:
                    controller.setViewingTrip(True)
                return state

        surface = TripEnteringSurface()
        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)
            surface.trigger = True
            before = len(cameraUpdates(surface))
            await waitFor(lambda: controller.viewingTrip)
            await asyncio.sleep(0.05)

            assert len(cameraUpdates(surface)) == before

    @pytest.mark.asyncio
    async def test_leaving_trip_view_resumes_without_quiet_period(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=10_000))

        async with running(controller, surface):
            controller.setViewingTrip(True)
            stoppedAt = len(cameraUpdates(surface))

            controller.setViewingTrip(False)
            assert controller.state is RotationState.ROTATING
            await waitFor(lambda: len(cameraUpdates(surface)) >= stoppedAt + 2, timeout=1.0)

    @pytest.mark.asyncio
    async def test_trip_view_cancels_pending_quiet_timer(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=40))

        async with running(controller, surface):
            surface.emitMove()
            controller.setViewingTrip(True)
            await asyncio.sleep(0.1)

            assert controller.state is RotationState.SUSPENDED_BY_TRIP
            assert not controller.isRotating

            controller.setViewingTrip(False)
            assert controller.state is RotationState.ROTATING
            assert controller.isRotating

    @pytest.mark.asyncio
    async def test_resume_ignored_while_suspended(self):
        surface = RecordingSurface()
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=10_000))

        async with running(controller, surface):
            surface.emitMove()
            controller.resumeAutoRotation()
            assert not controller.isRotating

    @pytest.mark.asyncio
    async def test_fly_to_location_camera_transition(self):
        surface = RecordingSurface(camera=CameraState(center=Point(0.0, 0.0), zoom=2.5))
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)
            result = await controller.flyToLocation(48.85, 2.35)

            assert result.ok
            assert controller.viewingTrip
            assert not controller.isRotating
            assert controller.previousZoomLevel == 2.5

            flyTo = surface.commandsFor('flyTo')[-1]
            assert flyTo['camera']['center']['coordinates'] == [2.35, 48.85]
            assert flyTo['camera']['zoom'] == 8.0
            assert flyTo['camera']['pitch'] == 45.0
            assert flyTo['durationMs'] == 3000

    @pytest.mark.asyncio
    async def test_zoom_back_out_restores_pre_trip_zoom(self):
        surface = RecordingSurface(camera=CameraState(center=Point(0.0, 0.0), zoom=2.5),
                                   latencyS={'flyTo': 0.03})
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)

            flying = asyncio.create_task(controller.flyToLocation(-33.9, 151.2))
            await asyncio.sleep(0)
            await controller.zoomBackOut()
            await flying

            zoomOut = [c for c in surface.commandsFor('flyTo') if c['durationMs'] == 2000]
            assert len(zoomOut) == 1
            assert zoomOut[0]['camera']['zoom'] == 2.5
            assert zoomOut[0]['camera']['pitch'] == 0.0
            assert zoomOut[0]['camera']['center'] is None

    @pytest.mark.asyncio
    async def test_trip_to_trip_keeps_original_zoom(self):
        surface = RecordingSurface(camera=CameraState(center=Point(0.0, 0.0), zoom=2.2))
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await waitFor(lambda: len(cameraUpdates(surface)) >= 1)
            await controller.flyToLocation(10.0, 10.0)
            await controller.flyToLocation(20.0, 20.0)

            assert controller.previousZoomLevel == 2.2

    @pytest.mark.asyncio
    async def test_default_previous_zoom_when_nothing_observed(self):
        surface = RecordingSurface()
        surface.failNext('getCameraState', times=1000)
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await controller.flyToLocation(10.0, 10.0)
            await controller.zoomBackOut()

            assert surface.commandsFor('flyTo')[-1]['camera']['zoom'] == 1.5

    @pytest.mark.asyncio
    async def test_zoom_back_out_restarts_rotation(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await controller.flyToLocation(10.0, 10.0)
            stoppedAt = len(cameraUpdates(surface))

            await controller.zoomBackOut()

            assert controller.state is RotationState.ROTATING
            await waitFor(lambda: len(cameraUpdates(surface)) > stoppedAt)

    @pytest.mark.asyncio
    async def test_gesture_during_zoom_out_keeps_user_suspension(self):
        surface = RecordingSurface(latencyS={'flyTo': 0.03})
        controller = GlobeController(config=GlobeConfig(tickPeriodMs=10, quietPeriodMs=10_000))

        async with running(controller, surface):
            await controller.flyToLocation(10.0, 10.0)
            zooming = asyncio.create_task(controller.zoomBackOut())
            await asyncio.sleep(0.005)
            surface.emitTap()
            await zooming

            assert controller.state is RotationState.SUSPENDED_BY_USER
            assert not controller.isRotating

    @pytest.mark.asyncio
    async def test_fly_to_failure_still_enters_trip_view(self):
        surface = RecordingSurface()
        surface.failNext('flyTo')
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            result = await controller.flyToLocation(10.0, 10.0)

            assert not result.ok
            assert controller.viewingTrip


class TestPlotLocations:

    @pytest.mark.asyncio
    async def test_empty_list_still_calls_back(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        async with running(controller, surface):
            summary = await controller.plotLocations([])

        callback.assert_called_once_with()
        assert summary.completed and summary.plotted == 0
        assert surface.callCounts['annotation.deleteAll'] == 1
        assert surface.callCounts['annotation.create'] == 0

    @pytest.mark.asyncio
    async def test_unset_location_only_still_calls_back(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        async with running(controller, surface):
            summary = await controller.plotLocations([Location(0.0, 0.0)])

        callback.assert_called_once_with()
        assert summary.valid == 0
        assert surface.annotationManager.pins == []

    @pytest.mark.asyncio
    async def test_valid_and_invalid_mix(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)
        locations = [
            Location(48.85, 2.35),
            Location(0.0, 0.0),
            Location(0.0, 32.5),          # equator, still valid
            Location(float('nan'), 1.0),
            Location(-33.9, 151.2),
        ]

        async with running(controller, surface):
            summary = await controller.plotLocations(locations)

        callback.assert_called_once_with()
        assert summary.requested == 5
        assert summary.valid == 3
        assert summary.plotted == 3
        pins = surface.annotationManager.pins
        assert [(p.geometry.lon, p.geometry.lat) for p in pins] == [(2.35, 48.85), (32.5, 0.0), (151.2, -33.9)]
        assert all(p.iconSize == 0.05 for p in pins)
        assert all(p.image.startswith(b'\x89PNG') for p in pins)

    @pytest.mark.asyncio
    async def test_failed_pin_is_skipped(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        async with running(controller, surface):
            surface.annotationManager.rejectWhen(lambda options: options.geometry.lat == 2.0)
            summary = await controller.plotLocations([Location(1.0, 1.0), Location(2.0, 2.0), Location(3.0, 3.0)])

        callback.assert_called_once_with()
        assert summary.plotted == 2
        assert summary.failed == 1
        assert [p.geometry.lat for p in surface.annotationManager.pins] == [1.0, 3.0]

    @pytest.mark.asyncio
    async def test_all_pins_failing_still_calls_back(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        async with running(controller, surface):
            surface.annotationManager.rejectWhen(lambda options: True)
            summary = await controller.plotLocations([Location(1.0, 1.0), Location(2.0, 2.0)])

        callback.assert_called_once_with()
        assert summary.completed
        assert summary.failed == 2

    @pytest.mark.asyncio
    async def test_plot_replaces_existing_pins(self):
        surface = RecordingSurface()
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await controller.plotLocations([Location(1.0, 1.0), Location(2.0, 2.0)])
            await controller.plotLocations([Location(5.0, 5.0)])

        assert [p.geometry.lat for p in surface.annotationManager.pins] == [5.0]

    @pytest.mark.asyncio
    async def test_clear_failure_skips_callback(self):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST)

        async with running(controller, surface):
            surface.failNext('annotation.deleteAll')
            summary = await controller.plotLocations([Location(1.0, 1.0)])

        callback.assert_not_called()
        assert not summary.completed
        assert surface.callCounts['annotation.create'] == 0

    @pytest.mark.asyncio
    async def test_asset_failure_skips_callback(self, tmp_path):
        surface = RecordingSurface()
        callback = MagicMock()
        controller = GlobeController(onPlotComplete=callback, config=FAST,
                                     pinAsset=PinAssetLoader('missing.png', root=tmp_path))

        async with running(controller, surface):
            summary = await controller.plotLocations([Location(1.0, 1.0)])

        callback.assert_not_called()
        assert not summary.completed
        assert surface.callCounts['annotation.deleteAll'] == 1
        assert surface.callCounts['annotation.create'] == 0

    @pytest.mark.asyncio
    async def test_per_call_callback_overrides_default(self):
        surface = RecordingSurface()
        default, override = MagicMock(), MagicMock()
        controller = GlobeController(onPlotComplete=default, config=FAST)

        async with running(controller, surface):
            await controller.plotLocations([Location(1.0, 1.0)], onComplete=override)

        override.assert_called_once_with()
        default.assert_not_called()

    @pytest.mark.asyncio
    async def test_callback_error_is_contained(self):
        surface = RecordingSurface()
        controller = GlobeController(onPlotComplete=MagicMock(side_effect=RuntimeError("ui gone")), config=FAST)

        async with running(controller, surface):
            summary = await controller.plotLocations([Location(1.0, 1.0)])

        assert summary.completed
        assert summary.plotted == 1

    @pytest.mark.asyncio
    async def test_concurrent_plots_do_not_interleave(self):
        surface = RecordingSurface(latencyS={'annotation.create': 0.005})
        controller = GlobeController(config=FAST)

        async with running(controller, surface):
            await asyncio.gather(
                controller.plotLocations([Location(1.0, 1.0), Location(2.0, 2.0), Location(3.0, 3.0)]),
                controller.plotLocations([Location(7.0, 7.0), Location(8.0, 8.0)]),
            )

        assert [p.geometry.lat for p in surface.annotationManager.pins] == [7.0, 8.0]
