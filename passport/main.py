"""
Passport globe headless entry point.

Runs the GlobeController against the in-memory RecordingSurface: initialize,
plot locations, let the globe rotate, optionally fly into a trip and back out,
then dump the recorded surface commands.

Usage:
    python -m passport.main [--config globe-config.json] [--locations locations.json]
                            [--trip LAT LON] [--duration 3] [--commands-out commands.json]
"""

import asyncio
import argparse
import sys
import uuid
import orjson
from pathlib import Path
from typing import List, Optional

from passport.globe import GlobeController, Location
from passport.globe_config_loader import GlobeConfig, load_globe_config
from sdk.logging import clearAppContext, configureLogging, getLogger, setAppContext
from sdk.surface import RecordingSurface


def loadLocations(path: Optional[str], log) -> List[Location]:
    """Load a JSON list of {latitude, longitude} objects; malformed entries are skipped"""
    if not path:
        return []
    entries = orjson.loads(Path(path).read_bytes())
    if not isinstance(entries, list):
        raise ValueError(f"{path}: expected a JSON list of locations")

    locations = []
    for index, entry in enumerate(entries):
        try:
            locations.append(Location.fromDict(entry))
        except (AttributeError, TypeError, ValueError) as e:
            log.warning("Skipping malformed location", index=index, error=str(e))
    return locations


def parseArgs(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog='passport', description='Run the rotating globe headless against a recording surface')
    parser.add_argument('--config', help='globe-config.json (defaults are used when omitted or invalid)')
    parser.add_argument('--locations', help='JSON list of {latitude, longitude} objects to pin')
    parser.add_argument('--trip', nargs=2, type=float, metavar=('LAT', 'LON'), help='fly into this trip location and back out')
    parser.add_argument('--duration', type=float, default=3.0, help='seconds to idle-rotate per phase (default: 3)')
    parser.add_argument('--commands-out', help='write recorded surface commands to this JSON file')
    parser.add_argument('--log-dir', help='directory for rotating log files')
    parser.add_argument('--log-level', default=None, help='log level (default: PASSPORT_LOG_LEVEL or INFO)')
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> int:
    log = getLogger('passport.main')

    configDict, version, usedFallback = load_globe_config(args.config, log)
    config = GlobeConfig.fromDict(configDict)
    log.info("Globe config ready", configVersion=version, fallback=usedFallback)

    try:
        locations = loadLocations(args.locations, log)
    except (OSError, orjson.JSONDecodeError, ValueError) as e:
        log.error(f"Could not load locations: {e}", path=args.locations)
        return 2

    surface = RecordingSurface()
    controller = GlobeController(onPlotComplete=lambda: log.info("Plot complete"), config=config)

    await controller.initialize(surface)
    if not controller.isInitialized:
        log.error("Globe controller failed to initialize")
        return 1

    try:
        summary = await controller.plotLocations(locations)
        log.info("Plot summary", requested=summary.requested, plotted=summary.plotted, failed=summary.failed)

        await asyncio.sleep(args.duration)

        if args.trip:
            lat, lon = args.trip
            await controller.flyToLocation(lat, lon)
            await asyncio.sleep(args.duration)
            await controller.zoomBackOut()
            await asyncio.sleep(args.duration)
    finally:
        await controller.shutdown()

    if args.commands_out:
        Path(args.commands_out).write_bytes(surface.exportCommands())
        log.info("Surface commands written", path=args.commands_out, count=len(surface.commands))

    camera = surface.camera
    log.info("Run finished", cameraUpdates=len(surface.commandsFor('setCamera')), flyTos=len(surface.commandsFor('flyTo')),
             pins=len(surface.annotationManager.pins) if surface.annotationManager else 0,
             finalLon=round(camera.center.lon, 3) if camera.center else None, finalZoom=camera.zoom)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parseArgs(argv)
    configureLogging(logDir=args.log_dir, level=args.log_level)
    setAppContext('passport', sessionId=uuid.uuid4().hex[:8])

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        getLogger('passport.main').info("Shutdown signal received")
        return 130
    finally:
        clearAppContext()


if __name__ == '__main__':
    sys.exit(main())
