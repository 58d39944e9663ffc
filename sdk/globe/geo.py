# Imports
import numpy as np
from typing import Iterable, List, Sequence, TypeVar

T = TypeVar('T')


def wrapLongitude(lon):
    """Wraps longitude (deg, scalar or array) into the half-open range (-180, 180]."""
    lonArr = np.asarray(lon, dtype=float)
    wrapped = 180.0 - np.mod(180.0 - lonArr, 360.0)
    wrapped = np.where(wrapped <= -180.0, wrapped + 360.0, wrapped)        # np.mod can round up to 360.0
    return float(wrapped) if wrapped.ndim == 0 else wrapped


def advanceLongitude(lon, stepDeg):
    """Returns longitude (deg) advanced eastward by stepDeg, wrapped into (-180, 180]."""
    return wrapLongitude(np.asarray(lon, dtype=float) + stepDeg)


def plottableMask(lats: Sequence[float], lons: Sequence[float]) -> np.ndarray:
    """Boolean mask of coordinates that can be pinned: finite, and not the (0.0, 0.0) unset marker."""
    lats = np.asarray(lats, dtype=float)
    lons = np.asarray(lons, dtype=float)
    finite = np.isfinite(lats) & np.isfinite(lons)
    unset = (lats == 0.0) & (lons == 0.0)
    return finite & ~unset


def isPlottable(lat: float, lon: float) -> bool:
    """True if a single coordinate can be pinned."""
    return bool(plottableMask([lat], [lon])[0])


def filterPlottable(locations: Iterable[T]) -> List[T]:
    """Returns the locations (objects exposing latitude/longitude in deg) that can be pinned, in input order."""
    locations = list(locations)
    if not locations:
        return []
    mask = plottableMask([loc.latitude for loc in locations], [loc.longitude for loc in locations])
    return [loc for loc, keep in zip(locations, mask) if keep]
