"""
sdk.globe - Longitude and location helpers for the rotating globe

Public API:
    - wrapLongitude: Wrap longitudes into (-180, 180]
    - advanceLongitude: Step a longitude eastward with wrap-around
    - plottableMask / isPlottable / filterPlottable: Drop unset (0, 0) and non-finite locations
"""

from .geo import wrapLongitude, advanceLongitude, plottableMask, isPlottable, filterPlottable

__all__ = ['wrapLongitude', 'advanceLongitude', 'plottableMask', 'isPlottable', 'filterPlottable']
