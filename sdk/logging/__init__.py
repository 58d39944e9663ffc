"""
SDK Logging - hierarchical structured logger with automatic name detection.

API:
    from sdk.logging import getLogger

    class GlobeController:
        def __init__(self):
            self.log = getLogger()  # Auto: 'passport.globe.controller.GlobeController'

        def flyTo(self):
            self.log.info("Flying to location", lat=lat, lon=lon)

    # Global configuration (optional, once at app startup)
    from sdk.logging import configureLogging
    configureLogging(logDir='./logs', level='DEBUG')
"""

from .logger import getLogger, configureLogging, StructuredFormatter
from .context import (
    setAppContext,
    getAppContext,
    clearAppContext
)

__all__ = [
    'getLogger',
    'configureLogging',
    'StructuredFormatter',
    'setAppContext',
    'getAppContext',
    'clearAppContext'
]
