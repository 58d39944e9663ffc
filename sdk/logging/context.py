"""
Logging context

Adds app-level context (appName, deviceId, sessionId) to every log record.
The filter is attached to each handler getLogger creates.
"""

import logging
from typing import Optional
from contextvars import ContextVar

# Context variables for app identity
_appName: ContextVar[Optional[str]] = ContextVar('app_name', default=None)
_deviceId: ContextVar[Optional[str]] = ContextVar('device_id', default=None)
_sessionId: ContextVar[Optional[str]] = ContextVar('session_id', default=None)


class AppContextFilter(logging.Filter):
    """Logging filter that copies the current app context onto each record"""

    def filter(self, record):
        for key, var in (('appName', _appName), ('deviceId', _deviceId), ('sessionId', _sessionId)):
            value = var.get()
            if value:
                setattr(record, key, value)
        return True


def setAppContext(appName: str, deviceId: Optional[str] = None, sessionId: Optional[str] = None):
    """
    Set app-level context for logging

    Args:
        appName: Application name ('passport')
        deviceId: Device identifier (optional)
        sessionId: Run/session identifier (optional)
    """
    _appName.set(appName)
    if deviceId:
        _deviceId.set(deviceId)
    if sessionId:
        _sessionId.set(sessionId)


def getAppContext() -> dict:
    """Get current app context"""
    return {'appName': _appName.get(), 'deviceId': _deviceId.get(), 'sessionId': _sessionId.get()}


def clearAppContext():
    """Clear app context"""
    _appName.set(None)
    _deviceId.set(None)
    _sessionId.set(None)

