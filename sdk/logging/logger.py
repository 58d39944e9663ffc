"""
Hierarchical structured logger shared by the passport globe and its SDK.

Features:
- Logger name derived from the caller's module and class
- One rotating log file per app when a log directory is configured
- Structured fields passed as keyword arguments

Usage:
    from sdk.logging import getLogger

    class GlobeController:
        def __init__(self):
            self.log = getLogger()  # Auto: 'passport.globe.controller.GlobeController'

        def plot(self):
            self.log.info("Pin plotted", lat=48.85, lon=2.35)

    log = getLogger()  # Module-level: 'surface.recording'
"""

# Imports
import inspect, logging, logging.handlers, os, socket
from pathlib import Path
from typing import Optional

from .context import AppContextFilter


# Global state
_hostname = socket.gethostname()
_configured = False
_appFileHandlers = {}  # app name -> shared RotatingFileHandler
_settings = {
    'logDir': None,
    'maxBytes': 10_000_000,
    'backupCount': 5,
    'console': True,
    'level': logging.INFO,
}

FILE_FORMAT = '%(asctime)s - %(hostname)s - %(name)s - %(levelname)s - %(message)s'
CONSOLE_FORMAT = '%(name)s - %(levelname)s - %(message)s'

# Attributes every LogRecord carries; anything else on the record is a structured field
_RECORD_FIELDS = frozenset(vars(logging.LogRecord('', 0, '', 0, '', None, None))) | {'message', 'asctime', 'hostname'}


def configureLogging(logDir: Optional[str] = None, maxBytes: int = 10_000_000,
                     backupCount: int = 5, console: bool = True, level: Optional[str] = None):
    """
    Configure global logging settings (call once at app startup).

    Args:
        logDir: Directory for log files. Falls back to PASSPORT_LOG_DIR; no file output when neither is set.
        maxBytes: Maximum size per log file before rotation (default: 10MB)
        backupCount: Number of rotated files kept per app (default: 5)
        console: Also log to stderr (default: True)
        level: Minimum log level name. Falls back to PASSPORT_LOG_LEVEL, then INFO.
    """
    global _configured

    logDir = logDir or os.environ.get('PASSPORT_LOG_DIR')
    levelName = (level or os.environ.get('PASSPORT_LOG_LEVEL') or 'INFO').upper()
    levelValue = logging.getLevelName(levelName)
    if not isinstance(levelValue, int):
        raise ValueError(f"Unknown log level: {levelName}")

    if logDir:
        Path(logDir).mkdir(parents=True, exist_ok=True)
    _settings.update(logDir=logDir, maxBytes=maxBytes, backupCount=backupCount, console=console, level=levelValue)
    _configured = True


def _autoDetectName() -> str:
    """First caller outside sdk.logging, as 'module.path.ClassName' ('sdk.' prefix dropped)"""
    frame = inspect.currentframe()
    try:
        caller = frame.f_back
        while caller is not None:
            module = inspect.getmodule(caller)
            moduleName = module.__name__ if module else ''
            if moduleName and not moduleName.startswith(('sdk.logging', 'importlib')) and moduleName != '__main__':
                break
            caller = caller.f_back
        if caller is None:
            return 'unknown'

        parts = moduleName.split('.')
        if parts[0] == 'sdk':
            parts = parts[1:]
        name = '.'.join(parts) or 'unknown'

        owner = caller.f_locals.get('self')
        if owner is not None:
            return f"{name}.{type(owner).__name__}"
        ownerClass = caller.f_locals.get('cls')
        if isinstance(ownerClass, type):
            return f"{name}.{ownerClass.__name__}"
        return name
    finally:
        del frame


class StructuredFormatter(logging.Formatter):
    """Appends structured fields: 'message [field1=value1, field2=value2]'"""

    def format(self, record):
        record.hostname = _hostname
        fields = [f"{key}={value}" for key, value in vars(record).items()
                  if key not in _RECORD_FIELDS and not key.startswith('_')]
        if not fields:
            return super().format(record)

        # The record is shared across handlers; restore msg after rendering
        plainMsg = record.msg
        record.msg = f"{plainMsg} [{', '.join(fields)}]"
        try:
            return super().format(record)
        finally:
            record.msg = plainMsg


def _withContext(handler: logging.Handler, fmt: str) -> logging.Handler:
    handler.setLevel(_settings['level'])
    handler.setFormatter(StructuredFormatter(fmt))
    handler.addFilter(AppContextFilter())
    return handler


def _appFileHandler(loggerName: str) -> Optional[logging.Handler]:
    """Rotating file shared by every logger of one app ('passport.globe...' -> passport.log)"""
    if not _settings['logDir']:
        return None
    appName = loggerName.split('.')[0]
    if appName not in _appFileHandlers:
        logPath = Path(_settings['logDir']) / f"{appName}.log"
        _appFileHandlers[appName] = _withContext(
            logging.handlers.RotatingFileHandler(logPath, maxBytes=_settings['maxBytes'],
                                                 backupCount=_settings['backupCount'], encoding='utf-8'),
            FILE_FORMAT)
    return _appFileHandlers[appName]


def getLogger(name: Optional[str] = None) -> logging.Logger:
    """
    Get or create a logger, naming it after the caller when name is None.

    Stack inspection happens once per call; keep the returned logger on the
    instance (or module) and reuse it. Level methods accept structured fields
    as **kwargs.
    """
    if not _configured:
        configureLogging()

    logger = logging.getLogger(name or _autoDetectName())
    logger.propagate = False

    if not getattr(logger, '_passportHandlers', False):
        logger.setLevel(_settings['level'])
        fileHandler = _appFileHandler(logger.name)
        if fileHandler is not None:
            logger.addHandler(fileHandler)
        if _settings['console']:
            logger.addHandler(_withContext(logging.StreamHandler(), CONSOLE_FORMAT))
        logger._passportHandlers = True

    return _wrapLogger(logger)


def _wrapLogger(logger: logging.Logger) -> logging.Logger:
    """
    Replace the level methods so structured fields can be passed as keyword arguments.

    Allows: log.info("Message", field1=value1)
    Instead of: log.info("Message", extra={'field1': value1})
    """
    if getattr(logger, '_structured', False):
        return logger

    def wrap(original):
        def method(msg, *args, exc_info=False, **fields):
            original(msg, *args, exc_info=exc_info, extra=fields or None, stacklevel=2)
        return method

    for levelName in ('debug', 'info', 'warning', 'error', 'critical'):
        setattr(logger, levelName, wrap(getattr(logger, levelName)))
    logger._structured = True
    return logger
