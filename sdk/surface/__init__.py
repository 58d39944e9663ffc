"""
sdk.surface - Map-rendering surface boundary

Public API:
    - MapSurface, AnnotationManager: Abstract surface contracts
    - Point, CameraState, CameraOptions, AnimationOptions, PointAnnotationOptions: Value types
    - SurfaceResult, callSurface: Result-returning call wrapper
    - RecordingSurface: In-memory surface for headless runs and tests
"""

from .base import (
    AnimationOptions, AnnotationManager, CameraOptions, CameraState,
    MapSurface, Point, PointAnnotationOptions
)
from .result import SurfaceResult, callSurface
from .recording import RecordingSurface, RecordingAnnotationManager, SurfaceCallError

__all__ = [
    'AnimationOptions', 'AnnotationManager', 'CameraOptions', 'CameraState',
    'MapSurface', 'Point', 'PointAnnotationOptions',
    'SurfaceResult', 'callSurface',
    'RecordingSurface', 'RecordingAnnotationManager', 'SurfaceCallError'
]
