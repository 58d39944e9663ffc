"""sdk - Shared toolkit for the passport globe

Contains reusable modules for:
    - globe: Longitude wrap-around and plottable-location filtering
    - surface: Map-rendering surface contracts, SurfaceResult, RecordingSurface
    - logging: Hierarchical structured logging
"""

__version__ = "0.3.0"
