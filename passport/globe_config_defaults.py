"""Globe controller defaults, used when globe-config.json is absent or invalid."""

DEFAULT_GLOBE_CONFIG = {
    "_comment_purpose": "Tunables for the idle-rotating globe. Every key is optional in globe-config.json.",
    "_comment_configVersion": "Bump configVersion when adding/removing fields or changing schema structure.",
    "_comment_units": "Angles in degrees, periods and durations in milliseconds, zoom in surface zoom levels.",
    "configVersion": "1.0",
    "rotation": {
        "stepDeg": 0.15,
        "tickPeriodMs": 100,
        "quietPeriodMs": 5000,
        "fallbackZoom": 2.0
    },
    "trip": {
        "zoom": 8.0,
        "pitch": 45.0,
        "flyToDurationMs": 3000,
        "zoomOutDurationMs": 2000,
        "zoomOutPitch": 0.0,
        "defaultPreviousZoom": 1.5
    },
    "pins": {
        "iconPath": "assets/pin.png",
        "iconScale": 0.05
    },
    "ornaments": {
        "compass": False,
        "logo": False,
        "scaleBar": False
    }
}
