from dataclasses import dataclass
from typing import Any, Dict

from sdk.globe import isPlottable


@dataclass(frozen=True)
class Location:
    """Photo/video location in degrees. (0.0, 0.0) means the media carried no geotag."""
    latitude: float
    longitude: float

    @property
    def isPlottable(self) -> bool:
        return isPlottable(self.latitude, self.longitude)

    @classmethod
    def fromDict(cls, data: Dict[str, Any]) -> 'Location':
        lat = data.get('latitude', data.get('lat'))
        lon = data.get('longitude', data.get('lon'))
        if lat is None or lon is None:
            raise ValueError(f"location needs latitude and longitude: {data!r}")
        return cls(latitude=float(lat), longitude=float(lon))
