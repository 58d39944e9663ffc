"""
Pin icon asset: resolves the bundled marker image by logical path and returns its raw bytes.
"""

# Imports
from pathlib import Path
from typing import Optional, Union

from sdk.logging import getLogger

PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
ASSET_ROOT = Path(__file__).parent


class PinAssetError(Exception):
    """Pin icon missing, unreadable, or not a PNG image."""


class PinAssetLoader:

    def __init__(self, logicalPath: str = 'assets/pin.png', root: Optional[Union[str, Path]] = None):
        self.log = getLogger()
        self.logicalPath = logicalPath
        self.root = Path(root) if root is not None else ASSET_ROOT
        self._cached: Optional[bytes] = None

    @property
    def path(self) -> Path:
        """Absolute path; logical paths are relative to the asset root, absolute paths are used as-is."""
        return (self.root / self.logicalPath).resolve()

    def load(self) -> bytes:
        """Raw PNG bytes of the icon, read once and cached."""
        if self._cached is not None:
            return self._cached

        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise PinAssetError(f"Pin icon not readable: {self.logicalPath} ({e})") from e
        if not data.startswith(PNG_SIGNATURE):
            raise PinAssetError(f"Pin icon is not a PNG image: {self.logicalPath}")

        self.log.debug("Pin icon loaded", iconPath=str(self.path), sizeBytes=len(data))
        self._cached = data
        return data
