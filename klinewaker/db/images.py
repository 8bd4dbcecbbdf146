"""Filesystem storage for journal screenshots."""

import base64
import logging
import re
import time
import uuid
from pathlib import Path
from typing import Union

from klinewaker.errors import ImageNotFoundError

logger = logging.getLogger(__name__)

_DATA_URI_RE = re.compile(r"^data:([A-Za-z-+/]+);base64,(.+)$", re.DOTALL)


class ImageStore:
    """Stores journal images as files and hands out opaque filenames."""

    def __init__(self, images_dir: Path):
        """Initialize the image store.

        Args:
            images_dir: Directory the image files are written to.
        """
        self.images_dir = images_dir
        self.images_dir.mkdir(parents=True, exist_ok=True)

    def _path_for(self, filename: str) -> Path:
        if not filename or Path(filename).name != filename:
            raise ImageNotFoundError(filename)
        return self.images_dir / filename

    @staticmethod
    def _decode(payload: Union[bytes, str]) -> bytes:
        if isinstance(payload, bytes):
            return payload
        match = _DATA_URI_RE.match(payload)
        if match:
            return base64.b64decode(match.group(2))
        return base64.b64decode(payload)

    def save(self, payload: Union[bytes, str]) -> str:
        """Write an image and return its filename.

        Args:
            payload: Raw bytes, a ``data:`` URI or a bare base64 string.

        Returns:
            The generated filename (``img_<uuid>_<millis>.png``).
        """
        data = self._decode(payload)
        filename = f"img_{uuid.uuid4()}_{int(time.time() * 1000)}.png"
        (self.images_dir / filename).write_bytes(data)
        logger.debug("Saved image %s (%d bytes)", filename, len(data))
        return filename

    def delete(self, filename: str) -> None:
        """Delete an image file. Failures are logged, never raised."""
        if not filename:
            return
        try:
            self._path_for(filename).unlink()
        except (OSError, ImageNotFoundError) as e:
            logger.warning("Failed to delete image %s: %s", filename, e)

    def read(self, filename: str) -> str:
        """Read an image back as a PNG data URI.

        Raises:
            ImageNotFoundError: If the file does not exist.
        """
        path = self._path_for(filename)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            logger.error("Failed to read image %s: file missing", filename)
            raise ImageNotFoundError(filename) from None
        return f"data:image/png;base64,{base64.b64encode(data).decode('ascii')}"
