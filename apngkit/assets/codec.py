"""Still-image codec and DEFLATE wrappers.

Per-frame PNG decoding and the non-APNG fallback both go through PyAV
(FFmpeg), the same way whole animations are probed and decoded.
"""

from __future__ import annotations

import io
import logging
import zlib
from pathlib import Path

import av
import numpy as np

from apngkit.errors import StructuralError

logger = logging.getLogger(__name__)

PNG_FORMAT = "png_pipe"


class ImageDecoder:
    """Decodes the first video frame of an in-memory image into RGBA.

    Args:
        data: Encoded image bytes.
        format: FFmpeg demuxer name, or None to probe the data.
    """

    def __init__(self, data: bytes, format: str | None = None) -> None:
        self._data = data
        self._format = format
        self._container: av.container.InputContainer | None = None

    def open(self) -> None:
        """Open the container. Raises StructuralError on undecodable data."""
        try:
            self._container = av.open(io.BytesIO(self._data), mode="r", format=self._format)
        except av.FFmpegError as exc:
            raise StructuralError(f"Cannot open image data: {exc}") from exc
        if not self._container.streams.video:
            self.close()
            raise StructuralError("Image data holds no picture stream")

    def decode_first(self) -> np.ndarray:
        """Decode the first frame as an ``(H, W, 4)`` uint8 RGBA array."""
        if not self._container:
            raise RuntimeError("Decoder not opened. Call open() first.")

        try:
            for frame in self._container.decode(video=0):
                return frame.to_ndarray(format="rgba")
        except av.FFmpegError as exc:
            raise StructuralError(f"Cannot decode image data: {exc}") from exc
        raise StructuralError("Image data decoded to no frames")

    def close(self) -> None:
        """Release decoder resources."""
        if self._container:
            self._container.close()
            self._container = None

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


def decode_png(data: bytes) -> np.ndarray:
    """Decode a standalone PNG byte-stream to RGBA."""
    with ImageDecoder(data, format=PNG_FORMAT) as decoder:
        return decoder.decode_first()


def decode_image(data: bytes) -> np.ndarray:
    """Decode any still image FFmpeg recognises (PNG, GIF, JPEG, WebP...) to RGBA."""
    with ImageDecoder(data) as decoder:
        return decoder.decode_first()


def read_image(path: str | Path) -> np.ndarray:
    """Read and decode an image file to RGBA."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {path}")
    return decode_image(path.read_bytes())


def compress_scanlines(data: bytes, level: int) -> bytes:
    """DEFLATE-compress filtered scanlines into a zlib stream."""
    return zlib.compress(data, level)


def decompress(data: bytes) -> bytes:
    return zlib.decompress(data)
