"""PNG scanline filters applied before compression.

Each function takes the raw scanlines as a ``(rows, row_bytes)`` ``uint8``
array and returns a new array; ``uint8`` arithmetic wraps modulo 256, which
is exactly what the PNG filter definitions call for.
"""

from __future__ import annotations

from enum import IntEnum

import numpy as np

from apngkit.errors import ConfigurationError


class ScanlineFilter(IntEnum):
    NONE = 0
    SUB = 1
    UP = 2

    @classmethod
    def parse(cls, value: str | int | ScanlineFilter) -> ScanlineFilter:
        """Accept a filter name ("sub"), number (1) or member."""
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                raise ConfigurationError(
                    f"Invalid filter {value!r}, expected one of "
                    f"{[m.name.lower() for m in cls]}"
                ) from None
        try:
            return cls(value)
        except ValueError:
            raise ConfigurationError(f"Invalid filter value {value!r}") from None


def filter_none(rows: np.ndarray, bpp: int) -> np.ndarray:
    return rows.copy()


def filter_sub(rows: np.ndarray, bpp: int) -> np.ndarray:
    """Each byte minus the same channel of the pixel to its left."""
    out = rows.copy()
    out[:, bpp:] = rows[:, bpp:] - rows[:, :-bpp]
    return out


def filter_up(rows: np.ndarray, bpp: int) -> np.ndarray:
    """Each byte minus the byte above it; the row above the first is zeros."""
    out = rows.copy()
    out[1:] = rows[1:] - rows[:-1]
    return out


_FILTERS = {
    ScanlineFilter.NONE: filter_none,
    ScanlineFilter.SUB: filter_sub,
    ScanlineFilter.UP: filter_up,
}


def filter_scanlines(pixels: np.ndarray, filter_type: ScanlineFilter) -> bytes:
    """Filter an ``(H, W, C)`` image and prefix every row with its filter byte.

    Returns:
        The serialized scanlines, ready for zlib compression.
    """
    height, width, bpp = pixels.shape
    rows = np.ascontiguousarray(pixels, dtype=np.uint8).reshape(height, width * bpp)
    filtered = _FILTERS[filter_type](rows, bpp)
    tags = np.full((height, 1), int(filter_type), dtype=np.uint8)
    return np.hstack([tags, filtered]).tobytes()
